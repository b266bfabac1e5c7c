import re

__all__ = (
    'first_line',
)

EOL_PATTERN = re.compile(r'[\r\n\0]')

def first_line(text: str) -> str:
    # Everything up to the first line break, which may also be a lone '\r'.
    # A NUL byte ends the text as well, it can't be passed as an argument.
    return EOL_PATTERN.split(text, 1)[0]
