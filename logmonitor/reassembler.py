from typing import Generator

import logging

from collections import deque

from .constants import MAX_PENDING_SIZE

logger = logging.getLogger(__name__)

__all__ = (
    'LineReassembler',
)

class LineReassembler:
    """
    Turns arbitrary read chunks of one file into complete lines.

    Bytes after the last newline are kept until a later chunk terminates
    them. The pending bytes are capped at `max_pending` bytes, if a chunk
    would grow them beyond that the pending bytes and the chunk are
    discarded.

    Complete lines that were not consumed from the generator returned by
    `feed()` are yielded by the next call.
    """
    __slots__ = (
        'name',
        'max_pending',
        '_pending',
        '_lines',
    )

    name: str
    max_pending: int
    _pending: bytearray
    _lines: deque[str]

    def __init__(self, name: str, max_pending: int = MAX_PENDING_SIZE) -> None:
        self.name = name
        self.max_pending = max_pending
        self._pending = bytearray()
        self._lines = deque()

    @property
    def pending(self) -> bytes:
        return bytes(self._pending)

    def reset(self) -> None:
        self._pending.clear()
        self._lines.clear()

    def feed(self, chunk: bytes) -> Generator[str, None, None]:
        pending = self._pending

        if pending and len(pending) + len(chunk) > self.max_pending:
            logger.error(f'{self.name}: Line too long, discarding {len(pending) + len(chunk)} bytes')
            pending.clear()
        else:
            pending.extend(chunk)

            start = 0
            while (end := pending.find(b'\n', start)) >= 0:
                line = pending[start:end]
                if line.endswith(b'\r'):
                    del line[-1]

                if line:
                    self._lines.append(line.decode(errors='surrogateescape'))

                start = end + 1

            if start:
                del pending[:start]

            if len(pending) > self.max_pending:
                logger.error(f'{self.name}: Line too long, discarding {len(pending)} bytes')
                pending.clear()

        lines = self._lines
        while lines:
            yield lines.popleft()
