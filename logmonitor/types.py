from typing import Literal

__all__ = (
    'Level',
    'FileKind',
    'FileState',
    'OutputFormat',
    'FieldName',
    'Timestamp',
)

type Level = Literal['ERROR', 'WARNING', 'INFO']
type FileKind = Literal['log', 'status']
type FileState = Literal['unopened', 'open', 'unavailable']
type OutputFormat = Literal['JSON', 'YAML']
type FieldName = Literal['title', 'desc', 'level']

# monotonic seconds
type Timestamp = float
