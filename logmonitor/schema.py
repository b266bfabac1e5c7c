from typing import Annotated, NotRequired, TypedDict

import pydantic

from .types import FileKind
from .constants import MAX_NUM_NOTIFICATIONS, MAX_NUM_TARGETS, MAX_NUM_MONITORED_FILES_PER_NOTIFICATION

__all__ = (
    'FieldConfig',
    'SourceConfig',
    'NotificationConfig',
    'TargetConfig',
    'LogmonitorConfig',
    'ConfigFile',
)

NonEmptyStr = Annotated[str, pydantic.StringConstraints(min_length=1)]

class FieldConfig(TypedDict):
    value: NonEmptyStr
    exe: bool

class SourceConfig(TypedDict):
    path: NonEmptyStr
    kind: FileKind

class NotificationConfig(TypedDict):
    name: NonEmptyStr
    filter: NonEmptyStr
    title: FieldConfig
    desc: FieldConfig
    level: FieldConfig
    sources: Annotated[list[SourceConfig], pydantic.Field(min_length=1, max_length=MAX_NUM_MONITORED_FILES_PER_NOTIFICATION)]

class TargetConfig(TypedDict):
    name: NonEmptyStr
    send: NonEmptyStr
    debouncing: NotRequired[Annotated[int, pydantic.Field(ge=0)]] # default: 0

class LogmonitorConfig(TypedDict):
    """
    Configuration as read from the configuration directory.
    """
    notifications: Annotated[list[NotificationConfig], pydantic.Field(max_length=MAX_NUM_NOTIFICATIONS)]
    targets: Annotated[list[TargetConfig], pydantic.Field(max_length=MAX_NUM_TARGETS)]

class ConfigFile(pydantic.BaseModel):
    config: LogmonitorConfig
