from typing import NamedTuple

from .types import FileKind

__all__ = (
    'Source',
    'NotificationField',
    'Notification',
)

class Source(NamedTuple):
    path: str
    kind: FileKind

class NotificationField(NamedTuple):
    # either the literal value or the path of an executable that prints it
    value: str
    is_exe: bool

class Notification(NamedTuple):
    name: str
    order: int # load order
    filter: str
    title: NotificationField
    desc: NotificationField
    level: NotificationField
    sources: tuple[Source, ...]

    def is_bound_to(self, path: str) -> bool:
        return any(source.path == path for source in self.sources)
