from typing import Callable, Iterable, Optional

import logging

from time import monotonic

from .types import Timestamp
from .errors import LogmonitorError
from .process import ProcessRunner
from .notification import Notification

logger = logging.getLogger(__name__)

__all__ = (
    'Target',
    'TargetDispatcher',
)

class Target:
    """
    A notification target: an executable that is invoked as
    `send TITLE DESC LEVEL`.

    `debounce` is the minimum number of seconds between two sends of the
    same notification. A debounce of 0 means that each notification is
    sent at most once.
    """
    __slots__ = (
        '_name',
        '_send',
        '_debounce',
        '_last_sent',
    )

    _name: str
    _send: str
    _debounce: int
    _last_sent: dict[str, Timestamp]

    def __init__(self, name: str, send: str, debounce: int = 0) -> None:
        self._name = name
        self._send = send
        self._debounce = debounce
        self._last_sent = {}

    def __repr__(self) -> str:
        return f'Target({self._name!r}, {self._send!r}, {self._debounce!r})'

    @property
    def name(self) -> str:
        return self._name

    @property
    def send(self) -> str:
        return self._send

    @property
    def debounce(self) -> int:
        return self._debounce

    def last_sent(self, notification: str) -> Optional[Timestamp]:
        return self._last_sent.get(notification)

    def check(self, notification: str, now: Timestamp) -> bool:
        last_sent = self._last_sent.get(notification)
        if last_sent is None:
            return True

        debounce = self._debounce
        if debounce == 0:
            return False

        return now - last_sent >= debounce

    def mark_sent(self, notification: str, now: Timestamp) -> None:
        self._last_sent[notification] = now

class TargetDispatcher:
    __slots__ = (
        'targets',
        'runner',
        '_clock',
    )

    targets: list[Target]
    runner: ProcessRunner
    _clock: Callable[[], Timestamp]

    def __init__(self, targets: Iterable[Target], runner: ProcessRunner, clock: Callable[[], Timestamp] = monotonic) -> None:
        self.targets = list(targets)
        self.runner = runner
        self._clock = clock

    def dispatch(self, notification: Notification, title: str, desc: str, level: str) -> int:
        """
        Send a matched notification to every target whose debounce allows it.

        Returns the number of targets that were invoked.
        """
        sent = 0
        name = notification.name

        for target in self.targets:
            now = self._clock()
            if not target.check(name, now):
                logger.debug(f"Ignoring target '{target.name}' for notification '{name}': debouncing")
                continue

            logger.debug(f"Invoking target '{target.name}' for notification '{name}'...")
            try:
                self.runner.run_detached(target.send, (title, desc, level))
            except LogmonitorError as exc:
                logger.error(f"Target '{target.name}' failed: {exc}")

            # the attempt counts, the outcome of the send is never observed
            target.mark_sent(name, now)
            sent += 1

        return sent
