from typing import Callable, Iterable, Optional, Self

import logging

from time import monotonic

from .types import Timestamp
from .constants import MAIN_LOOP_SLEEP_PERIOD, FIELD_OUTPUT_SIZE
from .schema import LogmonitorConfig
from .config import build_notifications, build_targets, build_files
from .process import ProcessRunner
from .notification import Notification
from .dispatcher import Target, TargetDispatcher
from .matcher import NotificationMatcher
from .tracker import MonitoredFile
from .global_state import is_running, handle_keyboard_interrupt, wait_for_stop

logger = logging.getLogger(__name__)

__all__ = (
    'Logmonitor',
)

class Logmonitor:
    """
    The poll loop. Each tick reads all monitored files once, runs the
    notification filters for every completed line, reaps finished send
    processes and then sleeps.

    Everything runs in this one thread. Filters and field resolvers block
    the loop while they run.
    """
    __slots__ = (
        'notifications',
        'targets',
        'files',
        'runner',
        'dispatcher',
        'matcher',
        'sleep_period',
    )

    notifications: list[Notification]
    targets: list[Target]
    files: list[MonitoredFile]
    runner: ProcessRunner
    dispatcher: TargetDispatcher
    matcher: NotificationMatcher
    sleep_period: float

    def __init__(
            self,
            notifications: Iterable[Notification],
            targets: Iterable[Target],
            files: Iterable[MonitoredFile],
            runner: Optional[ProcessRunner] = None,
            clock: Callable[[], Timestamp] = monotonic,
            sleep_period: float = MAIN_LOOP_SLEEP_PERIOD,
            output_size: int = FIELD_OUTPUT_SIZE,
    ) -> None:
        self.notifications = list(notifications)
        self.targets = list(targets)
        self.files = list(files)
        self.runner = runner if runner is not None else ProcessRunner()
        self.dispatcher = TargetDispatcher(self.targets, self.runner, clock)
        self.matcher = NotificationMatcher(self.notifications, self.dispatcher, self.runner, output_size)
        self.sleep_period = sleep_period

    @staticmethod
    def from_config(config: LogmonitorConfig, clock: Callable[[], Timestamp] = monotonic) -> "Logmonitor":
        notifications = build_notifications(config)

        return Logmonitor(
            notifications = notifications,
            targets = build_targets(config),
            files = build_files(notifications, clock),
            clock = clock,
        )

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        for mf in self.files:
            mf.close()

    def tick(self) -> int:
        """
        Read every monitored file once and handle all completed lines.

        Returns the number of handled lines.
        """
        count = 0

        for mf in self.files:
            try:
                for line in mf.read_lines():
                    count += 1
                    self.matcher.handle_line(mf.path, line)
            except OSError as exc:
                logger.error(f'{mf.path}: Error while reading: {exc}', exc_info=exc)

        return count

    def run(self) -> None:
        for mf in self.files:
            logger.info(f'Monitoring {mf.kind} file: {mf.path}')

        try:
            while is_running():
                try:
                    self.tick()
                    self.runner.reap_zombies()

                    if wait_for_stop(self.sleep_period):
                        break
                except KeyboardInterrupt:
                    handle_keyboard_interrupt()
        finally:
            self.close()
            self.runner.reap_zombies()
