from typing import Iterable

import logging

from .types import FieldName
from .constants import EXECERROR, FIELD_OUTPUT_SIZE, LEVELS
from .errors import LogmonitorError
from .process import ProcessRunner
from .dispatcher import TargetDispatcher
from .notification import Notification
from .first_line import first_line

logger = logging.getLogger(__name__)

__all__ = (
    'NotificationMatcher',
)

class NotificationMatcher:
    """
    Runs the filters of all notifications that monitor a file for each line
    of that file and resolves title, description and level of matching
    notifications.

    Failures of the external executables never propagate. A failing filter
    is a non-match, a failing field resolver yields `EXECERROR` as value.
    """
    __slots__ = (
        'notifications',
        'dispatcher',
        'runner',
        'output_size',
    )

    notifications: list[Notification]
    dispatcher: TargetDispatcher
    runner: ProcessRunner
    output_size: int

    def __init__(
            self,
            notifications: Iterable[Notification],
            dispatcher: TargetDispatcher,
            runner: ProcessRunner,
            output_size: int = FIELD_OUTPUT_SIZE,
    ) -> None:
        self.notifications = sorted(notifications, key=lambda notif: notif.order)
        self.dispatcher = dispatcher
        self.runner = runner
        self.output_size = output_size

    def handle_line(self, path: str, line: str) -> int:
        """
        Returns the number of matching notifications.
        """
        matches = 0

        for notif in self.notifications:
            if not notif.is_bound_to(path):
                continue

            logger.debug(f"{path}: Invoking filter for notification '{notif.name}'...")
            if not self.invoke_filter(notif, line):
                logger.debug(f"{path}: Filter result for notification '{notif.name}': no match")
                continue

            logger.debug(f"{path}: Filter result for notification '{notif.name}': match")
            matches += 1

            title = self.resolve_field(notif, 'title', line)
            desc  = self.resolve_field(notif, 'desc', line)
            level = self.resolve_level(notif, line)

            self.dispatcher.dispatch(notif, title, desc, level)

        return matches

    def invoke_filter(self, notif: Notification, line: str) -> bool:
        try:
            status, _ = self.runner.run_capturing(notif.filter, (line,))
        except LogmonitorError as exc:
            logger.error(f"Notification '{notif.name}': Filter execution failure: {exc}")
            return False

        return status == 0

    def resolve_field(self, notif: Notification, field_name: FieldName, line: str) -> str:
        field = getattr(notif, field_name)
        if not field.is_exe:
            return field.value

        try:
            status, output = self.runner.run_capturing(field.value, (line,), self.output_size)
        except LogmonitorError as exc:
            logger.error(f"Notification '{notif.name}': {field_name} execution failure: {exc}")
            return EXECERROR

        if status != 0:
            logger.error(f"Notification '{notif.name}': {field_name} execution exited with code {status}: {field.value}")
            return EXECERROR

        value = first_line(output)
        if not value:
            logger.error(f"Notification '{notif.name}': {field_name} execution produced no output: {field.value}")
            return EXECERROR

        return value

    def resolve_level(self, notif: Notification, line: str) -> str:
        level = self.resolve_field(notif, 'level', line)

        if level != EXECERROR and level not in LEVELS:
            logger.error(f"Notification '{notif.name}': level {level!r} invalid: {notif.level.value}")
            return EXECERROR

        return level
