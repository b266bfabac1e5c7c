from pathlib import Path

import pytest

from logmonitor.matcher import NotificationMatcher
from logmonitor.dispatcher import Target, TargetDispatcher
from logmonitor.notification import Notification, NotificationField, Source
from logmonitor.process import ProcessRunner
from logmonitor.constants import EXECERROR, FIELD_OUTPUT_SIZE
from logmonitor.errors import SpawnError

from tests.testutils import *

SYSLOG = '/var/log/syslog'
MESSAGES = '/var/log/messages'

def literal(value: str) -> NotificationField:
    return NotificationField(value, False)

def executable(path: str) -> NotificationField:
    return NotificationField(path, True)

def make_notification(
        name: str = 'disk-full',
        *,
        order: int = 0,
        title: NotificationField = literal('Disk full'),
        desc: NotificationField = literal('check disk'),
        level: NotificationField = literal('ERROR'),
        sources: tuple[Source, ...] = (Source(SYSLOG, 'log'),),
) -> Notification:
    return Notification(
        name    = name,
        order   = order,
        filter  = f'/filters/{name}',
        title   = title,
        desc    = desc,
        level   = level,
        sources = sources,
    )

def enospc_filter(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
    if exe.startswith('/filters/'):
        return (0 if 'ENOSPC' in args[0] else 1), ''
    raise AssertionError(f'unexpected executable: {exe}')

def make_matcher(runner: FakeRunner, *notifications: Notification) -> NotificationMatcher:
    dispatcher = TargetDispatcher([Target('ops', '/bin/send', 1)], runner, FakeClock()) # type: ignore
    return NotificationMatcher(notifications, dispatcher, runner) # type: ignore

def test_match_dispatches_literal_fields() -> None:
    runner = FakeRunner(enospc_filter)
    matcher = make_matcher(runner, make_notification())

    assert matcher.handle_line(SYSLOG, '2024 ENOSPC writing block') == 1

    assert runner.calls == [('/filters/disk-full', ('2024 ENOSPC writing block',))]
    assert runner.detached == [('/bin/send', ('Disk full', 'check disk', 'ERROR'))]

def test_no_match() -> None:
    runner = FakeRunner(enospc_filter)
    matcher = make_matcher(runner, make_notification())

    assert matcher.handle_line(SYSLOG, 'all good') == 0
    assert runner.detached == []

def test_only_bound_notifications_are_evaluated() -> None:
    runner = FakeRunner(enospc_filter)
    matcher = make_matcher(
        runner,
        make_notification('disk-full', order=0),
        make_notification('other', order=1, sources=(Source(MESSAGES, 'log'),)),
    )

    assert matcher.handle_line(MESSAGES, 'ENOSPC') == 1
    assert [exe for exe, _ in runner.calls] == ['/filters/other']

def test_notifications_are_evaluated_in_order() -> None:
    runner = FakeRunner(enospc_filter)
    matcher = make_matcher(
        runner,
        make_notification('second', order=1),
        make_notification('first', order=0),
    )

    assert matcher.handle_line(SYSLOG, 'ENOSPC') == 2
    assert [exe for exe, _ in runner.calls] == ['/filters/first', '/filters/second']

def test_filter_spawn_error_is_no_match(caplog: pytest.LogCaptureFixture) -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        raise SpawnError(f'{exe}: Permission denied')

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification())

    assert matcher.handle_line(SYSLOG, 'ENOSPC') == 0
    assert runner.detached == []
    assert 'Filter execution failure' in caplog.text

def test_field_executable_output() -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        match exe:
            case '/fields/title':
                assert output_size == FIELD_OUTPUT_SIZE
                return 0, 'Disk full on sda1\r\nsecond line\n'
            case '/fields/level':
                return 0, 'WARNING\n'
        return enospc_filter(exe, args, output_size)

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification(
        title = executable('/fields/title'),
        level = executable('/fields/level'),
    ))

    assert matcher.handle_line(SYSLOG, 'ENOSPC on sda1') == 1
    assert ('/fields/title', ('ENOSPC on sda1',)) in runner.calls
    assert runner.detached == [('/bin/send', ('Disk full on sda1', 'check disk', 'WARNING'))]

def test_failing_title_executable() -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        if exe == '/fields/title':
            return 2, 'ignored\n'
        return enospc_filter(exe, args, output_size)

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification(title=executable('/fields/title')))

    assert matcher.handle_line(SYSLOG, 'ENOSPC') == 1
    assert runner.detached == [('/bin/send', (EXECERROR, 'check disk', 'ERROR'))]

def test_field_executable_without_output() -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        if exe == '/fields/desc':
            return 0, ''
        return enospc_filter(exe, args, output_size)

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification(desc=executable('/fields/desc')))

    matcher.handle_line(SYSLOG, 'ENOSPC')
    assert runner.detached == [('/bin/send', ('Disk full', EXECERROR, 'ERROR'))]

def test_field_executable_spawn_error() -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        if exe == '/fields/desc':
            raise SpawnError(f'{exe}: No such file or directory')
        return enospc_filter(exe, args, output_size)

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification(desc=executable('/fields/desc')))

    matcher.handle_line(SYSLOG, 'ENOSPC')
    assert runner.detached == [('/bin/send', ('Disk full', EXECERROR, 'ERROR'))]

def test_invalid_level() -> None:
    def handler(exe: str, args: tuple[str, ...], output_size: int) -> tuple[int, str]:
        if exe == '/fields/level':
            return 0, 'CRITICAL\n'
        return enospc_filter(exe, args, output_size)

    runner = FakeRunner(handler)
    matcher = make_matcher(runner, make_notification(level=executable('/fields/level')))

    matcher.handle_line(SYSLOG, 'ENOSPC')

    # only the level is replaced, the title stays intact
    assert runner.detached == [('/bin/send', ('Disk full', 'check disk', EXECERROR))]

def test_with_real_executables(tmp_path: Path) -> None:
    filter_exe = write_script(tmp_path / 'filter', 'case "$1" in *ENOSPC*) exit 0;; esac\nexit 1')
    title_exe = write_script(tmp_path / 'title', 'echo "Disk full: ${1#* }"')

    notif = Notification(
        name    = 'disk-full',
        order   = 0,
        filter  = filter_exe,
        title   = executable(title_exe),
        desc    = literal('check disk'),
        level   = literal('ERROR'),
        sources = (Source(SYSLOG, 'log'),),
    )

    runner = ProcessRunner()
    recorder = FakeRunner()
    dispatcher = TargetDispatcher([Target('ops', '/bin/send', 0)], recorder, FakeClock()) # type: ignore
    matcher = NotificationMatcher([notif], dispatcher, runner)

    assert matcher.handle_line(SYSLOG, 'all good') == 0
    assert matcher.handle_line(SYSLOG, '2024 ENOSPC writing block') == 1

    assert recorder.detached == [('/bin/send', ('Disk full: ENOSPC writing block', 'check disk', 'ERROR'))]
