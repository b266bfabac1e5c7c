import json

from time import sleep

from pathlib import Path

import pytest

from logmonitor.__main__ import main
from logmonitor import __version__

from tests.testutils import *

FILTER = 'case "$1" in *ENOSPC*) exit 0;; esac\nexit 1'

def test_disk_full(configdir: Path, tmp_path: Path) -> None:
    logfile = tmp_path / 'syslog'
    out = tmp_path / 'sent.txt'
    pidfile = tmp_path / 'logmonitor.pid'
    write_file(logfile, '')

    write_notification(configdir, 'disk-full',
        filter = FILTER,
        sources = [str(logfile)],
        title = 'Disk full',
        desc = 'check disk',
        level = 'ERROR',
    )
    write_target(configdir, 'ops',
        send = f'printf "%s|%s|%s\\n" "$1" "$2" "$3" >> "{out}"',
        debouncing = 60,
    )

    def actions() -> None:
        append_file(logfile, 'all good\n2024 ENOSPC writing block\n')
        sleep(2.5)
        append_file(logfile, '2024 ENOSPC writing block\n')

    stdout, stderr = run_logmonitor(
        '--configdir', str(configdir),
        '--pidfile', str(pidfile),
        '--debug',
        actions=actions,
        startup_wait=3,
    )

    assert read_file_if_exists(out) == 'Disk full|check disk|ERROR\n'
    assert f'Monitoring log file: {logfile}' in stderr
    assert 'Shutting down on SIGTERM' in stderr
    assert read_file(pidfile).strip().isdigit()

def test_config_error(configdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        main(['--configdir', str(configdir)])

    assert exc_info.value.code == 1
    assert 'Configuration error: No notification configured' in capsys.readouterr().err

def test_dump_config(configdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_notification(configdir, 'disk-full', filter=FILTER, sources=['/var/log/syslog'])
    write_target(configdir, 'ops', send='exit 0', debouncing=30)

    main(['--configdir', str(configdir), '--dump-config'])

    config = json.loads(capsys.readouterr().out)

    assert [notif['name'] for notif in config['notifications']] == ['disk-full']
    assert config['notifications'][0]['sources'] == [{ 'path': '/var/log/syslog', 'kind': 'log' }]
    assert config['targets'][0]['debouncing'] == 30

def test_dump_config_yaml(configdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    write_notification(configdir, 'disk-full', filter=FILTER, sources=['/var/log/syslog'])
    write_target(configdir, 'ops', send='exit 0')

    main(['--configdir', str(configdir), '--dump-config', '--output-format', 'yaml'])

    output = capsys.readouterr().out
    assert 'disk-full' in output
    assert 'log:/var/log/syslog' in output
    assert '!exe ' in output
    assert 'debouncing: 0' in output

def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    main(['--version'])

    assert capsys.readouterr().out.strip() == __version__
