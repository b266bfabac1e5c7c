#!/usr/bin/env python3

"""\
logmonitor - Monitor log and status files and notify targets when filters match

Copyright (c) 2025-2026  Mathias Panzenböck

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

from typing import Callable, Optional, TypeVar, get_args

import os
import sys
import json
import signal
import logging

from os.path import abspath

from . import __version__
from .types import OutputFormat
from .constants import *
from .errors import ConfigError
from .config import load_config
from .yaml import HAS_YAML, yaml_dump, config_yaml_view
from .global_state import handle_stop_signal, open_stopfds, close_stopfds
from .logmonitor import Logmonitor

type Num = int|float

def non_negative(parse: Callable[[str], Num]) -> Callable[[str], Num]:
    def parse_non_negative(value: str) -> Num:
        num = parse(value)
        if num < 0:
            raise ValueError(f'value may not be less than 0 but was {num}')
        return num
    parse_non_negative.__name__ = f'non_negative({parse.__name__})'
    return parse_non_negative

T = TypeVar('T')

def optional(parse: Callable[[str], T], *none_values: str) -> Callable[[str], Optional[T]]:
    def parse_optional(value: str) -> Optional[T]:
        if not value.strip() or value in none_values:
            return None
        return parse(value)
    fmt_args = ''.join(f", {val!r}" for val in none_values)
    parse_optional.__name__ = f'optional({parse.__name__}{fmt_args})'
    return parse_optional

EPILOG = f'''\
Configuration directory layout:

  notifications.d/<name>/filter   Executable, invoked as `filter LINE` for
                                  every new line of the monitored files.
                                  Exit status 0 means the line matches.
  notifications.d/<name>/title    Text file with the title, or an executable
                                  invoked as `title LINE` that prints it.
  notifications.d/<name>/desc     Same for the description.
  notifications.d/<name>/level    Same for the level, one of: ERROR,
                                  WARNING, INFO.
  notifications.d/<name>/source   Monitored files, one absolute path per
                                  line, optionally prefixed with `log:`
                                  (default) or `status:`. At most
                                  {MAX_NUM_MONITORED_FILES_PER_NOTIFICATION} files.

  targets.d/<name>/send           Executable, invoked as
                                  `send TITLE DESC LEVEL`.
  targets.d/<name>/debouncing     Minimum seconds between sends of the same
                                  notification. 0 (default) means a
                                  notification is sent only once.

At most {MAX_NUM_NOTIFICATIONS} notifications and {MAX_NUM_TARGETS} targets.

Log files are tailed from their end, status files are read in full whenever
they change (checked every {STATUS_FILE_READ_INTERVAL} seconds).
'''

def main(argv: Optional[list[str]] = None) -> None:
    import argparse

    esc_default_log_format = DEFAULT_LOG_FORMAT.replace('%', '%%')
    esc_default_log_datefmt = DEFAULT_LOG_DATEFMT.replace('%', '%%')

    ap = argparse.ArgumentParser(
        prog='logmonitor',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description='Monitor log and status files and notify targets when filters match.',
        epilog=EPILOG,
    )
    try:
        # don't like the default texts
        ap._optionals.title = 'Options'
    except AttributeError: pass

    ap.add_argument('-v', '--version', default=False, action='store_true',
        help='Print version and exit.')
    ap.add_argument('--license', default=False, action='store_true',
        help='Show license information and exit.')
    ap.add_argument('-c', '--configdir', default=DEFAULT_CONFIG_DIR, metavar='PATH',
        help=f'Directory where the configuration is stored. [default: {DEFAULT_CONFIG_DIR}]')
    ap.add_argument('-d', '--debug', default=False, action='store_true',
        help='Enable debug logging.')
    ap.add_argument('--log-file', default=None, metavar='PATH',
        help='Logfile of logmonitor itself. If not given writes to standard error.')
    ap.add_argument('--log-format', default=DEFAULT_LOG_FORMAT, metavar='FORMAT',
        help=f'Format of log entries of logmonitor itself. [default: {esc_default_log_format}]')
    ap.add_argument('--log-datefmt', default=DEFAULT_LOG_DATEFMT, metavar='DATEFMT',
        help=f'Format of the timestamp of log entries of logmonitor itself. [default: {esc_default_log_datefmt}]')
    ap.add_argument('--pidfile', default=None, metavar='PATH',
        help="Write logmonitor's PID to given file.")
    ap.add_argument('--dump-config', default=False, action='store_true',
        help='Print the loaded configuration and exit. Uses --output-format and --output-indent.')
    ap.add_argument('--output-format', type=str.upper, choices=get_args(OutputFormat.__value__), default=DEFAULT_OUTPUT_FORMAT,
        help=f'[default: {DEFAULT_OUTPUT_FORMAT}]')
    ap.add_argument('--output-indent', type=optional(non_negative(int), 'NONE'), default=DEFAULT_OUTPUT_INDENT, metavar='WIDTH|NONE',
        help=f'[default: {DEFAULT_OUTPUT_INDENT}]')
    args = ap.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if args.license:
        assert __doc__
        print(__doc__.strip())
        return

    logging.basicConfig(
        filename = args.log_file,
        level    = logging.DEBUG if args.debug else logging.INFO,
        format   = args.log_format,
        datefmt  = args.log_datefmt,
    )

    config_dir = abspath(args.configdir)

    try:
        config = load_config(config_dir)
    except ConfigError as exc:
        print(f"{config_dir}: Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    if args.dump_config:
        output_format: OutputFormat = args.output_format
        if output_format == 'YAML' and not HAS_YAML:
            print('Writing YAML requires the `ruamel.yaml` or `PyYAML` package.', file=sys.stderr)
            sys.exit(1)

        match output_format:
            case 'JSON':
                json.dump(config, sys.stdout, indent=args.output_indent)
                print()

            case 'YAML':
                print(yaml_dump(config_yaml_view(config), indent=args.output_indent), end='')

            case _:
                raise ValueError(f'illegal output format: {output_format}')
        return

    pidfile: Optional[str] = args.pidfile
    if pidfile:
        pid = os.getpid()
        with open(pidfile, 'w') as pidfilefp:
            pidfilefp.write(f'{pid}\n')

    signal.signal(signal.SIGTERM, handle_stop_signal)

    SIGBREAK: Optional[int] = getattr(signal, 'SIGBREAK', None)
    if SIGBREAK is not None:
        signal.signal(SIGBREAK, handle_stop_signal)

    open_stopfds()

    try:
        with Logmonitor.from_config(config) as monitor:
            monitor.run()
    finally:
        close_stopfds()

if __name__ == '__main__':
    main()
