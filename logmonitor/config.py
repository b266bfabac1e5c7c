from typing import Any, Callable, Iterable, Optional

import os
import logging
import pydantic

from os.path import isabs, normpath, join as joinpath
from time import monotonic

from .types import FieldName, FileKind, Timestamp
from .constants import *
from .errors import ConfigError
from .schema import ConfigFile, LogmonitorConfig, FieldConfig, SourceConfig
from .notification import Notification, NotificationField, Source
from .dispatcher import Target
from .tracker import MonitoredFile
from .first_line import first_line

logger = logging.getLogger(__name__)

__all__ = (
    'load_config',
    'read_config_dir',
    'validate_config',
    'build_notifications',
    'build_targets',
    'build_files',
)

SOURCE_PREFIXES: tuple[tuple[str, FileKind], ...] = (
    ('log:', 'log'),
    ('status:', 'status'),
)

FIELD_NAMES: tuple[FieldName, ...] = ('title', 'desc', 'level')

FIELD_LABELS: dict[FieldName, str] = {
    'title': 'Title',
    'desc':  'Description',
    'level': 'Level',
}

def is_executable(path: str) -> bool:
    return os.access(path, os.X_OK)

def read_text_file(path: str) -> str:
    try:
        size = os.stat(path).st_size
        if size > MAX_READ_FILE_SIZE:
            raise ConfigError(f'{path}: File too big ({size} > {MAX_READ_FILE_SIZE} bytes)')

        with open(path, 'r', errors='surrogateescape') as fp:
            return fp.read()
    except OSError as exc:
        raise ConfigError(f'{path}: Failed to read file: {exc}') from exc

def list_entries(dirpath: str, want_dirs: bool) -> list[str]:
    try:
        with os.scandir(dirpath) as it:
            names = [
                entry.name for entry in it
                if (entry.is_dir() if want_dirs else entry.is_file())
            ]
    except FileNotFoundError as exc:
        raise ConfigError(f'{dirpath}: Config directory not found') from exc
    except OSError as exc:
        raise ConfigError(f'{dirpath}: Failed to read directory: {exc}') from exc

    # load order is sorted by name
    names.sort()
    return names

def parse_sources(text: str, filepath: str) -> list[SourceConfig]:
    sources: list[SourceConfig] = []

    for line in text.split('\n'):
        line = line.rstrip('\r')
        if not line:
            continue

        kind: FileKind = 'log'
        for prefix, prefix_kind in SOURCE_PREFIXES:
            if line.startswith(prefix):
                kind = prefix_kind
                line = line[len(prefix):]
                break

        if not line:
            raise ConfigError(f'{filepath}: Source file path is empty')

        if not isabs(line):
            raise ConfigError(f'{filepath}: Source file path is not absolute: {line!r}')

        sources.append({ 'path': normpath(line), 'kind': kind })

    return sources

def read_notification(notifications_dir: str, name: str) -> dict[str, Any]:
    notification_dir = joinpath(notifications_dir, name)
    notif: dict[str, Any] = { 'name': name }

    for filename in list_entries(notification_dir, want_dirs=False):
        filepath = joinpath(notification_dir, filename)

        match filename:
            case 'filter':
                if not is_executable(filepath):
                    raise ConfigError(f"Notification filter '{filepath}' not executable")
                notif['filter'] = filepath

            case 'title' | 'desc' | 'level':
                field: FieldConfig
                if is_executable(filepath):
                    field = { 'value': filepath, 'exe': True }
                else:
                    value = first_line(read_text_file(filepath))
                    if filename == 'level' and value not in LEVELS:
                        raise ConfigError(f"{filepath}: Invalid level {value!r}")
                    field = { 'value': value, 'exe': False }
                notif[filename] = field

            case 'source':
                notif['sources'] = parse_sources(read_text_file(filepath), filepath)

            case _:
                logger.debug(f'{filepath}: Ignoring unknown file')

    if not notif.get('filter'):
        raise ConfigError(f"Filter executable missing for notification defined at '{notification_dir}'")

    for field_name in FIELD_NAMES:
        field_cfg: Optional[FieldConfig] = notif.get(field_name)
        if not field_cfg or not field_cfg['value']:
            raise ConfigError(f"{FIELD_LABELS[field_name]} missing for notification defined at '{notification_dir}'")

    if not notif.get('sources'):
        raise ConfigError(f"At least one file to monitor must be specified for notification defined at '{notification_dir}'")

    return notif

def read_target(targets_dir: str, name: str) -> dict[str, Any]:
    target_dir = joinpath(targets_dir, name)
    target: dict[str, Any] = { 'name': name }

    for filename in list_entries(target_dir, want_dirs=False):
        filepath = joinpath(target_dir, filename)

        match filename:
            case 'send':
                if not is_executable(filepath):
                    raise ConfigError(f"Target send '{filepath}' not executable")
                target['send'] = filepath

            case 'debouncing':
                target['debouncing'] = first_line(read_text_file(filepath)).strip()

            case _:
                logger.debug(f'{filepath}: Ignoring unknown file')

    if not target.get('send'):
        raise ConfigError(f"Missing send executable for target defined at '{target_dir}'")

    return target

def read_config_dir(config_dir: str) -> dict[str, Any]:
    """
    Read the notifications and targets from the configuration directory.

    The result is not validated yet, see `validate_config()`.
    """
    notifications_dir = joinpath(config_dir, NOTIFICATIONS_DIR)
    targets_dir = joinpath(config_dir, TARGETS_DIR)

    notifications = [
        read_notification(notifications_dir, name)
        for name in list_entries(notifications_dir, want_dirs=True)
    ]

    targets = [
        read_target(targets_dir, name)
        for name in list_entries(targets_dir, want_dirs=True)
    ]

    return {
        'notifications': notifications,
        'targets': targets,
    }

def validate_config(raw_config: dict[str, Any]) -> LogmonitorConfig:
    try:
        config = ConfigFile(
            config=raw_config # type: ignore
        ).config
    except pydantic.ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    if not config['notifications']:
        raise ConfigError('No notification configured')

    if not config['targets']:
        raise ConfigError('No target configured')

    kinds: dict[str, FileKind] = {}
    for notif in config['notifications']:
        for source in notif['sources']:
            path = source['path']
            kind = kinds.setdefault(path, source['kind'])
            if kind != source['kind']:
                raise ConfigError(f'Monitored file defined multiple times with different types: {path}')

    return config

def load_config(config_dir: str) -> LogmonitorConfig:
    return validate_config(read_config_dir(config_dir))

def _build_field(cfg: FieldConfig) -> NotificationField:
    return NotificationField(cfg['value'], cfg['exe'])

def build_notifications(config: LogmonitorConfig) -> list[Notification]:
    return [
        Notification(
            name    = cfg['name'],
            order   = order,
            filter  = cfg['filter'],
            title   = _build_field(cfg['title']),
            desc    = _build_field(cfg['desc']),
            level   = _build_field(cfg['level']),
            sources = tuple(Source(source['path'], source['kind']) for source in cfg['sources']),
        )
        for order, cfg in enumerate(config['notifications'])
    ]

def build_targets(config: LogmonitorConfig) -> list[Target]:
    return [
        Target(
            name     = cfg['name'],
            send     = cfg['send'],
            debounce = cfg.get('debouncing', 0),
        )
        for cfg in config['targets']
    ]

def build_files(notifications: Iterable[Notification], clock: Callable[[], Timestamp] = monotonic) -> list[MonitoredFile]:
    """
    One MonitoredFile per distinct source path, in order of first appearance.
    Conflicting kinds are rejected by `validate_config()`.
    """
    files: dict[str, MonitoredFile] = {}

    for notif in notifications:
        for source in notif.sources:
            if source.path not in files:
                files[source.path] = MonitoredFile(source.path, source.kind, clock)

    return list(files.values())
