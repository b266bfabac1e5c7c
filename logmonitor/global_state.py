from typing import Optional

import os
import signal
import logging

from select import poll, POLLIN
from time import sleep

__all__ = (
    'is_running',
    'request_stop',
    'handle_keyboard_interrupt',
    'handle_stop_signal',
    'open_stopfds',
    'close_stopfds',
    'wait_for_stop',
)

logger = logging.getLogger(__name__)

_running: bool = True
_read_stopfd:  Optional[int] = None
_write_stopfd: Optional[int] = None

def is_running() -> bool:
    return _running

def request_stop() -> None:
    global _running
    _running = False
    _signal_stopfd()

def handle_keyboard_interrupt() -> None:
    if _running:
        logger.info("Shutting down on SIGINT...")
        request_stop()

def handle_stop_signal(signum: int, frame) -> None:
    signame: str
    try:
        signame = signal.Signals(signum).name
    except ValueError:
        signame = f'signal {signum}'
    logger.info(f"Shutting down on {signame}...")
    request_stop()

def _signal_stopfd() -> None:
    write_stopfd = _write_stopfd
    if not _running and write_stopfd is not None:
        try:
            os.write(write_stopfd, b'\0')
        except OSError as exc:
            logger.warning(f"Error signaling stop through write_stopfd {write_stopfd}: {exc}", exc_info=exc)

def wait_for_stop(timeout: float) -> bool:
    """
    Wait up to `timeout` seconds or until a stop is requested.

    Returns `True` if a stop was requested.
    """
    if not _running:
        return True

    stopfd = _read_stopfd
    if stopfd is None:
        sleep(timeout)
    else:
        poller = poll()
        poller.register(stopfd, POLLIN)
        poller.poll(timeout * 1000)

    return not _running

def open_stopfds() -> tuple[int, int]:
    global _write_stopfd, _read_stopfd, _running

    _running = True
    stopfds = os.pipe2(os.O_NONBLOCK | os.O_CLOEXEC)
    _read_stopfd, _write_stopfd = stopfds
    return stopfds

def close_stopfds() -> None:
    global _write_stopfd, _read_stopfd

    write_stopfd = _write_stopfd
    if write_stopfd is not None:
        try:
            os.close(write_stopfd)
        except OSError as exc:
            logger.warning(f"Error closing write_stopfd {write_stopfd}: {exc}", exc_info=exc)
        _write_stopfd = None

    read_stopfd = _read_stopfd
    if read_stopfd is not None:
        try:
            os.close(read_stopfd)
        except OSError as exc:
            logger.warning(f"Error closing read_stopfd {read_stopfd}: {exc}", exc_info=exc)
        _read_stopfd = None
