from typing import Callable, Generator, Optional

import os
import logging

from time import monotonic

from .types import FileKind, FileState, Timestamp
from .constants import READ_BUFFER_SIZE, STATUS_FILE_READ_INTERVAL
from .reassembler import LineReassembler

logger = logging.getLogger(__name__)

__all__ = (
    'MonitoredFile',
    'StatSnapshot',
)

type StatSnapshot = tuple[int, int, int, int]

def _snapshot(st: os.stat_result) -> StatSnapshot:
    return st.st_size, st.st_mtime_ns, st.st_dev, st.st_ino

class MonitoredFile:
    """
    Owns the file descriptor of one monitored path.

    Log files are tailed: a newly opened file is read from its end and
    only appended bytes are read. Status files are read from the start
    whenever their size, modification time, device or inode changed, but
    at most every `status_interval` seconds.

    Rotation (another file at the path) is detected by comparing device
    and inode of the open descriptor with the path. Truncation is detected
    when the file is smaller than the current read offset.
    """
    __slots__ = (
        'path',
        'kind',
        'status_interval',
        'reassembler',
        '_clock',
        '_fd',
        '_state',
        '_last_stat',
        '_last_read',
    )

    path: str
    kind: FileKind
    status_interval: float
    reassembler: LineReassembler
    _clock: Callable[[], Timestamp]
    _fd: Optional[int]
    _state: FileState
    _last_stat: Optional[StatSnapshot]
    _last_read: Optional[Timestamp]

    def __init__(
            self,
            path: str,
            kind: FileKind,
            clock: Callable[[], Timestamp] = monotonic,
            status_interval: float = STATUS_FILE_READ_INTERVAL,
    ) -> None:
        self.path = path
        self.kind = kind
        self.status_interval = status_interval
        self.reassembler = LineReassembler(path)
        self._clock = clock
        self._fd = None
        self._state = 'unopened'
        self._last_stat = None
        self._last_read = None

    def __repr__(self) -> str:
        return f'MonitoredFile({self.path!r}, {self.kind!r})'

    @property
    def is_status(self) -> bool:
        return self.kind == 'status'

    @property
    def state(self) -> FileState:
        return self._state

    @property
    def fileno(self) -> Optional[int]:
        return self._fd

    @property
    def last_read(self) -> Optional[Timestamp]:
        return self._last_read

    def close(self) -> None:
        fd = self._fd
        if fd is not None:
            self._fd = None
            try:
                os.close(fd)
            except OSError as exc:
                logger.warning(f'{self.path}: Error closing file: {exc}', exc_info=exc)

    def open(self) -> bool:
        """
        Open the path (closing any previously opened descriptor).

        Log files are positioned at their end.
        """
        had_fd = self._fd is not None
        self.close()
        self.reassembler.reset()

        try:
            fd = os.open(self.path, os.O_RDONLY | os.O_NONBLOCK)
        except OSError as exc:
            if self._state != 'unavailable':
                logger.debug(f'{self.path}: File has become inaccessible: {exc}')
            self._state = 'unavailable'
            return False

        if not self.is_status:
            try:
                os.lseek(fd, 0, os.SEEK_END)
            except OSError as exc:
                logger.error(f'{self.path}: Error seeking to end of file: {exc}', exc_info=exc)

        if logger.isEnabledFor(logging.DEBUG):
            what = 'been replaced' if had_fd else 'appeared'
            how = 'reading from start' if self.is_status else 'following end of new file'
            logger.debug(f'{self.path}: File has {what}, {how}')

        self._fd = fd
        self._state = 'open'
        return True

    def _needs_reopen(self, path_stat: Optional[os.stat_result]) -> bool:
        fd = self._fd
        if fd is None or path_stat is None:
            return True

        try:
            fd_stat = os.fstat(fd)
        except OSError:
            return True

        return (fd_stat.st_dev, fd_stat.st_ino) != (path_stat.st_dev, path_stat.st_ino)

    def read_lines(self) -> Generator[str, None, None]:
        """
        Perform one poll tick for this file and yield all lines completed
        by the newly read bytes.
        """
        if self.is_status and self._last_read is not None:
            if self._clock() - self._last_read < self.status_interval:
                return

        path_stat: Optional[os.stat_result]
        try:
            path_stat = os.stat(self.path)
        except OSError:
            path_stat = None

        if self._needs_reopen(path_stat):
            self.open()

        fd = self._fd
        if fd is None:
            return

        if self.is_status:
            if path_stat is not None:
                snapshot = _snapshot(path_stat)
                if snapshot == self._last_stat:
                    self._last_read = self._clock()
                    return

                self._last_stat = snapshot

            # the previous read may have ended with an unterminated line
            self.reassembler.reset()
            os.lseek(fd, 0, os.SEEK_SET)

        try:
            while True:
                self._check_truncated(fd)

                try:
                    chunk = os.read(fd, READ_BUFFER_SIZE)
                except BlockingIOError:
                    break
                except OSError as exc:
                    logger.error(f'{self.path}: Read error: {exc}')
                    break

                if not chunk:
                    break

                yield from self.reassembler.feed(chunk)
        finally:
            self._last_read = self._clock()

    def _check_truncated(self, fd: int) -> None:
        try:
            size = os.fstat(fd).st_size
            offset = os.lseek(fd, 0, os.SEEK_CUR)
        except OSError:
            return

        if size < offset:
            logger.info(f'{self.path}: File was truncated, reading from start')
            os.lseek(fd, 0, os.SEEK_SET)
