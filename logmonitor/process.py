from typing import Sequence

import logging

from subprocess import Popen, PIPE

from .constants import READ_BUFFER_SIZE
from .errors import SpawnError, OutputError

logger = logging.getLogger(__name__)

__all__ = (
    'ProcessRunner',
)

class ProcessRunner:
    """
    Spawns the external executables (filters, field resolvers, senders).

    Synchronous invocations block the caller until the child exits. Detached
    invocations are never waited for by the caller; they are collected by
    `reap_zombies()`, which the poll loop calls once per tick and once more
    at shutdown.
    """
    __slots__ = (
        '_detached',
    )

    _detached: list[Popen]

    def __init__(self) -> None:
        self._detached = []

    @property
    def pending(self) -> int:
        """
        Number of detached children that have not been reaped yet.
        """
        return len(self._detached)

    def run_capturing(self, exe: str, args: Sequence[str], output_size: int = 0) -> tuple[int, str]:
        """
        Run `exe` with `args` and wait for it to exit.

        If `output_size` is greater than 0 up to that many bytes of the
        childs standard output are captured, anything beyond that is read
        and discarded. Otherwise standard output is inherited.

        Returns the exit status and the captured output.
        """
        capture = output_size > 0

        try:
            proc = Popen(
                args   = [exe, *args],
                stdout = PIPE if capture else None,
            )
        except (OSError, ValueError) as exc:
            # ValueError: an argument contains a NUL byte
            raise SpawnError(f'{exe}: Failed to execute: {exc}') from exc

        output = b''
        read_error: OSError|None = None

        with proc:
            stdout = proc.stdout
            if stdout is not None:
                try:
                    output = stdout.read(output_size)
                    # drain the rest so the child doesn't block on a full pipe
                    while stdout.read(READ_BUFFER_SIZE):
                        pass
                except OSError as exc:
                    read_error = exc

            status = proc.wait()

        if read_error is not None and not output:
            raise OutputError(f'{exe}: Failed to read output: {read_error}') from read_error

        if status < 0:
            raise SpawnError(f'{exe}: Terminated by signal {-status}')

        return status, output.decode(errors='replace')

    def run_detached(self, exe: str, args: Sequence[str]) -> None:
        """
        Start `exe` with `args` without waiting for it or capturing any output.
        """
        try:
            proc = Popen(args=[exe, *args])
        except (OSError, ValueError) as exc:
            # ValueError: an argument contains a NUL byte
            raise SpawnError(f'{exe}: Failed to execute: {exc}') from exc

        self._detached.append(proc)

    def reap_zombies(self) -> int:
        """
        Collect all detached children that already exited without blocking.

        Returns the number of collected children.
        """
        running: list[Popen] = []
        reaped = 0

        for proc in self._detached:
            status = proc.poll()
            if status is None:
                running.append(proc)
            else:
                reaped += 1
                if status != 0 and logger.isEnabledFor(logging.DEBUG):
                    logger.debug(f'{proc.args[0]}: Exited with status {status}') # type: ignore

        self._detached = running

        return reaped
