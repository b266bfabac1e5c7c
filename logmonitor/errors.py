__all__ = (
    'LogmonitorError',
    'ConfigError',
    'SpawnError',
    'OutputError',
)

class LogmonitorError(Exception):
    pass

class ConfigError(LogmonitorError):
    """
    Invalid or incomplete configuration. Fatal at startup.
    """

class SpawnError(LogmonitorError):
    """
    An external executable could not be started or did not exit normally.
    """

class OutputError(LogmonitorError, OSError):
    """
    Reading the standard output of a child failed before anything was captured.
    """
