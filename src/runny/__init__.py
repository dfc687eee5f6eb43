from .config import Config, load_config
from .errors import (
    AlreadyTakenError,
    ConfigError,
    ParseError,
    RunnyError,
    SpawnError,
    StreamIOError,
    TerminateError,
)
from .process import ExitStatus, Waiter
from .running import Running, start
from .streams import InputStream, OutputStream

__all__ = [
    "AlreadyTakenError",
    "Config",
    "ConfigError",
    "ExitStatus",
    "InputStream",
    "OutputStream",
    "ParseError",
    "Running",
    "RunnyError",
    "SpawnError",
    "StreamIOError",
    "TerminateError",
    "Waiter",
    "load_config",
    "start",
]
