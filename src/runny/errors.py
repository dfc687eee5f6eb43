from __future__ import annotations

__all__ = [
    "RunnyError",
    "ParseError",
    "ConfigError",
    "SpawnError",
    "StreamIOError",
    "AlreadyTakenError",
    "TerminateError",
]


class RunnyError(Exception):
    pass


class ParseError(RunnyError, ValueError):
    def __init__(self, command: str, message: str) -> None:
        self.command = command
        self.message = message
        super().__init__(f"Unable to parse command {command!r}: {message}")


class ConfigError(RunnyError, ValueError):
    def __init__(self, key: str, message: str) -> None:
        self.key = key
        self.message = message
        super().__init__(f"Unable to parse config key {key!r}: {message}")


class SpawnError(RunnyError, OSError):
    pass


class StreamIOError(RunnyError, OSError):
    pass


class AlreadyTakenError(RunnyError):
    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"The {endpoint} stream has already been taken")


class TerminateError(RunnyError):
    def __init__(self, pid: int, message: str) -> None:
        self.pid = pid
        self.message = message
        super().__init__(f"Unable to terminate process {pid}: {message}")
