import os
import sys
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, Optional, Union

import dotenv

from .command import split_command
from .errors import ConfigError
from .typecast import typecast

if sys.version_info < (3, 11):
    import tomli as tomllib
else:
    import tomllib

__all__ = ["Config", "load_config", "DEFAULT_GRACE_PERIOD"]

DEFAULT_GRACE_PERIOD = 2.0


@dataclass(frozen=True, kw_only=True)
class Config:
    """Everything needed to start one child process.

    ``env`` overlays the inherited environment; a ``None`` value unsets the
    variable.  A non-empty ``path`` replaces ``PATH`` for the child and is
    also where the executable is looked up.
    """

    command: Union[str, tuple[str, ...]]
    timeout: Optional[float] = None
    grace_period: Optional[float] = None
    cwd: Optional[str] = None
    env: Mapping[str, Optional[str]] = field(default_factory=dict)
    env_file: Optional[str] = None
    path: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.command, str):
            object.__setattr__(self, "command", tuple(self.command))
        if self.cwd is not None:
            object.__setattr__(self, "cwd", os.fspath(self.cwd))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))
        object.__setattr__(self, "path", tuple(os.fspath(p) for p in self.path))

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout", "must be a positive number of seconds")
        if self.grace_period is not None and self.grace_period < 0:
            raise ConfigError("grace_period", "must not be negative")

    @property
    def effective_grace_period(self) -> float:
        if self.grace_period is None:
            return DEFAULT_GRACE_PERIOD
        return self.grace_period

    def argv(self) -> list[str]:
        return split_command(self.command)

    def read_env_file(self) -> dict[str, Optional[str]]:
        env = {}

        if self.env_file:
            env_file = Path(self.cwd or ".") / self.env_file
            if not env_file.is_file():
                raise ConfigError("env_file", f"{str(env_file)!r} does not exist")
            env.update(dotenv.dotenv_values(env_file, interpolate=False))

        env.update(self.env)

        return OrderedDict(dotenv.main.resolve_variables(env.items(), override=True))

    def build_environ(self, base: Optional[Mapping[str, str]] = None) -> dict[str, str]:
        environ = dict(os.environ if base is None else base)
        for name, value in self.read_env_file().items():
            if value is None:
                environ.pop(name, None)
            else:
                environ[name] = value
        if self.path:
            environ["PATH"] = os.pathsep.join(self.path)
        return environ

    def with_overrides(self, **changes: Any) -> "Config":
        return replace(
            self, **{k: v for k, v in changes.items() if v is not None}
        )


def load_config(path: Path, *, command: Union[str, list[str], None] = None) -> Config:
    """Read a TOML file of ``Config`` keys.  ``command`` replaces the file's."""
    try:
        data = tomllib.loads(Path(path).read_text())
    except tomllib.TOMLDecodeError as e:
        raise ConfigError("", str(e)) from None
    if command is not None:
        data["command"] = command
    return typecast(Config, data)
