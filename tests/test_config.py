import dataclasses
import os
from pathlib import Path

import pytest

from runny.config import DEFAULT_GRACE_PERIOD, Config, load_config
from runny.errors import ConfigError, ParseError


def test_defaults() -> None:
    config = Config(command="echo hi")
    assert config.argv() == ["echo", "hi"]
    assert config.timeout is None
    assert config.effective_grace_period == DEFAULT_GRACE_PERIOD
    assert Config(command="x", grace_period=0).effective_grace_period == 0


def test_config_is_immutable() -> None:
    config = Config(command=["ls", "-l"], env={"A": "1"}, path=["/bin"])
    assert config.command == ("ls", "-l")
    assert config.path == ("/bin",)
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.timeout = 3  # type: ignore[misc]
    with pytest.raises(TypeError):
        config.env["B"] = "2"  # type: ignore[index]


@pytest.mark.parametrize(
    ("kwargs", "key"),
    [
        ({"timeout": 0}, "timeout"),
        ({"timeout": -1.5}, "timeout"),
        ({"grace_period": -1}, "grace_period"),
    ],
)
def test_invalid_values(kwargs: dict, key: str) -> None:
    with pytest.raises(ConfigError, match=f"Unable to parse config key '{key}'"):
        Config(command="true", **kwargs)


def test_parse_error_surfaces_from_argv() -> None:
    with pytest.raises(ParseError):
        Config(command="echo 'oops").argv()


def test_build_environ() -> None:
    config = Config(command="true", env={"B": None, "C": "3"}, path=["/opt/bin", "/bin"])
    environ = config.build_environ({"A": "1", "B": "2", "PATH": "/usr/bin"})
    assert environ == {"A": "1", "C": "3", "PATH": os.pathsep.join(["/opt/bin", "/bin"])}


def test_build_environ_inherits_process_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RUNNY_INHERITED", "yes")
    assert Config(command="true").build_environ()["RUNNY_INHERITED"] == "yes"


def test_env_file(tmp_path: Path) -> None:
    (tmp_path / ".env").write_text("FOO=bar\nBAZ=${FOO}-x\nQUX=from-file\n")
    config = Config(
        command="true", cwd=str(tmp_path), env_file=".env", env={"QUX": "override"}
    )
    env = config.read_env_file()
    assert env["FOO"] == "bar"
    assert env["BAZ"] == "bar-x"
    assert env["QUX"] == "override"


def test_missing_env_file(tmp_path: Path) -> None:
    config = Config(command="true", cwd=str(tmp_path), env_file="nope.env")
    with pytest.raises(ConfigError, match="env_file"):
        config.read_env_file()


def test_with_overrides() -> None:
    config = Config(command="true", timeout=5)
    updated = config.with_overrides(timeout=None, cwd="/tmp", path=("/bin",))
    assert updated.timeout == 5
    assert updated.cwd == "/tmp"
    assert updated.path == ("/bin",)
    assert config.cwd is None


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / "runny.toml"
    path.write_text(
        """
command = ["sleep", "10"]
timeout = 3
grace_period = 0.5
cwd = "/tmp"
path = ["/usr/bin"]

[env]
GREETING = "hello"
"""
    )
    config = load_config(path)
    assert config == Config(
        command=("sleep", "10"),
        timeout=3.0,
        grace_period=0.5,
        cwd="/tmp",
        path=("/usr/bin",),
        env={"GREETING": "hello"},
    )
    assert load_config(path, command="true").command == "true"


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ('command = "x"\ntimeout = "soon"', "Unable to parse config key 'timeout'"),
        ('command = "x"\nbogus = 1', r"unknown keys: \['bogus'\]"),
        ("timeout = 1", r"missing keys: \['command'\]"),
        ('command = "x"\n[env]\nA = 1', "Unable to parse config key 'env.A'"),
        ("command = ", "Unable to parse config key ''"),
    ],
)
def test_load_config_errors(tmp_path: Path, text: str, message: str) -> None:
    path = tmp_path / "runny.toml"
    path.write_text(text)
    with pytest.raises(ConfigError, match=message):
        load_config(path)
