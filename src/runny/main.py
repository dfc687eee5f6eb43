from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Optional

import click
from click.exceptions import Exit
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import Config, load_config
from .errors import ConfigError, ParseError, SpawnError
from .running import start

if TYPE_CHECKING:
    from .process import ExitStatus
    from .streams import InputStream, OutputStream

logger = logging.getLogger(__name__)

err = Console(stderr=True)

EXIT_TERMINATED = 124
EXIT_USAGE = 125
EXIT_NOT_FOUND = 127


def exit_code(status: ExitStatus) -> int:
    if status.terminated:
        return EXIT_TERMINATED
    if status.code is not None:
        return status.code
    return 128 + (status.signal or 0)


def _parse_env(values: tuple[str, ...]) -> dict[str, Optional[str]]:
    env: dict[str, Optional[str]] = {}
    for value in values:
        name, sep, val = value.partition("=")
        if not name:
            raise click.BadParameter(f"{value!r} is not NAME=VALUE", param_hint="--env")
        # "-e NAME" without a value unsets the variable
        env[name] = val if sep else None
    return env


def _copy_output(source: OutputStream, sink: BinaryIO) -> None:
    while data := source.read(4096):
        sink.write(data)
        sink.flush()


def _copy_input(source: BinaryIO, sink: InputStream) -> None:
    read = getattr(source, "read1", source.read)
    try:
        while data := read(4096):
            sink.write(data)
    except OSError as e:
        logger.debug("Stopped forwarding stdin: %s", e)
    finally:
        sink.close()


@click.command(context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False})
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="TOML file with defaults.",
)
@click.option("--timeout", type=float, help="Terminate after this many seconds.")
@click.option("--grace-period", type=float, help="Seconds between stop and kill.")
@click.option("--cwd", type=click.Path(file_okay=False, exists=True))
@click.option("-e", "--env", "env", multiple=True, metavar="NAME=VALUE")
@click.option("--env-file", type=str)
@click.option("--path", "path", multiple=True, help="Replace PATH for the child.")
@click.option(
    "--no-split",
    is_flag=True,
    help="Run a single COMMAND argument as a program path instead of splitting it.",
)
@click.option("-v", "--verbose", is_flag=True)
@click.version_option(package_name="runny")
def main(
    command: tuple[str, ...],
    *,
    config_path: Optional[Path],
    timeout: Optional[float],
    grace_period: Optional[float],
    cwd: Optional[str],
    env: tuple[str, ...],
    env_file: Optional[str],
    path: tuple[str, ...],
    no_split: bool,
    verbose: bool,
) -> None:
    """Run COMMAND in its own session and stream its output.

    A single COMMAND argument is split like a shell command line, so
    `runny "make -j4"` works.  Pass --no-split to run a path containing
    spaces as-is.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=err, show_path=False)],
        )

    argv = command[0] if len(command) == 1 and not no_split else list(command)
    try:
        if config_path:
            config = load_config(config_path, command=argv)
        else:
            config = Config(command=argv)
        overrides = _parse_env(env)
        config = config.with_overrides(
            timeout=timeout,
            grace_period=grace_period,
            cwd=cwd,
            env={**config.env, **overrides} if overrides else None,
            env_file=env_file,
            path=path or None,
        )
        running = start(config)
    except (ConfigError, ParseError) as e:
        err.print(f"[red]error:[/red] {escape(str(e))}", highlight=False)
        raise Exit(EXIT_USAGE) from None
    except SpawnError as e:
        err.print(f"[red]error:[/red] {escape(str(e))}", highlight=False)
        raise Exit(EXIT_NOT_FOUND) from None

    with running:
        output = running.take_output()
        stdin = threading.Thread(
            target=_copy_input,
            args=(click.get_binary_stream("stdin"), running.take_input()),
            daemon=True,
        )
        stdin.start()
        try:
            _copy_output(output, click.get_binary_stream("stdout"))
            status = running.result()
        except KeyboardInterrupt:
            status = running.terminate()

    if status.terminated:
        err.print(
            f"[yellow]terminated:[/yellow] {escape(' '.join(config.argv()))}",
            highlight=False,
        )
    raise Exit(exit_code(status))


if __name__ == "__main__":
    main()
