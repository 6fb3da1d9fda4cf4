"""
CLI entry point and command registration.
"""

# Standard library imports
import signal
import sys
import threading
from pathlib import Path
from typing import Optional, Tuple

# Third-party imports
import click
from dotenv import load_dotenv

# Local/package imports
from .config import ConfigError, ExecutionConfig, get_config, get_root
from .core.types import StreamSink
from .execution import TerminalExecutor
from .utils.logger import get_logger, set_logger

logger = get_logger(__name__)

EXIT_FAILED = 1


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("-v", "--verbose", is_flag=True, help="Enable info logging")
@click.option("--log-dir", type=click.Path(file_okay=False), help="Directory for log files")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False),
    help="Load settings from this .env file instead of the project one",
)
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool = False,
    verbose: bool = False,
    log_dir: Optional[str] = None,
    env_file: Optional[str] = None,
):
    """Run shell command sequences on a pseudo-terminal."""
    load_dotenv(env_file or get_root() / ".env")

    try:
        config = get_config(force_refresh=True)
    except ConfigError as e:
        click.secho(f"✗ Configuration error: {e}", fg="red", err=True)
        raise click.Abort() from e

    directory = Path(log_dir) if log_dir else config.log_dir
    set_logger(
        log_file=directory / "stagecoach.log" if directory else None,
        verbose=verbose or config.verbose,
        debug=debug or config.debug,
    )
    ctx.obj = config


@cli.command()
@click.argument("commands", nargs=-1, required=True)
@click.option("--cwd", type=click.Path(exists=True, file_okay=False), help="Working directory")
@click.option("--echo-commands", is_flag=True, help="Print each command before running it")
@click.pass_obj
def run(
    config: ExecutionConfig,
    commands: Tuple[str, ...],
    cwd: Optional[str],
    echo_commands: bool,
):
    """Run COMMANDS in order, stopping at the first failure.

    Output of every command is streamed to stdout as it is produced.
    SIGINT or SIGTERM stops the running command.

    Resource locks live in process memory and are not shared between
    invocations; use LockedExecutionCoordinator from Python to serialize
    runs against the same resource.
    """
    executor = TerminalExecutor(
        StreamSink(sys.stdout), verbose=echo_commands, config=config, cwd=cwd
    )
    results = []

    def worker() -> None:
        results.append(executor.execute_all(commands))

    def handle_signal(signum, frame) -> None:
        logger.info("Received signal %s, stopping", signum)
        executor.stop()

    previous = {}
    # Handlers can only be installed from the main thread
    if threading.current_thread() is threading.main_thread():
        previous = {
            sig: signal.signal(sig, handle_signal)
            for sig in (signal.SIGINT, signal.SIGTERM)
        }
    try:
        # The main thread only waits, so the handler never runs while it
        # holds one of the executor's locks
        thread = threading.Thread(target=worker, name="stagecoach-run", daemon=True)
        thread.start()
        while thread.is_alive():
            thread.join(0.1)
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)

    if results != [True]:
        sys.exit(EXIT_FAILED)


@cli.command(name="config")
@click.pass_obj
def show_config(config: ExecutionConfig):
    """Show the effective configuration."""
    for key, value in config.to_dict().items():
        click.echo(f"{key}: {value}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
