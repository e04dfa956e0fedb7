"""Command-line interface for zk-pig."""

import logging
import signal
import sys
import threading
from contextlib import contextmanager
from functools import wraps
from pathlib import Path
from typing import Callable, Iterator, Optional

import typer
from dotenv import load_dotenv
from loguru import logger as json_logger
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from .config import (
    ENV_PREFIX,
    ContentEncoding,
    ContentType,
    GlobalConfig,
    LogFormat,
    LogLevel,
)
from .core import dump_config, run_stage
from .exceptions import ZkPigError
from .stages import Stage

logger = logging.getLogger("zk_pig")
console = Console()
err_console = Console(stderr=True)

DEFAULT_BLOCK_NUMBER = "latest"
DEFAULT_ENV_FILE = Path(".env")

app = typer.Typer(
    help="zk-pig - Generate prover inputs for Ethereum-compatible blocks.",
    no_args_is_help=True,
)


class LoguruHandler(logging.Handler):
    """Forwards standard logging records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = json_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno
        json_logger.opt(exception=record.exc_info).bind(logger=record.name).log(
            level, record.getMessage()
        )


def configure_logging(level: LogLevel, fmt: LogFormat) -> None:
    """Route logs to stderr in the requested format."""
    json_logger.remove()
    if fmt == LogFormat.JSON:
        json_logger.add(sys.stderr, level=level.value.upper(), serialize=True)
        handler: logging.Handler = LoguruHandler()
    else:
        handler = RichHandler(console=err_console, rich_tracebacks=True)
    logging.basicConfig(
        level=level.value.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[handler],
        force=True,
    )


def handle_command_error(operation: str) -> Callable:
    """Decorator to report command errors and exit with a non-zero code."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except ZkPigError as e:
                err_console.print(f"[red]Error: {escape(str(e))}[/]", soft_wrap=True)
                raise typer.Exit(1)
            except Exception as e:
                err_console.print(
                    f"[red]Error {operation}:[/] {escape(str(e))}", soft_wrap=True
                )
                logger.exception("Unexpected error")
                raise typer.Exit(1)

        return wrapper

    return decorator


@contextmanager
def cancel_on_signals() -> Iterator[threading.Event]:
    """
    Provide a cancellation event set on SIGINT or SIGTERM.

    SIGINT still raises `KeyboardInterrupt` after setting the event. Handlers
    can only be installed from the main thread; elsewhere the event is only
    set by the caller.
    """
    cancel = threading.Event()
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    def _handler(signum, frame):
        cancel.set()
        if signum == signal.SIGINT:
            raise KeyboardInterrupt

    previous = {
        sig: signal.signal(sig, _handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }
    try:
        yield cancel
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)


def _load_env_file(env_file: Optional[Path]) -> Optional[Path]:
    if env_file is None and DEFAULT_ENV_FILE.is_file():
        env_file = DEFAULT_ENV_FILE
    if env_file is not None:
        load_dotenv(env_file, override=False)
    return env_file


def _envvar(name: str) -> str:
    return f"{ENV_PREFIX}{name}"


@app.callback()
def main(
    ctx: typer.Context,
    env_file: Optional[Path] = typer.Option(
        None,
        "--env-file",
        help="File of KEY=VALUE lines loaded into the environment "
        "(defaults to .env when it is a file)",
        is_eager=True,
        callback=_load_env_file,
        dir_okay=False,
    ),
    chain_id: Optional[int] = typer.Option(
        None,
        "--chain-id",
        envvar=_envvar("CHAIN_ID"),
        min=0,
        help="Chain ID (required by prepare and execute when running offline)",
    ),
    chain_rpc_url: Optional[str] = typer.Option(
        None,
        "--chain-rpc-url",
        envvar=_envvar("CHAIN_RPC_URL"),
        help="URL of a remote JSON-RPC Ethereum Execution Layer node",
    ),
    data_dir: Optional[Path] = typer.Option(
        None,
        "--data-dir",
        envvar=_envvar("DATA_DIR"),
        help="Base data directory",
        file_okay=False,
    ),
    preflight_data_dir: Optional[Path] = typer.Option(
        None,
        "--preflight-data-dir",
        envvar=_envvar("PREFLIGHT_DATA_DIR"),
        help="Directory of preflight data (defaults to <data-dir>/preflight)",
        file_okay=False,
    ),
    prover_inputs_dir: Optional[Path] = typer.Option(
        None,
        "--prover-inputs-dir",
        envvar=_envvar("PROVER_INPUTS_DIR"),
        help="Directory of prover inputs (defaults to <data-dir>/inputs)",
        file_okay=False,
    ),
    prover_inputs_content_type: Optional[ContentType] = typer.Option(
        None,
        "--prover-inputs-content-type",
        envvar=_envvar("PROVER_INPUTS_CONTENT_TYPE"),
        help="Serialization format of stored prover inputs",
    ),
    prover_inputs_content_encoding: Optional[ContentEncoding] = typer.Option(
        None,
        "--prover-inputs-content-encoding",
        envvar=_envvar("PROVER_INPUTS_CONTENT_ENCODING"),
        help="Compression of stored prover inputs",
    ),
    s3_bucket: str = typer.Option(
        "", "--s3-bucket", envvar=_envvar("S3_BUCKET"), help="S3 bucket name"
    ),
    s3_bucket_key_prefix: str = typer.Option(
        "",
        "--s3-bucket-key-prefix",
        envvar=_envvar("S3_BUCKET_KEY_PREFIX"),
        help="Key prefix of stored prover inputs in the S3 bucket",
    ),
    s3_access_key: str = typer.Option(
        "", "--s3-access-key", envvar=_envvar("S3_ACCESS_KEY"), help="AWS access key"
    ),
    s3_secret_key: str = typer.Option(
        "", "--s3-secret-key", envvar=_envvar("S3_SECRET_KEY"), help="AWS secret key"
    ),
    s3_region: str = typer.Option(
        "", "--s3-region", envvar=_envvar("S3_REGION"), help="AWS region"
    ),
    log_level: Optional[LogLevel] = typer.Option(
        None, "--log-level", envvar=_envvar("LOG_LEVEL"), help="Log level"
    ),
    log_format: Optional[LogFormat] = typer.Option(
        None, "--log-format", envvar=_envvar("LOG_FORMAT"), help="Log format"
    ),
    service_backend: Optional[str] = typer.Option(
        None,
        "--service-backend",
        envvar=_envvar("SERVICE_BACKEND"),
        help="Prover inputs service factory, as 'package.module:attribute'",
    ),
):
    """
    Generate prover inputs for Ethereum-compatible blocks.

    Global options can also be set through ZK_PIG_* environment variables or
    an --env-file.
    """
    ctx.obj = GlobalConfig(
        chain_id=chain_id,
        chain_rpc_url=chain_rpc_url,
        data_dir=data_dir,
        preflight_data_dir=preflight_data_dir,
        prover_inputs_dir=prover_inputs_dir,
        prover_inputs_content_type=prover_inputs_content_type,
        prover_inputs_content_encoding=prover_inputs_content_encoding,
        s3_bucket=s3_bucket,
        s3_bucket_key_prefix=s3_bucket_key_prefix,
        s3_access_key=s3_access_key,
        s3_secret_key=s3_secret_key,
        s3_region=s3_region,
        log_level=log_level,
        log_format=log_format,
        service_backend=service_backend,
    )
    configure_logging(log_level or LogLevel.INFO, log_format or LogFormat.TEXT)


def _run(ctx: typer.Context, stage: Stage, block_number: str) -> None:
    with cancel_on_signals() as cancel:
        run_stage(ctx.obj, stage, block_number, cancel)
    console.print(f"[green]✓[/] {stage} completed for block {escape(block_number)}")


@app.command(short_help="Generate prover input for a specific block")
@handle_command_error("generating prover inputs")
def generate(
    ctx: typer.Context,
    block_number: str = typer.Option(
        DEFAULT_BLOCK_NUMBER, "-b", "--block-number", help="Block number"
    ),
):
    """
    Generate prover inputs by running preflight, prepare and execute in a
    single run.

    It runs online and requires --chain-rpc-url to be set to a remote JSON-RPC
    Ethereum Execution Layer node.
    """
    _run(ctx, Stage.GENERATE, block_number)


@app.command(short_help="Collect data needed to generate prover inputs")
@handle_command_error("running preflight")
def preflight(
    ctx: typer.Context,
    block_number: str = typer.Option(
        DEFAULT_BLOCK_NUMBER, "-b", "--block-number", help="Block number"
    ),
):
    """
    Collect necessary data to generate prover inputs from a remote JSON-RPC
    Ethereum Execution Layer node.

    It runs online and requires --chain-rpc-url to be set.
    """
    _run(ctx, Stage.PREFLIGHT, block_number)


@app.command(short_help="Prepare prover inputs from preflight data")
@handle_command_error("preparing prover inputs")
def prepare(
    ctx: typer.Context,
    block_number: str = typer.Option(
        DEFAULT_BLOCK_NUMBER, "-b", "--block-number", help="Block number"
    ),
):
    """
    Prepare prover inputs by basing on data previously collected during
    preflight.

    It can be run offline, in which case --chain-id must be provided.
    """
    _run(ctx, Stage.PREPARE, block_number)


@app.command(short_help="Execute a block against prepared prover inputs")
@handle_command_error("executing block")
def execute(
    ctx: typer.Context,
    block_number: str = typer.Option(
        DEFAULT_BLOCK_NUMBER, "-b", "--block-number", help="Block number"
    ),
):
    """
    Execute block by basing on prover inputs previously generated during
    prepare.

    It can be run offline, in which case --chain-id must be provided.
    """
    _run(ctx, Stage.EXECUTE, block_number)


@app.command("config")
@handle_command_error("resolving configuration")
def show_config(ctx: typer.Context):
    """Print the resolved configuration as JSON."""
    typer.echo(dump_config(ctx.obj))


if __name__ == "__main__":
    app()
