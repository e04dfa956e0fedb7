"""Execution context and command lifecycle for zk-pig commands."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .block_number import BlockNumber, parse_block_number
from .config import Config, GlobalConfig, resolve_config
from .exceptions import ServiceCreationError, ServiceStartError, ServiceStopError
from .service import ProverInputsService, new_service
from .stages import Stage, StageHandler
from .validation import validate_s3_config

logger = logging.getLogger("zk_pig")


@dataclass
class ExecutionContext:
    """State of a single command invocation."""

    config: Config
    cancel: threading.Event
    svc: Optional[ProverInputsService] = None
    block_number: Optional[BlockNumber] = None


def setup(
    global_config: GlobalConfig, block_number: str, cancel: threading.Event
) -> ExecutionContext:
    """
    Prepare an execution context.

    Steps run in order: resolve the configuration, create and start the
    service, parse the block number, validate the S3 storage group. The first
    failing step raises and the remaining ones are skipped.
    """
    ctx = ExecutionContext(config=resolve_config(global_config), cancel=cancel)

    try:
        ctx.svc = new_service(ctx.config)
    except ServiceCreationError:
        raise
    except Exception as e:
        raise ServiceCreationError(e) from e

    try:
        ctx.svc.start(cancel)
    except Exception as e:
        raise ServiceStartError(e) from e
    logger.debug("Prover inputs service started")

    ctx.block_number = parse_block_number(block_number)

    validate_s3_config(ctx.config)

    return ctx


def teardown(ctx: ExecutionContext) -> None:
    """Stop the context's service."""
    try:
        ctx.svc.stop(ctx.cancel)
    except Exception as e:
        raise ServiceStopError(e) from e
    logger.debug("Prover inputs service stopped")


@contextmanager
def prover_input_context(
    global_config: GlobalConfig, block_number: str, cancel: threading.Event
) -> Iterator[ExecutionContext]:
    """
    Set up an execution context and stop its service on exit.

    The service is stopped exactly once whenever setup succeeded. If the body
    raised, a stop failure or interruption is logged and the body's exception
    propagates.
    """
    ctx = setup(global_config, block_number, cancel)
    try:
        yield ctx
    except BaseException:
        try:
            teardown(ctx)
        except ServiceStopError as stop_error:
            logger.error(str(stop_error))
        except BaseException:
            logger.error("Interrupted while stopping prover inputs service")
        raise
    teardown(ctx)


def run_stage(
    global_config: GlobalConfig,
    stage: Stage,
    block_number: str,
    cancel: threading.Event,
) -> None:
    """Run one pipeline stage for a block with a freshly started service."""
    with prover_input_context(global_config, block_number, cancel) as ctx:
        StageHandler.run(stage, ctx)


def dump_config(global_config: GlobalConfig) -> str:
    """Return the resolved configuration as indented JSON."""
    return resolve_config(global_config).model_dump_json(indent=2)
