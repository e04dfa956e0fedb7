"""Pipeline stages and their binding to the prover inputs service."""

import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable

from .block_number import BlockNumber
from .exceptions import StageError
from .service import ProverInputsService

if TYPE_CHECKING:
    from .core import ExecutionContext

logger = logging.getLogger("zk_pig")


class Stage(str, Enum):
    """Pipeline stages a command can run."""

    GENERATE = "generate"
    PREFLIGHT = "preflight"
    PREPARE = "prepare"
    EXECUTE = "execute"

    def __str__(self) -> str:
        return self.value


class StageHandler:
    """Runs a stage against the service of an execution context."""

    @staticmethod
    def get_operation(
        stage: Stage, svc: ProverInputsService
    ) -> Callable[..., None]:
        """Return the service method implementing a stage."""
        match stage:
            case Stage.GENERATE:
                return svc.generate
            case Stage.PREFLIGHT:
                return svc.preflight
            case Stage.PREPARE:
                return svc.prepare
            case Stage.EXECUTE:
                return svc.execute
            case _:
                raise ValueError(f"Unknown stage: {stage}")

    @staticmethod
    def run(stage: Stage, ctx: "ExecutionContext") -> None:
        """Invoke the stage on the context's service with its block number."""
        block_number: BlockNumber = ctx.block_number
        operation = StageHandler.get_operation(stage, ctx.svc)
        logger.info(f"Running {stage} for block {block_number}")
        try:
            operation(ctx.cancel, block_number)
        except Exception as e:
            raise StageError(stage.value, block_number, e) from e
        logger.info(f"Completed {stage} for block {block_number}")
