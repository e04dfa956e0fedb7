"""zk-pig - prover inputs generation for Ethereum-compatible blocks."""

from .block_number import BlockTag, parse_block_number
from .config import Config, GlobalConfig, resolve_config
from .core import ExecutionContext, prover_input_context, run_stage
from .service import ProverInputsService
from .stages import Stage

__all__ = [
    "BlockTag",
    "Config",
    "ExecutionContext",
    "GlobalConfig",
    "ProverInputsService",
    "Stage",
    "parse_block_number",
    "prover_input_context",
    "resolve_config",
    "run_stage",
]
