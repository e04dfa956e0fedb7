"""Block number parsing for the `--block-number` argument."""

import re
from enum import Enum
from typing import Union

from .exceptions import InvalidBlockNumberError

hex_pattern = re.compile(r"^0[xX][0-9a-fA-F]+$")
decimal_pattern = re.compile(r"^[0-9]+$")


class BlockTag(str, Enum):
    """Named block positions accepted by the JSON-RPC block parameter."""

    LATEST = "latest"
    EARLIEST = "earliest"
    PENDING = "pending"
    SAFE = "safe"
    FINALIZED = "finalized"

    def __str__(self) -> str:
        return self.value


BlockNumber = Union[int, BlockTag]


def parse_block_number(raw: str) -> BlockNumber:
    """
    Parse a block number argument.

    Accepts a decimal integer, a 0x-prefixed hex quantity or one of the
    `BlockTag` names.

    Raises
    ------
    InvalidBlockNumberError
        If the value is empty, negative or neither a number nor a known tag.
    """
    value = str(raw).strip()
    if not value:
        raise InvalidBlockNumberError(raw, "block number cannot be empty")

    try:
        return BlockTag(value)
    except ValueError:
        pass

    try:
        if hex_pattern.match(value):
            return int(value[2:], 16)
        if decimal_pattern.match(value):
            return int(value, 10)
    except ValueError as e:
        raise InvalidBlockNumberError(raw, str(e)) from e

    raise InvalidBlockNumberError(
        raw,
        "must be a decimal integer, a 0x-prefixed hex quantity or one of "
        + "/".join(tag.value for tag in BlockTag),
    )


def to_rpc_arg(block_number: BlockNumber) -> str:
    """Render a block number as a JSON-RPC block parameter."""
    if isinstance(block_number, BlockTag):
        return block_number.value
    return hex(block_number)
