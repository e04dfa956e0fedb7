"""Custom exceptions for zk-pig."""

from typing import List, Optional


class ZkPigError(Exception):
    """Base exception for all zk-pig errors."""

    pass


class ConfigError(ZkPigError):
    """Raised when the configuration cannot be resolved."""

    def __init__(self, message: str):
        super().__init__(f"invalid configuration: {message}")


class ServiceCreationError(ZkPigError):
    """Raised when the prover inputs service cannot be constructed."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"failed to create prover inputs service: {cause}")


class ServiceStartError(ZkPigError):
    """Raised when the prover inputs service fails to start."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"failed to start prover inputs service: {cause}")


class ServiceStopError(ZkPigError):
    """Raised when the prover inputs service fails to stop."""

    def __init__(self, cause: object):
        self.cause = cause
        super().__init__(f"failed to stop prover inputs service: {cause}")


class InvalidBlockNumberError(ZkPigError):
    """Raised when a block number argument cannot be parsed."""

    def __init__(self, value: str, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"invalid block number: {value!r}: {reason}")


class IncompleteS3ConfigError(ZkPigError):
    """Raised when the S3 storage group is only partially configured."""

    def __init__(self, missing_fields: List[str]):
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"{', '.join(self.missing_fields)} must be specified when using s3 storage"
        )


class StageError(ZkPigError):
    """Raised when a pipeline stage fails on the service."""

    def __init__(self, stage: str, block_number: object, cause: Optional[object]):
        self.stage = stage
        self.block_number = block_number
        self.cause = cause
        super().__init__(f"{stage} failed for block {block_number}: {cause}")
