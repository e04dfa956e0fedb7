"""Configuration for zk-pig.

Settings are merged from command-line flags, `ZK_PIG_*` environment variables
and a `.env` file into a flat `GlobalConfig`. Commands then resolve it into the
typed `Config` tree and fill defaults with `resolve_config`.
"""

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigError

ENV_PREFIX = "ZK_PIG_"

DEFAULT_DATA_DIR = Path("data")
DEFAULT_PREFLIGHT_SUBDIR = "preflight"
DEFAULT_PROVER_INPUTS_SUBDIR = "inputs"


class ContentType(str, Enum):
    """Serialization format of stored prover inputs."""

    JSON = "application/json"
    PROTOBUF = "application/protobuf"


class ContentEncoding(str, Enum):
    """Compression applied to stored prover inputs."""

    PLAIN = "plain"
    GZIP = "gzip"
    FLATE = "flate"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(str, Enum):
    TEXT = "text"
    JSON = "json"


class FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class GlobalConfig(FrozenModel):
    """Process-wide settings as collected from flags and environment."""

    chain_id: Optional[int] = None
    chain_rpc_url: Optional[str] = None
    data_dir: Optional[Path] = None
    preflight_data_dir: Optional[Path] = None
    prover_inputs_dir: Optional[Path] = None
    prover_inputs_content_type: Optional[ContentType] = None
    prover_inputs_content_encoding: Optional[ContentEncoding] = None
    s3_bucket: str = ""
    s3_bucket_key_prefix: str = ""
    s3_access_key: str = ""
    s3_secret_key: str = ""
    s3_region: str = ""
    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None
    service_backend: Optional[str] = None


class RPCConfig(FrozenModel):
    url: Optional[str] = None


class ChainConfig(FrozenModel):
    id: Optional[int] = Field(default=None, ge=0)
    rpc: RPCConfig = Field(default_factory=RPCConfig)


class FileStoreConfig(FrozenModel):
    dir: Optional[Path] = None


class AWSCredentials(FrozenModel):
    access_key: str = ""
    secret_key: str = ""


class AWSProviderConfig(FrozenModel):
    region: str = ""
    credentials: AWSCredentials = Field(default_factory=AWSCredentials)


class S3Config(FrozenModel):
    """Optional object storage for prover inputs. Empty strings mean unset."""

    bucket: str = ""
    bucket_key_prefix: str = ""
    aws_provider: AWSProviderConfig = Field(default_factory=AWSProviderConfig)


class PreflightDataStoreConfig(FrozenModel):
    file: FileStoreConfig = Field(default_factory=FileStoreConfig)


class ProverInputStoreConfig(FrozenModel):
    content_type: Optional[ContentType] = None
    content_encoding: Optional[ContentEncoding] = None
    file: FileStoreConfig = Field(default_factory=FileStoreConfig)
    s3: S3Config = Field(default_factory=S3Config)


class LogConfig(FrozenModel):
    level: Optional[LogLevel] = None
    format: Optional[LogFormat] = None


class Config(FrozenModel):
    """Resolved zk-pig configuration."""

    chain: ChainConfig = Field(default_factory=ChainConfig)
    data_dir: Optional[Path] = None
    preflight_data_store: PreflightDataStoreConfig = Field(
        default_factory=PreflightDataStoreConfig
    )
    prover_input_store: ProverInputStoreConfig = Field(
        default_factory=ProverInputStoreConfig
    )
    log: LogConfig = Field(default_factory=LogConfig)
    service_backend: Optional[str] = Field(
        default=None, pattern=r"^[\w.]+:[\w.]+$"
    )

    @classmethod
    def from_global_config(cls, global_config: GlobalConfig) -> "Config":
        """Build the configuration tree from the flat process-wide settings."""
        try:
            return cls.model_validate(
                {
                    "chain": {
                        "id": global_config.chain_id,
                        "rpc": {"url": global_config.chain_rpc_url},
                    },
                    "data_dir": global_config.data_dir,
                    "preflight_data_store": {
                        "file": {"dir": global_config.preflight_data_dir}
                    },
                    "prover_input_store": {
                        "content_type": global_config.prover_inputs_content_type,
                        "content_encoding": global_config.prover_inputs_content_encoding,
                        "file": {"dir": global_config.prover_inputs_dir},
                        "s3": {
                            "bucket": global_config.s3_bucket,
                            "bucket_key_prefix": global_config.s3_bucket_key_prefix,
                            "aws_provider": {
                                "region": global_config.s3_region,
                                "credentials": {
                                    "access_key": global_config.s3_access_key,
                                    "secret_key": global_config.s3_secret_key,
                                },
                            },
                        },
                    },
                    "log": {
                        "level": global_config.log_level,
                        "format": global_config.log_format,
                    },
                    "service_backend": global_config.service_backend,
                }
            )
        except ValidationError as e:
            raise ConfigError(_format_validation_error(e)) from e

    def set_default(self) -> "Config":
        """Return a copy of the configuration with every unset value filled."""
        data_dir = self.data_dir or DEFAULT_DATA_DIR
        store = self.prover_input_store
        return self.model_copy(
            update={
                "data_dir": data_dir,
                "preflight_data_store": PreflightDataStoreConfig(
                    file=FileStoreConfig(
                        dir=self.preflight_data_store.file.dir
                        or data_dir / DEFAULT_PREFLIGHT_SUBDIR
                    )
                ),
                "prover_input_store": store.model_copy(
                    update={
                        "content_type": store.content_type or ContentType.JSON,
                        "content_encoding": store.content_encoding
                        or ContentEncoding.PLAIN,
                        "file": FileStoreConfig(
                            dir=store.file.dir
                            or data_dir / DEFAULT_PROVER_INPUTS_SUBDIR
                        ),
                    }
                ),
                "log": LogConfig(
                    level=self.log.level or LogLevel.INFO,
                    format=self.log.format or LogFormat.TEXT,
                ),
            }
        )


def resolve_config(global_config: GlobalConfig) -> Config:
    """Resolve the process-wide settings into a fully defaulted `Config`."""
    return Config.from_global_config(global_config).set_default()


def _format_validation_error(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in error.errors()
    )
