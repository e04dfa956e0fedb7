"""Validation of configuration field groups that must be set together."""

from dataclasses import dataclass
from operator import attrgetter
from typing import Any, List, Tuple

from .config import Config
from .exceptions import IncompleteS3ConfigError


@dataclass(frozen=True)
class FieldRule:
    """A named string field reached through a dotted attribute path."""

    name: str
    path: str
    required: bool = True

    def value(self, obj: Any) -> str:
        return attrgetter(self.path)(obj)

    def is_set(self, obj: Any) -> bool:
        return self.value(obj) != ""


@dataclass(frozen=True)
class RequiredTogether:
    """
    A group of optional fields that is either unused or fully configured.

    The group is in use as soon as any of its fields is set, optional ones
    included. Once in use, every required field must be set.
    """

    rules: Tuple[FieldRule, ...]

    def in_use(self, obj: Any) -> bool:
        return any(rule.is_set(obj) for rule in self.rules)

    def missing(self, obj: Any) -> List[str]:
        """Names of the required fields that are not set, in declaration order."""
        return [
            rule.name for rule in self.rules if rule.required and not rule.is_set(obj)
        ]

    def check(self, obj: Any) -> List[str]:
        if not self.in_use(obj):
            return []
        return self.missing(obj)


S3_FIELDS = RequiredTogether(
    rules=(
        FieldRule("s3-bucket", "bucket"),
        FieldRule("s3-bucket-key-prefix", "bucket_key_prefix", required=False),
        FieldRule("access-key", "aws_provider.credentials.access_key"),
        FieldRule("secret-key", "aws_provider.credentials.secret_key"),
        FieldRule("region", "aws_provider.region"),
    )
)


def validate_s3_config(config: Config) -> None:
    """Ensure the S3 prover input store is either disabled or complete."""
    missing_fields = S3_FIELDS.check(config.prover_input_store.s3)
    if missing_fields:
        raise IncompleteS3ConfigError(missing_fields)
