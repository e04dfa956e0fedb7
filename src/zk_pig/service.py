"""Contract of the prover inputs service and its construction."""

import importlib
import logging
import threading
from typing import Callable, Protocol

from .block_number import BlockNumber
from .config import Config
from .exceptions import ServiceCreationError

logger = logging.getLogger("zk_pig")


class ProverInputsService(Protocol):
    """
    Long-lived service running the prover inputs pipeline.

    Every method receives the invocation's cancellation event and should
    return early once it is set.
    """

    def start(self, cancel: threading.Event) -> None: ...

    def stop(self, cancel: threading.Event) -> None: ...

    def generate(self, cancel: threading.Event, block_number: BlockNumber) -> None: ...

    def preflight(
        self, cancel: threading.Event, block_number: BlockNumber
    ) -> None: ...

    def prepare(self, cancel: threading.Event, block_number: BlockNumber) -> None: ...

    def execute(self, cancel: threading.Event, block_number: BlockNumber) -> None: ...


ServiceFactory = Callable[[Config], ProverInputsService]


def load_service_factory(path: str) -> ServiceFactory:
    """Import a service factory given as `package.module:attribute`."""
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ServiceCreationError(
            f"service backend {path!r} must have the form 'module:attribute'"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ServiceCreationError(f"cannot import {module_name!r}: {e}") from e

    factory = module
    for name in attribute.split("."):
        try:
            factory = getattr(factory, name)
        except AttributeError as e:
            raise ServiceCreationError(
                f"{module_name!r} has no attribute {attribute!r}"
            ) from e
    if not callable(factory):
        raise ServiceCreationError(f"service backend {path!r} is not callable")
    return factory


def new_service(config: Config) -> ProverInputsService:
    """Construct the service configured by `config.service_backend`."""
    if config.service_backend is None:
        raise ServiceCreationError(
            "no service backend configured "
            "(set --service-backend or ZK_PIG_SERVICE_BACKEND)"
        )
    factory = load_service_factory(config.service_backend)
    logger.debug(f"Creating prover inputs service from {config.service_backend}")
    try:
        return factory(config)
    except ServiceCreationError:
        raise
    except Exception as e:
        raise ServiceCreationError(e) from e
