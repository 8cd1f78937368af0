"""Wiring of a ready-to-use router from settings."""

import logging
from pathlib import Path

from phasegate.application.router import CommandRouter
from phasegate.config import WorkflowSettings
from phasegate.domain.exceptions import ConfigurationError
from phasegate.infrastructure.persistence import (
    FilesystemPhaseEventStore,
    FilesystemPhaseStateStore,
)
from phasegate.infrastructure.registry import StageGeneratorRegistry
from phasegate.logging_setup import setup_logging

logger = logging.getLogger(__name__)


def build_router(
    settings: WorkflowSettings,
    configure_logging: bool = False,
    registry: StageGeneratorRegistry | None = None,
) -> CommandRouter:
    """
    Create a filesystem-backed router.

    Args:
        settings: Loaded workflow settings
        configure_logging: Also install the console/file log handlers
        registry: Generator lookup to use; a fresh one reading entry points by default

    Raises:
        ConfigurationError: If the configured generator cannot be created
    """
    if configure_logging:
        setup_logging("phasegate", log_file=settings.log_file, verbose=settings.verbose)

    registry = registry or StageGeneratorRegistry()
    try:
        generator = registry.create(
            settings.generator, **dict(settings.generator_options)
        )
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Cannot create generator '{settings.generator}': {e}") from e

    order = settings.stage_order
    root = Path(settings.state_root)
    store = FilesystemPhaseStateStore(
        root, order=order, infer_dependencies=settings.infer_dependencies
    )
    event_store = FilesystemPhaseEventStore(root) if settings.event_log else None

    logger.debug(
        "Router: root=%s stages=%s generator=%s",
        root,
        list(order),
        settings.generator,
    )
    return CommandRouter(
        store,
        generator,
        order=order,
        dependency_policy=settings.dependency_policy,
        corruption_policy=settings.corruption_policy,
        event_store=event_store,
    )
