"""Settings loading for phasegate."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any

from phasegate.domain.exceptions import ConfigurationError
from phasegate.domain.models import CorruptionPolicy, DependencyPolicy, StageOrder
from phasegate.schemas import settings_errors

STATE_ROOT_ENV = "PHASEGATE_STATE_ROOT"
DEFAULT_STATE_ROOT = "dev/phase_stages"
DEFAULT_GENERATOR = "MockStageGenerator"


@dataclass(frozen=True)
class WorkflowSettings:
    """Everything needed to wire a router."""

    state_root: str = DEFAULT_STATE_ROOT
    include_prd: bool = False
    dependency_policy: DependencyPolicy = DependencyPolicy.INFORM
    infer_dependencies: bool = False
    corruption_policy: CorruptionPolicy = CorruptionPolicy.RESTORE
    generator: str = DEFAULT_GENERATOR
    generator_options: MappingProxyType[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    event_log: bool = True
    log_file: str | None = None
    verbose: bool = False

    @property
    def stage_order(self) -> StageOrder:
        return StageOrder.standard(include_prd=self.include_prd)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkflowSettings:
        """
        Build settings from an already-parsed mapping.

        Raises:
            ConfigurationError: If the mapping violates the settings schema
        """
        errors = settings_errors(data)
        if errors:
            raise ConfigurationError("Invalid settings: " + "; ".join(errors))

        defaults = cls()
        return cls(
            state_root=data.get("state_root", defaults.state_root),
            include_prd=data.get("include_prd", defaults.include_prd),
            dependency_policy=DependencyPolicy(
                data.get("dependency_policy", defaults.dependency_policy.value)
            ),
            infer_dependencies=data.get("infer_dependencies", defaults.infer_dependencies),
            corruption_policy=CorruptionPolicy(
                data.get("corruption_policy", defaults.corruption_policy.value)
            ),
            generator=data.get("generator", defaults.generator),
            generator_options=MappingProxyType(dict(data.get("generator_options", {}))),
            event_log=data.get("event_log", defaults.event_log),
            log_file=data.get("log_file", defaults.log_file),
            verbose=data.get("verbose", defaults.verbose),
        )


def _apply_env(settings: WorkflowSettings) -> WorkflowSettings:
    state_root = os.environ.get(STATE_ROOT_ENV)
    if not state_root:
        return settings
    return replace(settings, state_root=state_root)


def load_settings(path: Path | str | None = None) -> WorkflowSettings:
    """
    Load workflow settings from a JSON file.

    Args:
        path: Path to the settings file; None means defaults only

    Returns:
        WorkflowSettings, with PHASEGATE_STATE_ROOT applied over the file

    Raises:
        ConfigurationError: If file is missing or invalid
    """
    if path is None:
        return _apply_env(WorkflowSettings())

    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"Settings file not found: {path}")

    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected dict in {path}, got {type(data).__name__}")

    return _apply_env(WorkflowSettings.from_dict(data))
