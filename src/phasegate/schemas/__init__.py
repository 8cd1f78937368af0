"""phasegate JSON Schema definitions and validation utilities.

Schemas:
    - phase_state.schema.json: Persisted phase document and its backups
    - settings.schema.json: Workflow settings file

Usage:
    from phasegate.schemas import phase_state_errors

    with open(".phase-state.json") as f:
        errors = phase_state_errors(json.load(f))  # [] when the document is valid
"""

from __future__ import annotations

import json
from functools import cache
from importlib.resources import files
from typing import Any

import jsonschema


@cache
def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema from the schemas package.

    Args:
        name: Schema filename (e.g., 'phase_state.schema.json')

    Returns:
        Parsed JSON schema as a dictionary
    """
    schema_text = files("phasegate.schemas").joinpath(name).read_text()
    result: dict[str, Any] = json.loads(schema_text)
    return result


def _format_error(error: jsonschema.ValidationError) -> str:
    path = "/".join(str(part) for part in error.absolute_path) or "<root>"
    return f"{path}: {error.message}"


def _collect_errors(data: Any, name: str) -> list[str]:
    validator = jsonschema.Draft202012Validator(_load_schema(name))
    errors = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.absolute_path])
    return [_format_error(e) for e in errors]


def phase_state_errors(data: Any) -> list[str]:
    """Every schema violation of a phase document as "<path>: <message>"."""
    return _collect_errors(data, "phase_state.schema.json")


def settings_errors(data: Any) -> list[str]:
    """Every schema violation of a settings document as "<path>: <message>"."""
    return _collect_errors(data, "settings.schema.json")


__all__ = [
    "phase_state_errors",
    "settings_errors",
]
