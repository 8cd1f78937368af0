"""
Stage generator adapters.
"""

from phasegate.infrastructure.generators.mock import MockStageGenerator

__all__ = [
    "MockStageGenerator",
]
