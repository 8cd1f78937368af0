"""
Phase identifier parsing.

Phase ids look like ``06-auth-flow``: a two-digit sequence number and a
lowercase kebab-case slug. Parsing returns a result object rather than
raising so that callers deep in a chain can decide how to report it.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from phasegate.domain.models import PhaseId

PHASE_ID_PATTERN = re.compile(r"^(\d{2})-([a-z0-9]+(?:-[a-z0-9]+)*)$")


@dataclass(frozen=True)
class PhaseIdResult:
    """Outcome of parsing a raw phase id."""

    phase_id: PhaseId | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.phase_id is not None


def parse_phase_id(raw: object) -> PhaseIdResult:
    if not isinstance(raw, str) or not raw:
        return PhaseIdResult(error="Phase id must be a non-empty string")
    match = PHASE_ID_PATTERN.match(raw)
    if match is None:
        return PhaseIdResult(
            error=f"Invalid phase id '{raw}': expected NN-slug, e.g. 06-auth-flow"
        )
    return PhaseIdResult(phase_id=PhaseId(sequence=int(match.group(1)), slug=match.group(2)))


def is_valid_phase_id(raw: object) -> bool:
    return parse_phase_id(raw).ok


def infer_dependencies(phase_id: str, known_ids: Iterable[str]) -> tuple[str, ...]:
    """
    Suggest dependencies from the numeric prefix.

    Every known phase whose sequence is exactly one lower is suggested. This
    is a convention, not a rule; it is only applied when explicitly enabled.
    """
    parsed = parse_phase_id(phase_id)
    if parsed.phase_id is None or parsed.phase_id.sequence == 0:
        return ()
    wanted = parsed.phase_id.sequence - 1
    suggestions = []
    for known in sorted(set(known_ids)):
        candidate = parse_phase_id(known).phase_id
        if candidate is not None and candidate.sequence == wanted:
            suggestions.append(known)
    return tuple(suggestions)
