"""Outcomes of processing one suggestion.

Each outcome is a small tagged variant (`kind`). Consumers fold over them with
`outcome_kind`, which raises on anything it does not know so a new variant
cannot be silently miscounted.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from core.domain.models import PlaceRecord, ReasonCode, ReviewEntry, Suggestion
from core.errors import InvalidTransitionError


class SuggestionState(str, Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    PROMOTED = "promoted"
    QUEUED = "queued"
    DROPPED = "dropped"


_TRANSITIONS: dict[SuggestionState, frozenset[SuggestionState]] = {
    SuggestionState.RECEIVED: frozenset(
        {SuggestionState.VALIDATING, SuggestionState.PROMOTED, SuggestionState.DROPPED}
    ),
    SuggestionState.VALIDATING: frozenset(
        {SuggestionState.PROMOTED, SuggestionState.QUEUED, SuggestionState.DROPPED}
    ),
    SuggestionState.PROMOTED: frozenset(),
    SuggestionState.QUEUED: frozenset(),
    SuggestionState.DROPPED: frozenset(),
}


class SuggestionLifecycle:
    """Tracks one suggestion through Received -> Validating -> terminal."""

    def __init__(self) -> None:
        self.state = SuggestionState.RECEIVED

    def advance(self, target: SuggestionState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransitionError(f"{self.state.value} -> {target.value}")
        self.state = target

    @property
    def is_terminal(self) -> bool:
        return not _TRANSITIONS[self.state]


@dataclass(frozen=True)
class Promoted:
    suggestion: Suggestion
    entity: PlaceRecord
    existing: bool = False
    kind: Literal["promoted"] = "promoted"


@dataclass(frozen=True)
class Queued:
    suggestion: Suggestion
    entry: ReviewEntry
    kind: Literal["queued"] = "queued"


@dataclass(frozen=True)
class Dropped:
    suggestion: Suggestion
    reason: ReasonCode
    kind: Literal["dropped"] = "dropped"


@dataclass(frozen=True)
class Failed:
    """Processing raised; only produced by batch callers."""

    suggestion: Suggestion
    error: str
    kind: Literal["failed"] = "failed"


Outcome = Union[Promoted, Queued, Dropped]
BatchOutcome = Union[Promoted, Queued, Dropped, Failed]


def outcome_kind(outcome: BatchOutcome) -> str:
    if isinstance(outcome, Promoted):
        return "existing" if outcome.existing else "promoted"
    if isinstance(outcome, Queued):
        return "queued"
    if isinstance(outcome, Dropped):
        return "dropped"
    if isinstance(outcome, Failed):
        return "failed"
    raise TypeError(f"Unknown outcome variant: {type(outcome).__name__}")


def describe_outcome(outcome: BatchOutcome) -> str:
    """One human-readable line per outcome (CLI and logs)."""

    kind = outcome_kind(outcome)
    name = outcome.suggestion.name or "<unnamed>"
    if isinstance(outcome, Promoted):
        city = outcome.entity.city or "?"
        return f"{kind}: {name} ({city})"
    if isinstance(outcome, Queued):
        return f"{kind}: {name} [{outcome.entry.failure_reason.value}]"
    if isinstance(outcome, Dropped):
        return f"{kind}: {name} [{outcome.reason.value}]"
    return f"{kind}: {name} [{outcome.error}]"
