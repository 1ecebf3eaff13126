"""Result values returned by the gateway and orchestrator.

Policy refusals, missing records, revision conflicts and failed computations
are returned, not raised. Callers branch on the type.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

from cortex.core.schemas_records import Record
from cortex.core.schemas_suggestions import Suggestion, SuggestionKind

GENERIC_DENIAL = "access-denied"
DISCLAIMER_REQUIRED = "disclaimer-required"


@dataclass(frozen=True)
class Allow:
    reason: str

    @property
    def granted(self) -> bool:
        return True


@dataclass(frozen=True)
class Deny:
    reason: str

    @property
    def granted(self) -> bool:
        return False


AccessDecision = Union[Allow, Deny]


@dataclass(frozen=True)
class Denied:
    """Policy refusal. `reason` is for logs only; users get a generic message."""
    reason: str = GENERIC_DENIAL


@dataclass(frozen=True)
class NotFound:
    """Identifier did not resolve. Presented to end users the same as Denied."""
    record_id: Optional[str] = None


@dataclass(frozen=True)
class Conflict:
    """Stale write. The caller must re-fetch and retry."""
    expected_revision: int
    actual_revision: int


@dataclass(frozen=True)
class ComputationFailed:
    """One suggestion kind failed; other kinds are unaffected."""
    kind: SuggestionKind
    cause: str


@dataclass
class RecordView:
    """Read result for the UI boundary."""
    record: Record
    suggestions: list[Suggestion] = field(default_factory=list)
    disclaimer_required: bool = False


FetchResult = Union[RecordView, NotFound, Denied]
MutateResult = Union[Record, Denied, Conflict, NotFound]
