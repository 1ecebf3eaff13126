"""AI content disclaimer gate.

Suggestions are only surfaced to a user who has acknowledged the current AI
content policy version. Acknowledging one version never satisfies another.
"""

from dataclasses import dataclass, field
from typing import Any, Optional
from uuid import UUID

from cortex.core.logging import get_logger
from cortex.core.schemas_disclaimer import DisclaimerAcknowledgment
from cortex.core.schemas_suggestions import Suggestion
from cortex.db import disclaimers as disclaimers_db

logger = get_logger(__name__)

DEFAULT_POLICY_VERSION = "2024-10"


@dataclass
class GatedSuggestions:
    """Suggestions that passed the gate, or none with disclaimer_required set."""
    suggestions: list[Suggestion] = field(default_factory=list)
    disclaimer_required: bool = False


class DisclaimerGate:
    """Tracks acknowledgments per (user, policy version)."""

    def __init__(self, policy_version: str = DEFAULT_POLICY_VERSION, store: Any = None):
        """
        Args:
            policy_version: Current policy version users must acknowledge
            store: Acknowledgment store (defaults to cortex.db.disclaimers)
        """
        self.policy_version = policy_version
        self.store = store or disclaimers_db

    def requires_acknowledgment(self, user_id: UUID, policy_version: Optional[str] = None) -> bool:
        """True unless the user acknowledged exactly this policy version."""
        version = policy_version or self.policy_version
        return self.store.get_acknowledgment(user_id, version) is None

    def acknowledge(self, user_id: UUID, policy_version: Optional[str] = None) -> DisclaimerAcknowledgment:
        """
        Record that the user acknowledged a policy version.

        Idempotent: a second call returns the original acknowledgment.
        """
        version = policy_version or self.policy_version

        existing = self.store.get_acknowledgment(user_id, version)
        if existing:
            return DisclaimerAcknowledgment(**existing)

        stored = self.store.insert_acknowledgment(user_id, version)
        return DisclaimerAcknowledgment(**stored)

    def gate(
        self,
        user_id: UUID,
        suggestions: list[Suggestion],
        policy_version: Optional[str] = None,
    ) -> GatedSuggestions:
        """Withhold suggestions from users who have not acknowledged the policy."""
        if self.requires_acknowledgment(user_id, policy_version):
            if suggestions:
                logger.debug(
                    f"Withholding {len(suggestions)} suggestions pending disclaimer",
                    extra={"user_id": str(user_id)},
                )
            return GatedSuggestions(suggestions=[], disclaimer_required=True)
        return GatedSuggestions(suggestions=list(suggestions), disclaimer_required=False)


_gate: DisclaimerGate | None = None


def get_disclaimer_gate() -> DisclaimerGate:
    """Get or create the global gate for the configured policy version."""
    global _gate
    if _gate is None:
        from cortex.core.config import get_settings

        _gate = DisclaimerGate(policy_version=get_settings().AI_DISCLAIMER_POLICY_VERSION)
    return _gate
