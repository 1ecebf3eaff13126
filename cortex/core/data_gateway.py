"""Federated data gateway.

Every read and write of POV/TRR records goes through here. Each call builds
an AccessContext, asks the access policy, and returns a result value:
Denied and NotFound are returned, never raised, and carry no detail about
why access failed.
"""

from datetime import datetime, timezone
from typing import Any, Optional, Union
from uuid import UUID, uuid4

from cortex.core.access_control import (
    AccessAction,
    AccessContext,
    can_access,
    can_change_role,
    decide_patch_action,
)
from cortex.core.config import GatewayConfig, gateway_config_from_settings, get_settings
from cortex.core.disclaimer_gate import DisclaimerGate, GatedSuggestions
from cortex.core.enrichment_orchestrator import BackgroundEnrichmentOrchestrator, record_content
from cortex.core.logging import get_logger
from cortex.core.results import (
    DISCLAIMER_REQUIRED,
    AccessDecision,
    Conflict,
    Denied,
    FetchResult,
    MutateResult,
    NotFound,
    RecordView,
)
from cortex.core.schemas_auth import User, UserRole
from cortex.core.schemas_records import (
    Annotation,
    Record,
    RecordCreate,
    RecordKind,
    RecordPatch,
    Visibility,
)
from cortex.core.schemas_suggestions import (
    Suggestion,
    SuggestionKind,
    SuggestionStatus,
    WorkflowEvent,
    WorkflowEventType,
)
from cortex.db import access_logs as access_logs_db
from cortex.db import records as records_db
from cortex.db import suggestions as suggestions_db
from cortex.db import users as users_db

logger = get_logger(__name__)


class FederatedDataGateway:
    """Role-aware access to records and their suggestions."""

    def __init__(
        self,
        config: Optional[GatewayConfig] = None,
        gate: Optional[DisclaimerGate] = None,
        orchestrator: Optional[BackgroundEnrichmentOrchestrator] = None,
        records_store: Any = None,
        suggestions_store: Any = None,
        users_store: Any = None,
        access_log_store: Any = None,
    ):
        """
        Args:
            config: Gateway configuration
            gate: Disclaimer gate applied to suggestions on fetch (None disables gating)
            orchestrator: Receives workflow events and delete cancellations
            records_store: Record persistence (defaults to cortex.db.records)
            suggestions_store: Suggestion persistence (defaults to cortex.db.suggestions)
            users_store: User lookups (defaults to cortex.db.users)
            access_log_store: Audit log (defaults to cortex.db.access_logs)
        """
        self.config = config or GatewayConfig()
        self.gate = gate
        self.orchestrator = orchestrator
        self.records_store = records_store or records_db
        self.suggestions_store = suggestions_store or suggestions_db
        self.users_store = users_store or users_db
        self.access_log_store = access_log_store or access_logs_db

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _load_user(self, user_id: UUID) -> Optional[User]:
        row = self.users_store.get_user(user_id)
        return User(**row) if row else None

    def _context(self, actor: User, record: Record) -> AccessContext:
        owner = actor if record.owner_id == actor.id else self._load_user(record.owner_id)
        return AccessContext(actor=actor, record=record, owner=owner)

    def _audit(
        self,
        actor: User,
        action: str,
        record_id: Optional[UUID],
        granted: bool,
        reason: str,
    ) -> None:
        """Append to the access log. Failures are logged and ignored."""
        if not self.config.audit_access:
            return
        try:
            self.access_log_store.insert_access_log(
                {
                    "user_id": str(actor.id),
                    "user_role": actor.role.value,
                    "action": action,
                    "record_id": str(record_id) if record_id else None,
                    "granted": granted,
                    "reason": reason,
                }
            )
        except Exception as e:
            logger.warning(f"Failed to write access log: {e}", extra={"user_id": str(actor.id)})

    def _check(self, actor: User, record: Record, action: AccessAction) -> AccessDecision:
        decision = can_access(self._context(actor, record), action)
        self._audit(actor, action.value, record.id, decision.granted, decision.reason)
        if not decision.granted:
            logger.info(
                f"Denied {action.value} on record {record.id}: {decision.reason}",
                extra={"record_id": str(record.id), "user_id": str(actor.id)},
            )
        return decision

    def _get(self, record_id: UUID) -> Optional[Record]:
        row = self.records_store.get_record(record_id)
        return Record(**row) if row else None

    def _publish(self, event_type: WorkflowEventType, actor: User, record: Record) -> None:
        if self.orchestrator is None:
            return
        event = WorkflowEvent(
            event_type=event_type,
            record_id=record.id,
            category=record.kind,
            actor_id=actor.id,
            revision=record.revision,
            payload=record_content(record),
            occurred_at=datetime.now(timezone.utc),
        )
        self.orchestrator.on_workflow_event(event)

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    def fetch(self, actor: User, record_id: UUID) -> FetchResult:
        """
        Read a record with its READY suggestions.

        Returns:
            RecordView, NotFound, or Denied
        """
        record = self._get(record_id)
        if record is None:
            self._audit(actor, AccessAction.READ.value, record_id, False, "not-found")
            return NotFound(str(record_id))

        if not self._check(actor, record, AccessAction.READ).granted:
            return Denied()

        rows = self.suggestions_store.list_suggestions(
            record_id, status=SuggestionStatus.READY.value
        )
        ready = [
            Suggestion(**row) for row in rows if row.get("status") == SuggestionStatus.READY.value
        ]

        if self.gate is not None:
            gated = self.gate.gate(actor.id, ready)
        else:
            gated = GatedSuggestions(suggestions=ready)

        return RecordView(
            record=record,
            suggestions=gated.suggestions,
            disclaimer_required=gated.disclaimer_required,
        )

    def mutate(self, actor: User, record_id: UUID, patch: RecordPatch) -> MutateResult:
        """
        Apply a patch with optimistic concurrency.

        The write is a single conditional update on (id, expected_revision).
        A stale revision yields Conflict; the caller decides whether to retry.

        Returns:
            Updated Record, Denied, Conflict, or NotFound
        """
        record = self._get(record_id)
        if record is None:
            self._audit(actor, AccessAction.WRITE.value, record_id, False, "not-found")
            return NotFound(str(record_id))

        action = decide_patch_action(patch)
        if not self._check(actor, record, action).granted:
            return Denied()

        return self._apply_patch(actor, record, patch, action)

    def _apply_patch(
        self, actor: User, record: Record, patch: RecordPatch, action: AccessAction
    ) -> MutateResult:
        """Conditional write of an already authorized patch."""
        record_id = record.id
        if record.revision != patch.expected_revision:
            return Conflict(expected_revision=patch.expected_revision, actual_revision=record.revision)

        updates = patch.field_changes()
        if "payload" in updates:
            updates["payload"] = {**record.payload, **updates["payload"]}

        if patch.annotation:
            annotation = Annotation(
                author_id=actor.id,
                text=patch.annotation,
                created_at=datetime.now(timezone.utc),
            )
            updates["annotations"] = [
                a.model_dump(mode="json") for a in [*record.annotations, annotation]
            ]

        if not updates:
            return record

        row = self.records_store.update_record_if_revision(
            record_id, patch.expected_revision, updates
        )
        if row is None:
            current = self.records_store.get_record(record_id)
            if current is None:
                return NotFound(str(record_id))
            return Conflict(
                expected_revision=patch.expected_revision,
                actual_revision=current["revision"],
            )

        updated = Record(**row)
        if action == AccessAction.WRITE:
            self._publish(WorkflowEventType.UPDATED, actor, updated)
        return updated

    def create(self, actor: User, data: RecordCreate) -> Record:
        """Create a record owned by the actor at revision 1."""
        row = self.records_store.insert_record(
            {
                **data.model_dump(mode="json"),
                "id": str(uuid4()),
                "owner_id": str(actor.id),
                "annotations": [],
            }
        )
        record = Record(**row)
        self._audit(actor, "create", record.id, True, "owner")
        self._publish(WorkflowEventType.CREATED, actor, record)
        return record

    def delete(self, actor: User, record_id: UUID) -> Union[bool, Denied, NotFound]:
        """Delete a record together with its suggestions."""
        record = self._get(record_id)
        if record is None:
            self._audit(actor, "delete", record_id, False, "not-found")
            return NotFound(str(record_id))

        if not self._check(actor, record, AccessAction.WRITE).granted:
            return Denied()

        if self.orchestrator is not None:
            self.orchestrator.cancel_record(record_id)
        self.suggestions_store.delete_suggestions_for_record(record_id)
        if not self.records_store.delete_record(record_id):
            return NotFound(str(record_id))
        return True

    def list_accessible(
        self,
        actor: User,
        kind: Optional[RecordKind] = None,
        limit: int = 50,
    ) -> list[Record]:
        """
        Federated query over everything the actor can read.

        Gathers own records, ORG-visible records and, for managers, TEAM/ORG
        records of managed users. Admins see everything. Every candidate is
        re-checked against the policy and de-duplicated by id.
        """
        limit = max(1, min(limit, self.config.max_list_limit))
        kind_value = kind.value if kind else None

        if actor.role == UserRole.ADMIN:
            rows = self.records_store.list_records(kind=kind_value, limit=limit)
        else:
            rows = list(self.records_store.list_records(kind=kind_value, owner_ids=[actor.id], limit=limit))
            rows += self.records_store.list_records(
                kind=kind_value, visibility=[Visibility.ORG.value], limit=limit
            )
            if actor.role == UserRole.MANAGER:
                managed = self.users_store.list_managed_user_ids(actor.id, actor.managed_team_ids)
                if managed:
                    rows += self.records_store.list_records(
                        kind=kind_value,
                        owner_ids=managed,
                        visibility=[Visibility.TEAM.value, Visibility.ORG.value],
                        limit=limit,
                    )

        owners: dict[UUID, Optional[User]] = {actor.id: actor}
        seen: set[UUID] = set()
        results: list[Record] = []

        for row in rows:
            record = Record(**row)
            if record.id in seen:
                continue
            seen.add(record.id)

            if record.owner_id not in owners:
                owners[record.owner_id] = self._load_user(record.owner_id)
            context = AccessContext(actor=actor, record=record, owner=owners[record.owner_id])
            if can_access(context, AccessAction.READ).granted:
                results.append(record)

        results.sort(key=lambda r: r.updated_at, reverse=True)
        self._audit(actor, "list", None, True, f"{len(results)} records")
        return results[:limit]

    def refresh_suggestions(
        self, actor: User, record_id: UUID, kinds: list[SuggestionKind]
    ) -> Union[list[UUID], Denied, NotFound]:
        """Re-enqueue suggestion kinds for a record the actor can read."""
        record = self._get(record_id)
        if record is None:
            return NotFound(str(record_id))
        if not self._check(actor, record, AccessAction.READ).granted:
            return Denied()
        if self.orchestrator is None:
            return []
        return self.orchestrator.enqueue(
            record_id, kinds, actor_id=actor.id, category=record.kind
        )

    def _resolvable_suggestion(
        self, actor: User, record_id: UUID, suggestion_id: UUID, action: AccessAction
    ) -> Union[tuple[Record, Suggestion], Denied, NotFound]:
        """Authorize a user decision on a suggestion and load it if still READY."""
        record = self._get(record_id)
        if record is None:
            self._audit(actor, action.value, record_id, False, "not-found")
            return NotFound(str(record_id))

        if not self._check(actor, record, action).granted:
            return Denied()

        if self.gate is not None and self.gate.requires_acknowledgment(actor.id):
            return Denied(DISCLAIMER_REQUIRED)

        row = self.suggestions_store.get_suggestion_by_id(suggestion_id)
        if (
            row is None
            or row.get("record_id") != str(record_id)
            or row.get("status") != SuggestionStatus.READY.value
        ):
            return NotFound(str(record_id))
        return record, Suggestion(**row)

    def _resolve(
        self, actor: User, suggestion: Suggestion, status: SuggestionStatus
    ) -> Optional[Suggestion]:
        row = self.suggestions_store.resolve_suggestion(
            suggestion.id,
            suggestion.cycle_id,
            {
                "status": status.value,
                "resolved_by": str(actor.id),
                "resolved_at": datetime.now(timezone.utc).isoformat(),
            },
        )
        if row is None:
            logger.warning(
                f"Suggestion {suggestion.id} changed before it could be marked {status.value}",
                extra={"record_id": str(suggestion.record_id), "kind": suggestion.kind.value},
            )
            return None
        return Suggestion(**row)

    def accept_suggestion(
        self,
        actor: User,
        record_id: UUID,
        suggestion_id: UUID,
        expected_revision: int,
    ) -> MutateResult:
        """
        Apply a READY suggestion to its record and mark it applied.

        The suggestion payload is merged into the record payload under
        "ai_<kind>" through the same revision-checked write as mutate.

        Returns:
            Updated Record, Denied, Conflict, or NotFound
        """
        found = self._resolvable_suggestion(actor, record_id, suggestion_id, AccessAction.WRITE)
        if isinstance(found, (Denied, NotFound)):
            return found
        record, suggestion = found

        patch = RecordPatch(
            expected_revision=expected_revision,
            payload={f"ai_{suggestion.kind.value}": suggestion.payload},
        )
        result = self._apply_patch(actor, record, patch, AccessAction.WRITE)
        if isinstance(result, Record):
            self._resolve(actor, suggestion, SuggestionStatus.APPLIED)
            self._audit(actor, "accept_suggestion", record_id, True, suggestion.kind.value)
        return result

    def reject_suggestion(
        self, actor: User, record_id: UUID, suggestion_id: UUID
    ) -> Union[Suggestion, Denied, NotFound]:
        """Mark a READY suggestion rejected. The record is not touched."""
        found = self._resolvable_suggestion(
            actor, record_id, suggestion_id, AccessAction.ANNOTATE
        )
        if isinstance(found, (Denied, NotFound)):
            return found
        _, suggestion = found

        resolved = self._resolve(actor, suggestion, SuggestionStatus.REJECTED)
        if resolved is None:
            return NotFound(str(record_id))
        self._audit(actor, "reject_suggestion", record_id, True, suggestion.kind.value)
        return resolved

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def change_role(
        self, actor: User, user_id: UUID, role: UserRole
    ) -> Union[User, Denied, NotFound]:
        """Change a user's role. Admin only."""
        decision = can_change_role(actor)
        self._audit(actor, "change_role", None, decision.granted, decision.reason)
        if not decision.granted:
            return Denied()

        row = self.users_store.update_user_role(user_id, role.value)
        if row is None:
            return NotFound(str(user_id))
        return User(**row)

    def get_access_logs(
        self,
        actor: User,
        user_id: Optional[UUID] = None,
        record_id: Optional[UUID] = None,
        limit: int = 100,
    ) -> Union[list[dict[str, Any]], Denied]:
        """Read the access log. Admin only."""
        if actor.role != UserRole.ADMIN:
            return Denied()
        return self.access_log_store.list_access_logs(
            user_id=user_id, record_id=record_id, limit=limit
        )


# Global gateway instance (for API control)
_gateway: FederatedDataGateway | None = None


def get_gateway() -> FederatedDataGateway:
    """Get or create the global gateway wired to the global gate and orchestrator."""
    global _gateway
    if _gateway is None:
        from cortex.core.disclaimer_gate import get_disclaimer_gate
        from cortex.core.enrichment_orchestrator import get_orchestrator

        _gateway = FederatedDataGateway(
            config=gateway_config_from_settings(get_settings()),
            gate=get_disclaimer_gate(),
            orchestrator=get_orchestrator(),
        )
    return _gateway
