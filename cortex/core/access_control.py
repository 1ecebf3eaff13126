"""Access control policy for records.

Single policy table consulted by every read and write path. The decision
functions are pure: no I/O, no logging, never raise.

Policy (first match wins):
    1. ADMIN                                   -> allow any action
    2. Owner                                   -> allow read, write, annotate
    3. Owner's manager, visibility TEAM or ORG -> allow read, annotate
    4. Visibility ORG and action read          -> allow
    5. Otherwise                               -> deny("insufficient-scope")
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from cortex.core.results import AccessDecision, Allow, Deny
from cortex.core.schemas_auth import User, UserRole
from cortex.core.schemas_records import Record, RecordPatch, Visibility

INSUFFICIENT_SCOPE = "insufficient-scope"
INVALID_CONTEXT = "invalid-context"


class AccessAction(str, Enum):
    """Actions checked by the policy. ANNOTATE is the comment-only write."""
    READ = "read"
    WRITE = "write"
    ANNOTATE = "annotate"


@dataclass(frozen=True)
class AccessContext:
    """Per-request context. Never persisted.

    Attributes:
        actor: Requesting user
        record: Target record
        owner: Record owner, needed for the manager relationship
    """

    actor: Optional[User]
    record: Optional[Record]
    owner: Optional[User] = None


def _coerce_role(value: Any) -> Optional[UserRole]:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(value)
    except (ValueError, TypeError):
        return None


def _coerce_visibility(value: Any) -> Optional[Visibility]:
    if isinstance(value, Visibility):
        return value
    try:
        return Visibility(value)
    except (ValueError, TypeError):
        return None


def is_manager_of(actor: User, owner: Optional[User]) -> bool:
    """True if actor is a MANAGER over owner (direct report or managed team)."""
    if owner is None or _coerce_role(getattr(actor, "role", None)) != UserRole.MANAGER:
        return False
    manager_id = getattr(owner, "manager_id", None)
    if manager_id is not None and manager_id == actor.id:
        return True
    team_id = getattr(owner, "team_id", None)
    return team_id is not None and team_id in (getattr(actor, "managed_team_ids", None) or [])


def can_access(context: Optional[AccessContext], action: Any) -> AccessDecision:
    """
    Decide whether the context's actor may perform action on the record.

    Args:
        context: AccessContext built for this request
        action: AccessAction (or its string value)

    Returns:
        Allow(reason) or Deny(reason)
    """
    actor = getattr(context, "actor", None)
    if actor is None:
        return Deny(INVALID_CONTEXT)

    try:
        action = AccessAction(action)
    except (ValueError, TypeError):
        return Deny(INVALID_CONTEXT)

    role = _coerce_role(getattr(actor, "role", None))
    if role is None or getattr(actor, "id", None) is None:
        return Deny(INVALID_CONTEXT)

    if role == UserRole.ADMIN:
        return Allow("admin")

    record = getattr(context, "record", None)
    if record is None or getattr(record, "owner_id", None) is None:
        return Deny(INVALID_CONTEXT)

    visibility = _coerce_visibility(getattr(record, "visibility", None))
    if visibility is None:
        return Deny(INVALID_CONTEXT)

    if record.owner_id == actor.id:
        return Allow("owner")

    owner = getattr(context, "owner", None)
    if owner is not None and getattr(owner, "id", None) != record.owner_id:
        return Deny(INVALID_CONTEXT)

    if is_manager_of(actor, owner) and visibility in (Visibility.TEAM, Visibility.ORG):
        if action in (AccessAction.READ, AccessAction.ANNOTATE):
            return Allow("manager")
        return Deny(INSUFFICIENT_SCOPE)

    if visibility == Visibility.ORG and action == AccessAction.READ:
        return Allow("org-visible")

    return Deny(INSUFFICIENT_SCOPE)


def decide_patch_action(patch: RecordPatch) -> AccessAction:
    """A patch touching any field is a full write; annotation-only is ANNOTATE."""
    if patch.field_changes():
        return AccessAction.WRITE
    return AccessAction.ANNOTATE


def can_change_role(actor: Optional[User]) -> AccessDecision:
    """Roles are immutable except through an ADMIN-privileged mutation."""
    if actor is None or _coerce_role(getattr(actor, "role", None)) is None:
        return Deny(INVALID_CONTEXT)
    if actor.role == UserRole.ADMIN:
        return Allow("admin")
    return Deny(INSUFFICIENT_SCOPE)
