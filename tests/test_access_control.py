"""Tests for the record access policy."""

from datetime import datetime, timezone
from uuid import uuid4

import pytest
from pydantic import ValidationError

from cortex.core.access_control import (
    INSUFFICIENT_SCOPE,
    INVALID_CONTEXT,
    AccessAction,
    AccessContext,
    can_access,
    can_change_role,
    decide_patch_action,
    is_manager_of,
)
from cortex.core.results import Allow, Deny
from cortex.core.schemas_auth import User, UserRole
from cortex.core.schemas_records import Record, RecordKind, RecordPatch, Visibility

ALL_ACTIONS = list(AccessAction)


def _user(role=UserRole.USER, **kwargs) -> User:
    user_id = uuid4()
    return User(id=user_id, email=f"u-{user_id.hex[:6]}@acme-corp.com", role=role, **kwargs)


def _record(owner: User, visibility=Visibility.PRIVATE) -> Record:
    now = datetime.now(timezone.utc)
    return Record(
        id=uuid4(),
        kind=RecordKind.POV,
        owner_id=owner.id,
        visibility=visibility,
        title="Acme evaluation",
        created_at=now,
        updated_at=now,
    )


class TestPolicyTable:
    @pytest.mark.parametrize("visibility", list(Visibility))
    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_admin_allowed_everything(self, visibility, action):
        owner = _user()
        admin = _user(UserRole.ADMIN)
        ctx = AccessContext(actor=admin, record=_record(owner, visibility), owner=owner)

        assert can_access(ctx, action) == Allow("admin")

    @pytest.mark.parametrize("visibility", list(Visibility))
    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_owner_has_full_access(self, visibility, action):
        owner = _user()
        ctx = AccessContext(actor=owner, record=_record(owner, visibility), owner=owner)

        assert can_access(ctx, action).granted is True

    @pytest.mark.parametrize("action", ALL_ACTIONS)
    def test_private_denies_outsiders(self, action):
        owner = _user()
        outsider = _user()
        ctx = AccessContext(actor=outsider, record=_record(owner), owner=owner)

        assert can_access(ctx, action) == Deny(INSUFFICIENT_SCOPE)

    def test_org_visible_is_read_only_for_outsiders(self):
        owner = _user()
        outsider = _user()
        ctx = AccessContext(actor=outsider, record=_record(owner, Visibility.ORG), owner=owner)

        assert can_access(ctx, AccessAction.READ) == Allow("org-visible")
        assert can_access(ctx, AccessAction.WRITE) == Deny(INSUFFICIENT_SCOPE)
        assert can_access(ctx, AccessAction.ANNOTATE) == Deny(INSUFFICIENT_SCOPE)

    def test_team_visible_denies_non_managers(self):
        owner = _user()
        peer = _user()
        ctx = AccessContext(actor=peer, record=_record(owner, Visibility.TEAM), owner=owner)

        assert can_access(ctx, AccessAction.READ).granted is False


class TestManagerScope:
    def test_manager_reads_and_annotates_team_record(self):
        manager = _user(UserRole.MANAGER)
        report = _user(manager_id=manager.id)
        ctx = AccessContext(actor=manager, record=_record(report, Visibility.TEAM), owner=report)

        assert can_access(ctx, AccessAction.READ) == Allow("manager")
        assert can_access(ctx, AccessAction.ANNOTATE) == Allow("manager")
        assert can_access(ctx, AccessAction.WRITE) == Deny(INSUFFICIENT_SCOPE)

    def test_manager_denied_private_record_of_report(self):
        manager = _user(UserRole.MANAGER)
        report = _user(manager_id=manager.id)
        ctx = AccessContext(actor=manager, record=_record(report, Visibility.PRIVATE), owner=report)

        assert can_access(ctx, AccessAction.READ) == Deny(INSUFFICIENT_SCOPE)

    def test_manager_via_managed_team(self):
        team_id = uuid4()
        manager = _user(UserRole.MANAGER, managed_team_ids=[team_id])
        member = _user(team_id=team_id)

        assert is_manager_of(manager, member) is True

    def test_unrelated_manager_is_not_manager(self):
        manager = _user(UserRole.MANAGER)
        other = _user(manager_id=uuid4(), team_id=uuid4())
        ctx = AccessContext(actor=manager, record=_record(other, Visibility.TEAM), owner=other)

        assert is_manager_of(manager, other) is False
        assert can_access(ctx, AccessAction.READ).granted is False

    def test_user_role_with_manager_link_is_not_manager(self):
        boss = _user(UserRole.USER)
        report = _user(manager_id=boss.id)

        assert is_manager_of(boss, report) is False


class TestTotality:
    def test_none_context(self):
        assert can_access(None, AccessAction.READ) == Deny(INVALID_CONTEXT)

    def test_missing_record(self):
        ctx = AccessContext(actor=_user(), record=None)
        assert can_access(ctx, AccessAction.READ) == Deny(INVALID_CONTEXT)

    def test_unknown_action(self):
        owner = _user()
        ctx = AccessContext(actor=owner, record=_record(owner), owner=owner)
        assert can_access(ctx, "delete-everything") == Deny(INVALID_CONTEXT)

    def test_owner_mismatch_is_invalid(self):
        owner = _user()
        impostor = _user()
        manager = _user(UserRole.MANAGER)
        ctx = AccessContext(actor=manager, record=_record(owner, Visibility.TEAM), owner=impostor)

        assert can_access(ctx, AccessAction.READ) == Deny(INVALID_CONTEXT)

    def test_action_accepts_string_value(self):
        owner = _user()
        ctx = AccessContext(actor=owner, record=_record(owner), owner=owner)
        assert can_access(ctx, "read").granted is True

    def test_deterministic(self):
        owner = _user()
        outsider = _user()
        ctx = AccessContext(actor=outsider, record=_record(owner, Visibility.ORG), owner=owner)

        results = {can_access(ctx, AccessAction.READ) for _ in range(20)}
        assert results == {Allow("org-visible")}


class TestHelpers:
    def test_field_change_is_write(self):
        patch = RecordPatch(expected_revision=1, title="New title")
        assert decide_patch_action(patch) == AccessAction.WRITE

    def test_annotation_only_is_annotate(self):
        patch = RecordPatch(expected_revision=1, annotation="Looks good")
        assert decide_patch_action(patch) == AccessAction.ANNOTATE

    def test_field_change_with_annotation_is_write(self):
        patch = RecordPatch(expected_revision=1, status="active", annotation="Kicked off")
        assert decide_patch_action(patch) == AccessAction.WRITE

    def test_null_description_is_write(self):
        patch = RecordPatch.model_validate({"expected_revision": 1, "description": None})
        assert patch.field_changes() == {"description": None}
        assert decide_patch_action(patch) == AccessAction.WRITE

    def test_null_title_rejected(self):
        with pytest.raises(ValidationError):
            RecordPatch.model_validate({"expected_revision": 1, "title": None})

    @pytest.mark.parametrize(
        "role,granted",
        [(UserRole.ADMIN, True), (UserRole.MANAGER, False), (UserRole.USER, False)],
    )
    def test_can_change_role(self, role, granted):
        assert can_change_role(_user(role)).granted is granted

    def test_can_change_role_without_actor(self):
        assert can_change_role(None) == Deny(INVALID_CONTEXT)
