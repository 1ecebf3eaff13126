"""Tests for the federated data gateway using the in-memory FakeDB."""

import threading
from uuid import uuid4

from cortex.core.results import DISCLAIMER_REQUIRED, Conflict, Denied, NotFound, RecordView
from cortex.core.schemas_auth import User, UserRole
from cortex.core.schemas_records import Record, RecordCreate, RecordKind, RecordPatch, Visibility
from cortex.core.schemas_suggestions import SuggestionKind, SuggestionStatus


class TestFetch:
    def test_missing_record_is_not_found(self, gateway, fake_db):
        user = fake_db.add_user()

        result = gateway.fetch(user, uuid4())

        assert isinstance(result, NotFound)

    def test_private_record_denied_to_outsider(self, gateway, fake_db):
        owner = fake_db.add_user()
        outsider = fake_db.add_user()
        record = fake_db.add_record(owner)

        result = gateway.fetch(outsider, record.id)

        assert result == Denied()

    def test_only_ready_suggestions_are_merged(self, gateway, fake_db, gate):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready", payload={"risks": []})
        fake_db.add_suggestion(record.id, SuggestionKind.CONTENT, "pending")
        fake_db.add_suggestion(record.id, SuggestionKind.ANOMALY, "failed", error="boom")
        gate.acknowledge(owner.id)

        result = gateway.fetch(owner, record.id)

        assert isinstance(result, RecordView)
        assert [s.kind for s in result.suggestions] == [SuggestionKind.RISK]
        assert result.suggestions[0].status == SuggestionStatus.READY
        assert result.disclaimer_required is False

    def test_suggestions_withheld_until_disclaimer_acknowledged(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")

        result = gateway.fetch(owner, record.id)

        assert result.record.id == record.id
        assert result.suggestions == []
        assert result.disclaimer_required is True

    def test_access_log_failure_does_not_fail_fetch(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        fake_db.fail_access_log = True

        result = gateway.fetch(owner, record.id)

        assert isinstance(result, RecordView)

    def test_decisions_are_audited(self, gateway, fake_db):
        owner = fake_db.add_user()
        outsider = fake_db.add_user()
        record = fake_db.add_record(owner)

        gateway.fetch(outsider, record.id)

        entry = fake_db.access_logs[-1]
        assert entry["user_id"] == str(outsider.id)
        assert entry["record_id"] == str(record.id)
        assert entry["granted"] is False
        assert entry["reason"] == "insufficient-scope"


class TestManagerTeamScenario:
    def test_manager_reads_and_annotates_but_cannot_write(self, gateway, fake_db):
        manager = fake_db.add_user(UserRole.MANAGER)
        report = fake_db.add_user(manager_id=manager.id)
        outsider = fake_db.add_user()
        record = fake_db.add_record(report, Visibility.TEAM)

        assert isinstance(gateway.fetch(manager, record.id), RecordView)
        assert gateway.fetch(outsider, record.id) == Denied()

        annotated = gateway.mutate(
            manager, record.id, RecordPatch(expected_revision=1, annotation="Check the SOW")
        )
        assert isinstance(annotated, Record)
        assert annotated.revision == 2
        assert annotated.annotations[-1].author_id == manager.id

        denied = gateway.mutate(manager, record.id, RecordPatch(expected_revision=2, title="Renamed"))
        assert denied == Denied()


class TestMutate:
    def test_owner_update_bumps_revision(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)

        result = gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, status="active"))

        assert isinstance(result, Record)
        assert result.status == "active"
        assert result.revision == 2

    def test_stale_revision_is_conflict(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, title="First"))

        result = gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, title="Second"))

        assert result == Conflict(expected_revision=1, actual_revision=2)
        assert fake_db.get_record(record.id)["title"] == "First"

    def test_payload_is_merged(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner, payload={"customer": "Acme", "seats": 50})

        result = gateway.mutate(
            owner, record.id, RecordPatch(expected_revision=1, payload={"seats": 75})
        )

        assert result.payload == {"customer": "Acme", "seats": 75}

    def test_null_description_clears_it(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, description="Scope TBD"))

        result = gateway.mutate(
            owner,
            record.id,
            RecordPatch.model_validate({"expected_revision": 2, "description": None}),
        )

        assert isinstance(result, Record)
        assert result.description is None
        assert result.revision == 3

    def test_missing_record_is_not_found(self, gateway, fake_db):
        owner = fake_db.add_user()

        result = gateway.mutate(owner, uuid4(), RecordPatch(expected_revision=1, title="x"))

        assert isinstance(result, NotFound)

    def test_concurrent_same_revision_mutates(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        barrier = threading.Barrier(2)
        results = []

        def worker(title):
            barrier.wait()
            results.append(
                gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, title=title))
            )

        threads = [threading.Thread(target=worker, args=(t,)) for t in ("Alpha", "Beta")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        successes = [r for r in results if isinstance(r, Record)]
        conflicts = [r for r in results if isinstance(r, Conflict)]
        assert len(successes) == 1
        assert len(conflicts) == 1
        assert conflicts[0].expected_revision == 1
        assert fake_db.get_record(record.id)["revision"] == 2
        assert fake_db.write_count == 1

    def test_field_update_publishes_workflow_event(self, gateway, fake_db, orchestrator):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)

        gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, description="Scope"))

        assert orchestrator.stats["queued"] == 3

    def test_annotation_does_not_publish_event(self, gateway, fake_db, orchestrator):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)

        gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, annotation="note"))

        assert orchestrator.stats["queued"] == 0


class TestSuggestionDecisions:
    def test_accept_applies_payload_and_hides_suggestion(self, gateway, fake_db, gate):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner, payload={"customer": "Acme"})
        risk = fake_db.add_suggestion(
            record.id, SuggestionKind.RISK, "ready", payload={"risks": ["No exec sponsor"]}
        )
        gate.acknowledge(owner.id)

        result = gateway.accept_suggestion(owner, record.id, risk["id"], expected_revision=1)

        assert isinstance(result, Record)
        assert result.revision == 2
        assert result.payload == {"customer": "Acme", "ai_risk": {"risks": ["No exec sponsor"]}}
        stored = fake_db.get_suggestion(record.id, "risk")
        assert stored["status"] == SuggestionStatus.APPLIED.value
        assert stored["resolved_by"] == str(owner.id)
        assert gateway.fetch(owner, record.id).suggestions == []

    def test_accept_with_stale_revision_is_conflict(self, gateway, fake_db, gate):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        risk = fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")
        gate.acknowledge(owner.id)
        gateway.mutate(owner, record.id, RecordPatch(expected_revision=1, status="active"))

        result = gateway.accept_suggestion(owner, record.id, risk["id"], expected_revision=1)

        assert result == Conflict(expected_revision=1, actual_revision=2)
        assert fake_db.get_suggestion(record.id, "risk")["status"] == "ready"

    def test_accept_requires_disclaimer(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        risk = fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")

        result = gateway.accept_suggestion(owner, record.id, risk["id"], expected_revision=1)

        assert result == Denied(DISCLAIMER_REQUIRED)
        assert fake_db.get_record(record.id)["revision"] == 1

    def test_manager_cannot_accept_but_can_reject(self, gateway, fake_db, gate):
        manager = fake_db.add_user(UserRole.MANAGER)
        report = fake_db.add_user(manager_id=manager.id)
        record = fake_db.add_record(report, Visibility.TEAM)
        risk = fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")
        gate.acknowledge(manager.id)

        assert gateway.accept_suggestion(manager, record.id, risk["id"], 1) == Denied()

        rejected = gateway.reject_suggestion(manager, record.id, risk["id"])
        assert rejected.status == SuggestionStatus.REJECTED
        assert fake_db.get_record(record.id)["revision"] == 1

    def test_pending_or_foreign_suggestion_is_not_found(self, gateway, fake_db, gate):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        other = fake_db.add_record(owner)
        pending = fake_db.add_suggestion(record.id, SuggestionKind.CONTENT, "pending")
        foreign = fake_db.add_suggestion(other.id, SuggestionKind.RISK, "ready")
        gate.acknowledge(owner.id)

        assert isinstance(gateway.reject_suggestion(owner, record.id, pending["id"]), NotFound)
        assert isinstance(gateway.reject_suggestion(owner, record.id, foreign["id"]), NotFound)
        assert isinstance(gateway.reject_suggestion(owner, record.id, uuid4()), NotFound)

    def test_outsider_is_denied_before_disclaimer_check(self, gateway, fake_db):
        owner = fake_db.add_user()
        outsider = fake_db.add_user()
        record = fake_db.add_record(owner)
        risk = fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")

        assert gateway.reject_suggestion(outsider, record.id, risk["id"]) == Denied()


class TestCreateDelete:
    def test_create_assigns_owner_and_publishes(self, gateway, fake_db, orchestrator):
        owner = fake_db.add_user()

        record = gateway.create(
            owner, RecordCreate(kind=RecordKind.TRR, title="Network segmentation review")
        )

        assert record.owner_id == owner.id
        assert record.revision == 1
        assert record.visibility == Visibility.PRIVATE
        assert orchestrator.stats["queued"] == 3

    def test_delete_removes_suggestions(self, gateway, fake_db):
        owner = fake_db.add_user()
        record = fake_db.add_record(owner)
        fake_db.add_suggestion(record.id, SuggestionKind.RISK, "ready")

        assert gateway.delete(owner, record.id) is True
        assert fake_db.get_record(record.id) is None
        assert fake_db.list_suggestions(record.id) == []

    def test_delete_denied_for_manager(self, gateway, fake_db):
        manager = fake_db.add_user(UserRole.MANAGER)
        report = fake_db.add_user(manager_id=manager.id)
        record = fake_db.add_record(report, Visibility.TEAM)

        assert gateway.delete(manager, record.id) == Denied()
        assert fake_db.get_record(record.id) is not None


class TestListAccessible:
    def test_user_sees_own_and_org_records(self, gateway, fake_db):
        me = fake_db.add_user()
        other = fake_db.add_user()
        mine = fake_db.add_record(me)
        org = fake_db.add_record(other, Visibility.ORG)
        fake_db.add_record(other, Visibility.PRIVATE)
        fake_db.add_record(other, Visibility.TEAM)

        ids = {r.id for r in gateway.list_accessible(me)}

        assert ids == {mine.id, org.id}

    def test_manager_sees_team_records_of_reports(self, gateway, fake_db):
        manager = fake_db.add_user(UserRole.MANAGER)
        report = fake_db.add_user(manager_id=manager.id)
        team = fake_db.add_record(report, Visibility.TEAM)
        fake_db.add_record(report, Visibility.PRIVATE)

        ids = {r.id for r in gateway.list_accessible(manager)}

        assert ids == {team.id}

    def test_org_record_of_report_listed_once(self, gateway, fake_db):
        manager = fake_db.add_user(UserRole.MANAGER)
        report = fake_db.add_user(manager_id=manager.id)
        fake_db.add_record(report, Visibility.ORG)

        records = gateway.list_accessible(manager)

        assert len(records) == 1

    def test_admin_sees_everything(self, gateway, fake_db):
        admin = fake_db.add_user(UserRole.ADMIN)
        other = fake_db.add_user()
        fake_db.add_record(other)
        fake_db.add_record(other, Visibility.TEAM)

        assert len(gateway.list_accessible(admin)) == 2

    def test_filter_by_kind_and_limit(self, gateway, fake_db):
        me = fake_db.add_user()
        for _ in range(3):
            fake_db.add_record(me, kind=RecordKind.POV)
        fake_db.add_record(me, kind=RecordKind.TRR)

        records = gateway.list_accessible(me, kind=RecordKind.POV, limit=2)

        assert len(records) == 2
        assert all(r.kind == RecordKind.POV for r in records)


class TestAdministration:
    def test_admin_changes_role(self, gateway, fake_db):
        admin = fake_db.add_user(UserRole.ADMIN)
        user = fake_db.add_user()

        result = gateway.change_role(admin, user.id, UserRole.MANAGER)

        assert isinstance(result, User)
        assert result.role == UserRole.MANAGER

    def test_non_admin_cannot_change_role(self, gateway, fake_db):
        manager = fake_db.add_user(UserRole.MANAGER)

        result = gateway.change_role(manager, manager.id, UserRole.ADMIN)

        assert result == Denied()
        assert fake_db.get_user(manager.id)["role"] == "manager"

    def test_change_role_unknown_user(self, gateway, fake_db):
        admin = fake_db.add_user(UserRole.ADMIN)

        assert isinstance(gateway.change_role(admin, uuid4(), UserRole.USER), NotFound)

    def test_access_logs_admin_only(self, gateway, fake_db):
        admin = fake_db.add_user(UserRole.ADMIN)
        user = fake_db.add_user()
        record = fake_db.add_record(user)
        gateway.fetch(user, record.id)

        assert gateway.get_access_logs(user) == Denied()
        entries = gateway.get_access_logs(admin, record_id=record.id)
        assert len(entries) == 1
        assert entries[0]["granted"] is True
