"""
Service Assurance Tracker
Tests — history ledger service.

Covers:
    - scope validation
    - change deltas and no-op detection
    - ordering, archival and project-wide reads
    - reconciliation of the current assessment after archival
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError

from assurance.models import db as _db
from assurance.models.assessment import Assessment, AssessmentHistory
from assurance.models.project import ProjectHistory
from assurance.services import history_ledger
from assurance.services.history_ledger import LedgerScope, build_changes


class TestLedgerScope:
    def test_project_scope(self):
        scope = LedgerScope(1)
        assert not scope.is_assessment_scope
        assert scope.model is ProjectHistory

    def test_assessment_scope(self):
        scope = LedgerScope(1, 2, 3)
        assert scope.is_assessment_scope
        assert scope.model is AssessmentHistory

    def test_partial_fine_scope_rejected(self):
        with pytest.raises(ValueError):
            LedgerScope(1, standard_id=2)


class TestBuildChanges:
    def test_only_changed_fields(self):
        changes = build_changes(
            {"status": "GREEN", "commentary": "ok"},
            {"status": "RED", "commentary": "ok"},
            ("status", "commentary"),
        )
        assert changes == {"status": {"from": "GREEN", "to": "RED"}}

    def test_no_op_is_empty(self):
        assert build_changes({"status": "GREEN"}, {"status": "GREEN"}, ("status",)) == {}

    def test_new_record_compares_against_blank(self):
        changes = build_changes(None, {"status": "AMBER", "commentary": ""}, ("status", "commentary"))
        assert changes == {"status": {"from": "", "to": "AMBER"}}

    def test_fields_absent_from_after_are_ignored(self):
        assert build_changes({"name": "A", "phase": "Beta"}, {"name": "A"}, ("name", "phase")) == {}


class TestReadsAndArchive:
    def test_entries_newest_first_excluding_archived(self, project, add_history):
        pid = project["id"]
        old = add_history(pid, 1, "GREEN", days_ago=10)
        new = add_history(pid, 1, "AMBER", days_ago=1)
        add_history(pid, 1, "RED", days_ago=0, archived=True)

        entries = history_ledger.entries_for(LedgerScope(pid, 1, 1))
        assert [e.id for e in entries] == [new.id, old.id]
        assert len(history_ledger.entries_for(LedgerScope(pid, 1, 1), include_archived=True)) == 3

    def test_timestamp_ties_break_on_insertion_order(self, project, add_history):
        pid = project["id"]
        first = add_history(pid, 1, "GREEN", days_ago=2)
        second = add_history(pid, 1, "RED", days_ago=2)
        assert history_ledger.latest_for(LedgerScope(pid, 1, 1)).id == second.id
        assert history_ledger.latest_for(LedgerScope(pid, 1, 1)).id != first.id

    def test_latest_for_empty_scope(self, project):
        assert history_ledger.latest_for(LedgerScope(project["id"], 5, 5)) is None

    def test_archive_hides_entry(self, project, add_history):
        pid = project["id"]
        entry = add_history(pid, 1, "GREEN")
        assert history_ledger.archive(LedgerScope(pid, 1, 1), entry.id) is True
        assert history_ledger.latest_for(LedgerScope(pid, 1, 1)) is None

    def test_archive_wrong_scope_or_twice(self, project, add_history):
        pid = project["id"]
        entry = add_history(pid, 1, "GREEN")
        assert history_ledger.archive(LedgerScope(pid, 2, 1), entry.id) is False
        assert history_ledger.archive(LedgerScope(pid, 1, 1), entry.id) is True
        assert history_ledger.archive(LedgerScope(pid, 1, 1), entry.id) is False

    def test_latest_for_project_spans_scopes(self, project, add_history):
        pid = project["id"]
        add_history(pid, 1, "GREEN", days_ago=5)
        newest = add_history(pid, 2, "RED", days_ago=1, profession_id=2)
        add_history(pid, 3, "AMBER", days_ago=0, archived=True)
        assert history_ledger.latest_for_project(pid).id == newest.id

    def test_entries_by_standard(self, project, add_history):
        pid = project["id"]
        a = add_history(pid, 1, "GREEN", days_ago=3)
        b = add_history(pid, 1, "AMBER", days_ago=1)
        c = add_history(pid, 2, "RED", days_ago=2)
        grouped = history_ledger.entries_by_standard(pid)
        assert [e.id for e in grouped[1]] == [b.id, a.id]
        assert [e.id for e in grouped[2]] == [c.id]

    def test_append_failure_returns_false(self, project, monkeypatch):
        def _boom():
            raise SQLAlchemyError("disk full")

        entry = ProjectHistory(project_id=project["id"], changed_by="Test")
        entry.changes = {"name": {"from": "a", "to": "b"}}
        monkeypatch.setattr(_db.session, "flush", _boom)
        assert history_ledger.append(entry) is False


class TestRecompute:
    def _current(self, pid, status="RED", commentary="latest"):
        row = Assessment(project_id=pid, standard_id=1, profession_id=1,
                         status=status, commentary=commentary)
        _db.session.add(row)
        _db.session.commit()
        return row

    def test_archiving_latest_restores_previous(self, project, standards, professions, add_history):
        pid = project["id"]
        add_history(pid, 1, "GREEN", days_ago=5, commentary={"from": "", "to": "fine"})
        latest = add_history(pid, 1, "RED", days_ago=1, commentary={"from": "fine", "to": "latest"})
        self._current(pid)

        history_ledger.archive(LedgerScope(pid, 1, 1), latest.id)
        current = history_ledger.recompute_current_from_latest(LedgerScope(pid, 1, 1))
        assert current.status == "GREEN"
        assert current.commentary == "fine"
        assert current.changed_by == "Test"

    def test_archiving_non_latest_keeps_current(self, project, standards, professions, add_history):
        pid = project["id"]
        older = add_history(pid, 1, "GREEN", days_ago=5)
        add_history(pid, 1, "RED", days_ago=1, commentary={"from": "", "to": "latest"})
        self._current(pid)

        history_ledger.archive(LedgerScope(pid, 1, 1), older.id)
        current = history_ledger.recompute_current_from_latest(LedgerScope(pid, 1, 1))
        assert current.status == "RED"
        assert current.commentary == "latest"

    def test_archiving_only_entry_removes_current(self, project, standards, professions, add_history):
        pid = project["id"]
        only = add_history(pid, 1, "RED")
        self._current(pid)

        history_ledger.archive(LedgerScope(pid, 1, 1), only.id)
        assert history_ledger.recompute_current_from_latest(LedgerScope(pid, 1, 1)) is None
        assert Assessment.query.filter_by(project_id=pid).count() == 0

    def test_missing_pair_keeps_current_value(self, project, standards, professions, add_history, now):
        pid = project["id"]
        add_history(pid, 1, "AMBER", days_ago=3, commentary={"from": "", "to": "first"})
        add_history(pid, 1, "GREEN", days_ago=2)
        latest = add_history(pid, 1, "RED", days_ago=1)
        self._current(pid, commentary="second")

        history_ledger.archive(LedgerScope(pid, 1, 1), latest.id)
        current = history_ledger.recompute_current_from_latest(LedgerScope(pid, 1, 1))
        assert current.status == "GREEN"
        assert current.commentary == "second"
        assert current.last_updated.replace(tzinfo=None) == (now - timedelta(days=2)).replace(tzinfo=None)

    def test_project_scope_rejected(self):
        with pytest.raises(ValueError):
            history_ledger.recompute_current_from_latest(LedgerScope(1))
