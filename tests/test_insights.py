"""
Service Assurance Tracker
Tests — insights (staleness and worsening-trend detectors).

All scans run against the fixed ``now`` fixture so ledger entries can be
back-dated deterministically.
"""

from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from assurance.models import db as _db
from assurance.models.project import Project, StandardSummary
from assurance.services import history_ledger, insights_service
from assurance.services.insights_service import (
    NEVER_UPDATED_DAYS,
    deliveries_needing_update,
    deliveries_with_worsening_standards,
    is_worsening,
)


def _entry(status):
    return SimpleNamespace(status_to=status)


def _project(name, status="AMBER"):
    project = Project(name=name, status=status)
    _db.session.add(project)
    _db.session.commit()
    return project


# ═════════════════════════════════════════════════════════════════════════════
# WORSENING TEST
# ═════════════════════════════════════════════════════════════════════════════

class TestIsWorsening:
    def test_empty(self):
        assert is_worsening([]) is False

    @pytest.mark.parametrize("status,expected", [
        ("RED", True), ("AMBER", True), ("PENDING", True), ("GREEN", False),
    ])
    def test_single_entry(self, status, expected):
        assert is_worsening([_entry(status)]) is expected

    def test_decline(self):
        assert is_worsening([_entry("AMBER"), _entry("GREEN")]) is True
        assert is_worsening([_entry("RED"), _entry("AMBER")]) is True

    def test_improvement_or_flat(self):
        assert is_worsening([_entry("GREEN"), _entry("AMBER")]) is False
        assert is_worsening([_entry("AMBER"), _entry("AMBER")]) is False

    def test_case_insensitive(self):
        assert is_worsening([_entry("red"), _entry("green")]) is True

    def test_unrankable_values_are_not_worsening(self):
        assert is_worsening([_entry(None), _entry("GREEN")]) is False
        assert is_worsening([_entry("AMBER_RED"), _entry("GREEN")]) is False
        assert is_worsening([_entry("RED"), _entry("TBC")]) is False
        assert is_worsening([_entry("TBC")]) is False


# ═════════════════════════════════════════════════════════════════════════════
# STALENESS
# ═════════════════════════════════════════════════════════════════════════════

class TestNeedingUpdate:
    def test_never_updated_project_uses_sentinel(self, project, now):
        results = deliveries_needing_update(14, now=now)
        assert len(results) == 1
        row = results[0]
        assert row.id == project["id"]
        assert row.days_since_standard_update == NEVER_UPDATED_DAYS
        assert row.last_service_standard_update is None
        assert row.status == "GREEN"

    def test_recent_update_excluded(self, project, add_history, now):
        add_history(project["id"], 1, "GREEN", days_ago=3)
        assert deliveries_needing_update(14, now=now) == []

    def test_stale_update_included_with_floor_days(self, project, add_history, now):
        entry = add_history(project["id"], 1, "GREEN", days_ago=20)
        entry.timestamp = now - timedelta(days=20, hours=5)
        _db.session.commit()

        results = deliveries_needing_update(14, now=now)
        assert [r.days_since_standard_update for r in results] == [20]
        assert results[0].last_service_standard_update is not None

    def test_archived_entries_do_not_count(self, project, add_history, now):
        add_history(project["id"], 1, "GREEN", days_ago=30)
        add_history(project["id"], 1, "GREEN", days_ago=1, archived=True)
        results = deliveries_needing_update(14, now=now)
        assert [r.days_since_standard_update for r in results] == [30]

    def test_sorted_descending_with_never_updated_first(self, project, add_history, now):
        older = _project("Older")
        newer = _project("Newer")
        add_history(older.id, 1, "GREEN", days_ago=40)
        add_history(newer.id, 1, "GREEN", days_ago=20)

        results = deliveries_needing_update(14, now=now)
        assert [r.id for r in results] == [project["id"], older.id, newer.id]
        days = [r.days_since_standard_update for r in results]
        assert days == sorted(days, reverse=True)

    def test_idempotent(self, project, add_history, now):
        add_history(project["id"], 1, "GREEN", days_ago=40)
        first = [r.to_dict() for r in deliveries_needing_update(14, now=now)]
        second = [r.to_dict() for r in deliveries_needing_update(14, now=now)]
        assert first == second

    def test_status_is_lowest_rag_once_summaries_exist(self, standards, now):
        project = _project("Summarised", status="GREEN")
        _db.session.add_all([
            StandardSummary(project_id=project.id, standard_id=standards[0].id, aggregated_status="GREEN"),
            StandardSummary(project_id=project.id, standard_id=standards[1].id, aggregated_status="RED"),
        ])
        _db.session.commit()
        results = deliveries_needing_update(14, now=now)
        assert results[0].status == "RED"

    def test_failing_project_is_omitted(self, project, monkeypatch, now):
        other = _project("Other")
        real = history_ledger.latest_for_project

        def _flaky(project_id):
            if project_id == other.id:
                raise OperationalError("SELECT", {}, Exception("locked"))
            return real(project_id)

        monkeypatch.setattr(insights_service.history_ledger, "latest_for_project", _flaky)
        results = deliveries_needing_update(14, now=now)
        assert [r.id for r in results] == [project["id"]]


# ═════════════════════════════════════════════════════════════════════════════
# WORSENING DETECTOR
# ═════════════════════════════════════════════════════════════════════════════

class TestWorseningStandards:
    def test_single_red_entry_is_worsening(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "RED", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert len(results) == 1
        change = results[0].standards[0]
        assert change.standard_number == 1
        assert change.status_history == ["RED"]

    def test_single_green_entry_is_not(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "GREEN", days_ago=1)
        assert deliveries_with_worsening_standards(14, now=now) == []

    def test_history_is_oldest_to_newest(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "GREEN", days_ago=5)
        add_history(project["id"], standards[0].id, "AMBER", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert results[0].standards[0].status_history == ["GREEN", "AMBER"]

    def test_history_depth_limits_entries(self, project, standards, add_history, now):
        for days_ago, status in ((6, "GREEN"), (5, "RED"), (4, "GREEN"), (3, "GREEN"), (2, "AMBER")):
            add_history(project["id"], standards[0].id, status, days_ago=days_ago)
        results = deliveries_with_worsening_standards(14, history_depth=3, now=now)
        assert results[0].standards[0].status_history == ["GREEN", "GREEN", "AMBER"]

    def test_missing_status_rendered_unknown(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, None, days_ago=3, commentary={"from": "", "to": "note"})
        add_history(project["id"], standards[0].id, "GREEN", days_ago=2)
        add_history(project["id"], standards[0].id, "RED", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert results[0].standards[0].status_history == ["UNKNOWN", "GREEN", "RED"]

    def test_changes_outside_window_ignored(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "GREEN", days_ago=40)
        add_history(project["id"], standards[0].id, "RED", days_ago=30)
        assert deliveries_with_worsening_standards(14, now=now) == []

    def test_undefined_standard_skipped(self, project, standards, add_history, now):
        add_history(project["id"], 99, "RED", days_ago=1)
        assert deliveries_with_worsening_standards(14, now=now) == []

    def test_standards_sorted_by_number(self, project, standards, add_history, now):
        add_history(project["id"], standards[2].id, "RED", days_ago=1)
        add_history(project["id"], standards[0].id, "AMBER", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert [s.standard_number for s in results[0].standards] == [1, 3]

    def test_status_is_project_status_without_summaries(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "RED", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert results[0].status == "GREEN"
        assert results[0].to_dict()["status"] == "GREEN"

    def test_status_is_lowest_rag_once_summaries_exist(self, project, standards, add_history, now):
        _db.session.add(StandardSummary(
            project_id=project["id"], standard_id=standards[0].id, aggregated_status="AMBER",
        ))
        _db.session.commit()
        add_history(project["id"], standards[0].id, "AMBER", days_ago=1)
        results = deliveries_with_worsening_standards(14, now=now)
        assert results[0].status == "AMBER"

    def test_improving_project_absent(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "RED", days_ago=3)
        add_history(project["id"], standards[0].id, "GREEN", days_ago=1)
        assert deliveries_with_worsening_standards(14, now=now) == []

    def test_prioritisation_keys(self, project, standards, add_history, now):
        add_history(project["id"], standards[0].id, "RED", days_ago=1)
        report = insights_service.prioritisation(14, 14, 5, now=now)
        assert set(report) == {
            "deliveries_needing_standard_updates",
            "deliveries_with_worsening_standards",
        }
        assert report["deliveries_needing_standard_updates"] == []
        worsening = report["deliveries_with_worsening_standards"][0]
        assert worsening["id"] == project["id"]
        assert worsening["standards"][0]["status_history"] == ["RED"]
