"""
Insights — read-only scans over the assessment ledger.

Two detectors:
    deliveries_needing_update()            staleness: no assessment change within N days
    deliveries_with_worsening_standards()  trend: a standard's newest status ranks
                                           below its previous one

prioritisation() bundles both for the dashboard endpoint. Nothing here writes;
each project is scanned on its own so one broken project never aborts the scan.

Usage:
    from assurance.services import insights_service
    report = insights_service.prioritisation(standard_threshold=14, worsening_days=14)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError

from assurance.models import db
from assurance.models.definitions import ServiceStandard
from assurance.models.project import Project
from assurance.models.rating import TREND_RANKS, UNKNOWN, StandardRating, trend_rank
from assurance.services import history_ledger
from assurance.services.aggregation import project_status_for
from assurance.utils.helpers import as_utc, utcnow

logger = logging.getLogger(__name__)

# Reported as days-since-update for projects with no assessment history at all
NEVER_UPDATED_DAYS = 2**31 - 1

DEFAULT_HISTORY_DEPTH = 5
MAX_HISTORY_DEPTH = 50


# ═════════════════════════════════════════════════════════════════════════════
# Result types
# ═════════════════════════════════════════════════════════════════════════════

@dataclass
class DeliveryNeedingUpdate:
    id: int
    name: str
    status: str
    last_service_standard_update: datetime | None
    days_since_standard_update: int

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "last_service_standard_update": (
                self.last_service_standard_update.isoformat()
                if self.last_service_standard_update else None
            ),
            "days_since_standard_update": self.days_since_standard_update,
        }


@dataclass
class StandardChange:
    standard_id: int
    standard_number: int
    standard_name: str
    status_history: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "standard_id": self.standard_id,
            "standard_number": self.standard_number,
            "standard_name": self.standard_name,
            "status_history": list(self.status_history),
        }


@dataclass
class WorseningStandardsDelivery:
    id: int
    name: str
    status: str
    standards: list[StandardChange] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "standards": [s.to_dict() for s in self.standards],
        }


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════

def _display_status(project: Project) -> str:
    """Lowest standard RAG once the project has summaries, its own status before that."""
    if project.standard_summaries:
        return project_status_for(project).lowest_rag
    return project.status


def _scan_projects():
    return Project.query.order_by(Project.id).all()


def _status_label(entry) -> str:
    value = entry.status_to
    if value is None or str(value).strip() == "":
        return UNKNOWN
    return str(value).strip().upper()


def is_worsening(history) -> bool:
    """Whether a standard's ledger (newest first) shows a decline.

    A single entry counts as worsening when it is below GREEN. Otherwise the
    newest status must rank lower than the one before it. Any status outside
    the rank table makes the comparison non-worsening.
    """
    if not history:
        return False

    current = trend_rank(history[0].status_to)
    if current is None:
        return False

    if len(history) == 1:
        return current < TREND_RANKS[StandardRating.GREEN.value]

    previous = trend_rank(history[1].status_to)
    if previous is None:
        return False
    return current < previous


# ═════════════════════════════════════════════════════════════════════════════
# Staleness detector
# ═════════════════════════════════════════════════════════════════════════════

def deliveries_needing_update(threshold_days: int, now: datetime | None = None) -> list[DeliveryNeedingUpdate]:
    """Projects whose newest assessment change is older than *threshold_days*.

    Projects without any assessment history are always included with
    ``NEVER_UPDATED_DAYS`` and sort first. Result is ordered by days since
    the last update, descending.
    """
    now = as_utc(now) or utcnow()
    cutoff = now - timedelta(days=threshold_days)
    results: list[DeliveryNeedingUpdate] = []

    for project in _scan_projects():
        try:
            latest = history_ledger.latest_for_project(project.id)
            status = _display_status(project)
        except SQLAlchemyError:
            logger.warning(
                "Staleness scan skipped project %s", project.id,
                exc_info=True, extra={"project_id": project.id},
            )
            db.session.rollback()
            continue

        if latest is None:
            results.append(DeliveryNeedingUpdate(
                id=project.id,
                name=project.name,
                status=status,
                last_service_standard_update=None,
                days_since_standard_update=NEVER_UPDATED_DAYS,
            ))
            continue

        last_update = as_utc(latest.timestamp)
        if last_update >= cutoff:
            continue
        results.append(DeliveryNeedingUpdate(
            id=project.id,
            name=project.name,
            status=status,
            last_service_standard_update=last_update,
            days_since_standard_update=(now - last_update).days,
        ))

    results.sort(key=lambda r: r.days_since_standard_update, reverse=True)
    logger.info("Staleness scan: %d deliveries need updates (threshold=%dd)", len(results), threshold_days)
    return results


# ═════════════════════════════════════════════════════════════════════════════
# Worsening-trend detector
# ═════════════════════════════════════════════════════════════════════════════

def _worsening_for_project(project: Project, standards: dict, cutoff: datetime, depth: int) -> list[StandardChange]:
    changes: list[StandardChange] = []
    for standard_id, history in history_ledger.entries_by_standard(project.id).items():
        if not any(as_utc(e.timestamp) >= cutoff for e in history):
            continue
        if not is_worsening(history):
            continue
        standard = standards.get(standard_id)
        if standard is None:
            logger.warning(
                "Worsening standard %s on project %s has no active definition",
                standard_id, project.id,
                extra={"project_id": project.id, "standard_id": standard_id},
            )
            continue
        changes.append(StandardChange(
            standard_id=standard_id,
            standard_number=standard.number,
            standard_name=standard.name,
            status_history=[_status_label(e) for e in reversed(history[:depth])],
        ))
    changes.sort(key=lambda c: c.standard_number)
    return changes


def deliveries_with_worsening_standards(
    window_days: int,
    history_depth: int = DEFAULT_HISTORY_DEPTH,
    now: datetime | None = None,
) -> list[WorseningStandardsDelivery]:
    """Projects with at least one standard whose status declined recently.

    Args:
        window_days: A standard is only considered when one of its entries
            falls within this many days of *now*.
        history_depth: Newest entries shown per standard, oldest → newest.
        now: Reference time; defaults to the current UTC time.
    """
    now = as_utc(now) or utcnow()
    cutoff = now - timedelta(days=window_days)
    standards = {s.id: s for s in ServiceStandard.query_active().all()}
    results: list[WorseningStandardsDelivery] = []

    for project in _scan_projects():
        try:
            changes = _worsening_for_project(project, standards, cutoff, history_depth)
            status = _display_status(project) if changes else project.status
        except SQLAlchemyError:
            logger.warning(
                "Worsening scan skipped project %s", project.id,
                exc_info=True, extra={"project_id": project.id},
            )
            db.session.rollback()
            continue
        if changes:
            results.append(WorseningStandardsDelivery(
                id=project.id, name=project.name, status=status, standards=changes,
            ))

    logger.info("Worsening scan: %d deliveries with worsening standards (window=%dd)", len(results), window_days)
    return results


def prioritisation(
    standard_threshold: int,
    worsening_days: int,
    history_depth: int = DEFAULT_HISTORY_DEPTH,
    now: datetime | None = None,
) -> dict:
    """Both insight lists, serialised for the prioritisation endpoint."""
    now = as_utc(now) or utcnow()
    return {
        "deliveries_needing_standard_updates": [
            d.to_dict() for d in deliveries_needing_update(standard_threshold, now=now)
        ],
        "deliveries_with_worsening_standards": [
            d.to_dict() for d in deliveries_with_worsening_standards(worsening_days, history_depth, now=now)
        ],
    }
