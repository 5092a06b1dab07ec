"""History ledger service — append-only change history per scope.

Two scopes share one contract:
- project scope        LedgerScope(project_id)                      → ProjectHistory
- assessment scope     LedgerScope(project_id, standard_id, prof_id) → AssessmentHistory

Operations:
- append / entries_for / latest_for / archive
- latest_for_project / entries_by_standard   (read side for insights)
- definition_entries                          (service standard and profession ledgers)
- build_changes                               (field deltas; empty for no-op writes)
- recompute_current_from_latest               (the only reconciliation path after archival)

Transaction policy: functions flush, never commit. The calling blueprint owns
db.session.commit().
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from assurance.models import db
from assurance.models.assessment import Assessment, AssessmentHistory
from assurance.models.project import ProjectHistory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LedgerScope:
    """Owning scope of a ledger entry."""

    project_id: int
    standard_id: int | None = None
    profession_id: int | None = None

    def __post_init__(self):
        fine = (self.standard_id, self.profession_id)
        if any(v is not None for v in fine) and not all(v is not None for v in fine):
            raise ValueError("Assessment scope requires both standard_id and profession_id")

    @property
    def is_assessment_scope(self) -> bool:
        return self.standard_id is not None

    @property
    def model(self):
        return AssessmentHistory if self.is_assessment_scope else ProjectHistory

    @classmethod
    def of(cls, entry) -> "LedgerScope":
        if isinstance(entry, AssessmentHistory):
            return cls(entry.project_id, entry.standard_id, entry.profession_id)
        return cls(entry.project_id)


def _scoped_query(scope: LedgerScope, include_archived: bool = False):
    model = scope.model
    query = model.query.filter(model.project_id == scope.project_id)
    if scope.is_assessment_scope:
        query = query.filter(
            model.standard_id == scope.standard_id,
            model.profession_id == scope.profession_id,
        )
    if not include_archived:
        query = query.filter(model.archived.is_(False))
    return query


def _newest_first(model):
    # id breaks timestamp ties in insertion order
    return (model.timestamp.desc(), model.id.desc())


# ═══════════════════════════════════════════════════════════════════════════
#  CHANGE DELTAS
# ═══════════════════════════════════════════════════════════════════════════


def _blank(value):
    return "" if value is None else value


def build_changes(before: dict | None, after: dict, fields: tuple[str, ...]) -> dict:
    """Return ``{field: {"from": old, "to": new}}`` for every field that differs.

    Args:
        before: Current values (None when the record does not exist yet).
        after: Submitted values. Fields missing from *after* are not compared.
        fields: Tracked field names, in output order.

    Returns:
        Field deltas. An empty dict means the write is a no-op and must not
        produce a ledger entry.
    """
    before = before or {}
    changes: dict = {}
    for field in fields:
        if field not in after:
            continue
        old = _blank(before.get(field))
        new = _blank(after.get(field))
        if old != new:
            changes[field] = {"from": old, "to": new}
    return changes


# ═══════════════════════════════════════════════════════════════════════════
#  WRITE SIDE
# ═══════════════════════════════════════════════════════════════════════════


def append(entry) -> bool:
    """Insert one immutable ledger entry.

    Returns:
        True when the entry was flushed, False on a storage failure. Never
        raises past this boundary; the session is rolled back on failure.
    """
    try:
        db.session.add(entry)
        db.session.flush()
    except SQLAlchemyError:
        logger.exception("Ledger append failed for %r", entry)
        db.session.rollback()
        return False
    logger.info("Ledger entry appended %r fields=%s", entry, sorted(entry.changes))
    return True


def archive(scope: LedgerScope, entry_id: int) -> bool:
    """Mark one entry of *scope* archived.

    Returns:
        Whether a matching, not yet archived entry was found.
    """
    model = scope.model
    try:
        entry = _scoped_query(scope).filter(model.id == entry_id).first()
        if entry is None:
            logger.warning("Ledger archive: entry %s not found in %s", entry_id, scope)
            return False
        entry.archive()
        db.session.flush()
    except SQLAlchemyError:
        logger.exception("Ledger archive failed for entry %s in %s", entry_id, scope)
        db.session.rollback()
        return False
    logger.info("Ledger entry archived id=%s scope=%s", entry_id, scope)
    return True


# ═══════════════════════════════════════════════════════════════════════════
#  READ SIDE
# ═══════════════════════════════════════════════════════════════════════════


def entries_for(scope: LedgerScope, include_archived: bool = False) -> list:
    """Entries for *scope*, newest first (archived excluded by default)."""
    return (
        _scoped_query(scope, include_archived=include_archived)
        .order_by(*_newest_first(scope.model))
        .all()
    )


def latest_for(scope: LedgerScope):
    """Newest non-archived entry for *scope*, or None."""
    return _scoped_query(scope).order_by(*_newest_first(scope.model)).first()


def latest_for_project(project_id: int) -> AssessmentHistory | None:
    """Newest non-archived assessment entry across every standard/profession of a project."""
    return (
        AssessmentHistory.query
        .filter(
            AssessmentHistory.project_id == project_id,
            AssessmentHistory.archived.is_(False),
        )
        .order_by(*_newest_first(AssessmentHistory))
        .first()
    )


def definition_entries(model, owner_id: int) -> list:
    """Ledger of one service standard or profession, newest first.

    *model* is StandardHistory or ProfessionHistory; its ``OWNER_FIELD`` names
    the column holding *owner_id*.
    """
    return (
        model.query
        .filter(getattr(model, model.OWNER_FIELD) == owner_id, model.archived.is_(False))
        .order_by(*_newest_first(model))
        .all()
    )


def entries_by_standard(project_id: int) -> "OrderedDict[int, list[AssessmentHistory]]":
    """Non-archived assessment entries for a project grouped by standard, each newest first."""
    rows = (
        AssessmentHistory.query
        .filter(
            AssessmentHistory.project_id == project_id,
            AssessmentHistory.archived.is_(False),
        )
        .order_by(*_newest_first(AssessmentHistory))
        .all()
    )
    grouped: OrderedDict[int, list[AssessmentHistory]] = OrderedDict()
    for row in rows:
        grouped.setdefault(row.standard_id, []).append(row)
    return grouped


# ═══════════════════════════════════════════════════════════════════════════
#  RECONCILIATION
# ═══════════════════════════════════════════════════════════════════════════


def recompute_current_from_latest(scope: LedgerScope) -> Assessment | None:
    """Re-derive the current assessment of *scope* from its ledger.

    - non-archived entries remain → overwrite status / commentary from the
      latest entry's ``to`` values (a field it does not carry is left as is),
      and take its timestamp and actor;
    - no entry remains → delete the current assessment.

    Returns:
        The reconciled Assessment, or None when it was removed or never existed.
    """
    if not scope.is_assessment_scope:
        raise ValueError("Only assessment scopes carry a current state to recompute")

    current = Assessment.query.filter_by(
        project_id=scope.project_id,
        standard_id=scope.standard_id,
        profession_id=scope.profession_id,
    ).first()
    remaining = entries_for(scope)
    latest = remaining[0] if remaining else None

    if latest is None:
        if current is not None:
            db.session.delete(current)
            db.session.flush()
            logger.info("No ledger entries remain for %s: current assessment removed", scope)
        return None

    if current is None:
        logger.warning("Ledger entries remain for %s but no current assessment exists", scope)
        return None

    # Only the latest entry's pairs apply; an absent pair keeps the current value
    status = latest.change_to("status")
    if status:
        current.status = status
    commentary = latest.change_to("commentary")
    if commentary is not None:
        current.commentary = commentary
    current.last_updated = latest.timestamp
    current.changed_by = latest.changed_by
    db.session.flush()
    logger.info("Current assessment for %s recomputed from ledger entry %s", scope, latest.id)
    return current
