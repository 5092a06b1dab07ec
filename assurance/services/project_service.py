"""Project service layer — projects, their ledger and tag reporting.

Transaction policy: functions flush, never commit.

Provides:
- Project CRUD with change tracking into the project ledger
- Project ledger read / archive
- Tag summary grouped by category
- Derived ProjectStatus (delegates to the aggregation engine)
"""
import logging
from collections import OrderedDict
from datetime import date, datetime, time, timezone

from assurance.core.exceptions import NotFoundError, StorageError, ValidationError
from assurance.models import db
from assurance.models.assessment import Assessment, AssessmentHistory
from assurance.models.project import Project, ProjectHistory
from assurance.models.rating import ProjectRating, parse_project_rating, valid_project_ratings
from assurance.services import history_ledger
from assurance.services.aggregation import ProjectStatus, project_status_for
from assurance.services.history_ledger import LedgerScope
from assurance.utils.helpers import as_utc, parse_date, utcnow

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("name", "phase", "status", "commentary", "tags")
PROJECT_PHASES = {"Discovery", "Alpha", "Beta", "Live"}

CREATED_BY = "Project created"
UPDATED_BY = "Project Admin"
NO_TAG_VALUE = "No Value"

_FIELD_LIMITS = {"name": 200, "phase": 50, "def_code": 50}


# ── Validation ───────────────────────────────────────────────────────────


def _parse_status(value, required: bool) -> str | None:
    if value is None or str(value).strip() == "":
        if required:
            return ProjectRating.TBC.value
        return None
    rating = parse_project_rating(value)
    if rating is None:
        raise ValidationError(
            f"Invalid status: {value}. Valid values: {valid_project_ratings()}",
            details={"status": value},
        )
    return rating.value


def _parse_tags(value) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("tags must be a list of strings", details={"tags": value})
    return [str(t).strip() for t in value if str(t).strip()]


def _check_lengths(data: dict) -> None:
    for field, limit in _FIELD_LIMITS.items():
        value = data.get(field)
        if value and len(str(value)) > limit:
            raise ValidationError(
                f"{field} exceeds maximum length of {limit} characters", details={field: "too_long"},
            )


def _normalised_input(data: dict, creating: bool) -> dict:
    """Validated subset of *data*; only keys present in the payload are returned on update."""
    _check_lengths(data)
    clean: dict = {}

    if creating or "name" in data:
        name = str(data.get("name") or "").strip()
        if not name:
            raise ValidationError("name is required", details={"name": "required"})
        clean["name"] = name
    if creating or "status" in data:
        status = _parse_status(data.get("status"), required=creating)
        if status is None:
            raise ValidationError("status cannot be empty", details={"status": "required"})
        clean["status"] = status
    if creating or "commentary" in data:
        clean["commentary"] = str(data.get("commentary") or "")
    if creating or "phase" in data:
        phase = (data.get("phase") or "").strip() or None
        if phase and phase not in PROJECT_PHASES:
            raise ValidationError(
                f"Invalid phase: '{phase}'. Allowed: {sorted(PROJECT_PHASES)}", details={"phase": phase},
            )
        clean["phase"] = phase
    if creating or "tags" in data:
        clean["tags"] = _parse_tags(data.get("tags"))
    if "def_code" in data:
        clean["def_code"] = (data.get("def_code") or "").strip() or None
    if "update_date" in data:
        raw = data.get("update_date")
        parsed = parse_date(raw)
        if raw and parsed is None:
            raise ValidationError(f"Invalid update_date: {raw}", details={"update_date": raw})
        clean["update_date"] = parsed
    return clean


def _tracked_state(project: Project) -> dict:
    return {
        "name": project.name,
        "phase": project.phase,
        "status": project.status,
        "commentary": project.commentary,
        "tags": project.tags,
    }


def _start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


# ── Queries ──────────────────────────────────────────────────────────────


def get_project(project_id: int) -> Project:
    project = db.session.get(Project, project_id)
    if project is None:
        raise NotFoundError(resource="Project", resource_id=project_id)
    return project


def list_projects(tag: str | None = None, start_date=None, end_date=None) -> list[Project]:
    """Projects ordered by name, optionally filtered by tag and last-updated range.

    *tag* must equal one of the project's tags (case-insensitive). The range is
    ``start_date <= last_updated < end_date``; reversed bounds are swapped.
    """
    start = parse_date(start_date)
    end = parse_date(end_date)
    if start and end and start > end:
        start, end = end, start

    query = Project.query
    if start:
        query = query.filter(Project.last_updated >= _start_of_day(start))
    if end:
        query = query.filter(Project.last_updated < _start_of_day(end))
    projects = query.order_by(db.func.lower(Project.name), Project.id).all()

    if tag:
        wanted = tag.strip().lower()
        projects = [p for p in projects if any(t.lower() == wanted for t in p.tags)]
    return projects


def project_status(project_id: int) -> ProjectStatus:
    return project_status_for(get_project(project_id))


def serialise(project: Project) -> dict:
    data = project.to_dict()
    data["project_status"] = project_status_for(project).to_dict()
    return data


def tags_summary() -> dict:
    """Count tags per category: ``{category: {value: count}}``.

    ``"Category: Value"`` splits on the first ``": "``; a tag without a value
    counts under ``"No Value"``.
    """
    summary: OrderedDict[str, dict[str, int]] = OrderedDict()
    for project in Project.query.order_by(Project.id).all():
        for tag in project.tags:
            category, sep, value = tag.partition(": ")
            category = category.strip()
            value = value.strip() if sep else ""
            bucket = summary.setdefault(category, {})
            key = value or NO_TAG_VALUE
            bucket[key] = bucket.get(key, 0) + 1
    return summary


# ── Writes ───────────────────────────────────────────────────────────────


def create_project(data: dict) -> Project:
    """Create a project and open its ledger with a creation entry."""
    clean = _normalised_input(data, creating=True)
    now = utcnow()
    project = Project(
        name=clean["name"],
        status=clean["status"],
        commentary=clean["commentary"],
        phase=clean["phase"],
        def_code=clean.get("def_code"),
        update_date=clean.get("update_date") or now.date(),
        last_updated=now,
    )
    project.tags = clean["tags"]
    db.session.add(project)
    db.session.flush()

    entry = ProjectHistory(project_id=project.id, timestamp=now, changed_by=CREATED_BY)
    entry.changes = {
        "status": {"from": "", "to": project.status},
        "commentary": {"from": "", "to": project.commentary},
    }
    if not history_ledger.append(entry):
        raise StorageError("ledger append")

    logger.info("Project created id=%s name=%s", project.id, project.name, extra={"project_id": project.id})
    return project


def _ledger_timestamp(update_date: date | None) -> datetime:
    now = utcnow()
    if update_date and update_date < now.date():
        return _start_of_day(update_date)
    return now


def update_project(project_id: int, data: dict, suppress_history: bool = False) -> Project:
    """Apply an update and record the field deltas in the project ledger.

    An ``update_date`` in the past backdates the ledger entry. When an entry
    was written, status and commentary are then taken from the newest ledger
    entry that carries a status, so a backdated update never overrides a newer
    one. An ``update_date`` older than the newest ledger entry keeps the
    previous date.
    """
    project = get_project(project_id)
    clean = _normalised_input(data, creating=False)
    before = _tracked_state(project)
    previous_latest = history_ledger.latest_for(LedgerScope(project_id))

    changes = history_ledger.build_changes(before, clean, TRACKED_FIELDS)
    recorded = bool(changes) and not suppress_history
    if recorded:
        if "status" not in changes and "commentary" in changes:
            changes["status"] = {"from": project.status, "to": project.status}
        entry = ProjectHistory(
            project_id=project_id,
            timestamp=_ledger_timestamp(clean.get("update_date")),
            changed_by=UPDATED_BY,
        )
        entry.changes = changes
        if not history_ledger.append(entry):
            raise StorageError("ledger append")

    for field in ("name", "phase", "status", "commentary", "def_code"):
        if field in clean:
            setattr(project, field, clean[field])
    if "tags" in clean:
        project.tags = clean["tags"]

    new_date = clean.get("update_date")
    if new_date:
        latest_ts = as_utc(previous_latest.timestamp) if previous_latest else None
        if latest_ts is None or new_date >= latest_ts.date():
            project.update_date = new_date
    if project.update_date is None:
        project.update_date = utcnow().date()
    project.last_updated = utcnow()

    if recorded:
        newest_with_status = next(
            (e for e in history_ledger.entries_for(LedgerScope(project_id)) if e.status_to),
            None,
        )
        if newest_with_status is not None:
            project.status = newest_with_status.status_to
            commentary = newest_with_status.change_to("commentary")
            if commentary is not None:
                project.commentary = commentary

    db.session.flush()
    logger.info(
        "Project updated id=%s fields=%s history=%s",
        project_id, sorted(changes), "recorded" if recorded else "skipped",
        extra={"project_id": project_id},
    )
    return project


def delete_project(project_id: int) -> None:
    """Delete a project together with its assessments, summaries and ledgers."""
    project = get_project(project_id)
    Assessment.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    AssessmentHistory.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    ProjectHistory.query.filter_by(project_id=project_id).delete(synchronize_session=False)
    db.session.delete(project)
    db.session.flush()
    logger.info("Project deleted id=%s", project_id, extra={"project_id": project_id})


def history(project_id: int, include_archived: bool = False) -> list[ProjectHistory]:
    get_project(project_id)
    return history_ledger.entries_for(LedgerScope(project_id), include_archived=include_archived)


def archive_history(project_id: int, entry_id: int) -> None:
    get_project(project_id)
    if not history_ledger.archive(LedgerScope(project_id), entry_id):
        raise NotFoundError(resource="ProjectHistory", resource_id=entry_id)
