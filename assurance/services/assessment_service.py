"""Assessment service — profession-level judgements and their ledger.

Transaction policy: functions flush, never commit. The blueprint commits once
so the ledger entry, the assessment upsert and the summary refresh land
together or not at all.

Write path:
    submit_assessment()   validate → diff → ledger append → upsert → refresh summaries
    archive_history()     archive entry → reconcile current assessment → refresh summaries
"""
import logging
from dataclasses import dataclass

from assurance.core.exceptions import NotFoundError, StorageError, ValidationError
from assurance.models import db
from assurance.models.assessment import Assessment, AssessmentHistory
from assurance.models.definitions import Profession, ServiceStandard
from assurance.models.project import Project
from assurance.models.rating import parse_project_rating, valid_project_ratings
from assurance.services import history_ledger
from assurance.services.aggregation import refresh_standard_summaries
from assurance.services.history_ledger import LedgerScope
from assurance.utils.helpers import utcnow

logger = logging.getLogger(__name__)

TRACKED_FIELDS = ("status", "commentary")


@dataclass
class SubmitResult:
    assessment: Assessment
    changed: bool
    history_entry: AssessmentHistory | None = None

    def to_dict(self) -> dict:
        return {
            "assessment": self.assessment.to_dict(),
            "changed": self.changed,
            "history_entry": self.history_entry.to_dict() if self.history_entry else None,
        }


def _validate_scope(project_id: int, standard_id: int, profession_id: int) -> None:
    if db.session.get(Project, project_id) is None:
        raise ValidationError(
            f"Project {project_id} does not exist", details={"project_id": project_id},
        )
    standard = db.session.get(ServiceStandard, standard_id)
    if standard is None or not standard.is_active:
        raise ValidationError(
            f"Service standard {standard_id} is not defined", details={"standard_id": standard_id},
        )
    profession = db.session.get(Profession, profession_id)
    if profession is None or not profession.is_active:
        raise ValidationError(
            f"Profession {profession_id} is not defined", details={"profession_id": profession_id},
        )


def get_assessment(project_id: int, standard_id: int, profession_id: int) -> Assessment:
    assessment = Assessment.query.filter_by(
        project_id=project_id, standard_id=standard_id, profession_id=profession_id,
    ).first()
    if assessment is None:
        raise NotFoundError(
            resource="Assessment",
            resource_id=f"{project_id}/{standard_id}/{profession_id}",
        )
    return assessment


def submit_assessment(project_id: int, standard_id: int, profession_id: int, data: dict) -> SubmitResult:
    """Record one profession's judgement of a project against a standard.

    Args:
        data: ``status`` (required, 6-value scale), optional ``commentary``
            and ``changed_by``.

    Raises:
        ValidationError: missing or invalid status, or an unknown / inactive
            project, standard or profession.
        StorageError: the ledger entry could not be written.
    """
    raw_status = data.get("status")
    if raw_status is None or str(raw_status).strip() == "":
        raise ValidationError("status is required", details={"status": "required"})
    rating = parse_project_rating(raw_status)
    if rating is None:
        raise ValidationError(
            f"Invalid status: {raw_status}. Valid values: {valid_project_ratings()}",
            details={"status": raw_status},
        )
    _validate_scope(project_id, standard_id, profession_id)

    scope = LedgerScope(project_id, standard_id, profession_id)
    current = Assessment.query.filter_by(
        project_id=project_id, standard_id=standard_id, profession_id=profession_id,
    ).first()

    after = {"status": rating.value}
    if "commentary" in data or current is None:
        after["commentary"] = data.get("commentary") or ""
    before = {"status": current.status, "commentary": current.commentary} if current else None

    changes = history_ledger.build_changes(before, after, TRACKED_FIELDS)
    if not changes:
        logger.info("Assessment submit is a no-op for %s", scope)
        return SubmitResult(assessment=current, changed=False)

    # Commentary-only edits still record the status pair
    if "status" not in changes:
        changes["status"] = {"from": rating.value, "to": rating.value}

    changed_by = (data.get("changed_by") or "").strip() or "Unknown"
    now = utcnow()
    entry = AssessmentHistory(
        project_id=project_id,
        standard_id=standard_id,
        profession_id=profession_id,
        timestamp=now,
        changed_by=changed_by,
    )
    entry.changes = changes
    if not history_ledger.append(entry):
        raise StorageError("ledger append")

    if current is None:
        current = Assessment(project_id=project_id, standard_id=standard_id, profession_id=profession_id)
        db.session.add(current)
    current.status = rating.value
    if "commentary" in after:
        current.commentary = after["commentary"]
    current.last_updated = now
    current.changed_by = changed_by
    db.session.flush()

    refresh_standard_summaries(project_id)
    logger.info(
        "Assessment recorded for %s by %s: %s", scope, changed_by, sorted(changes),
        extra={"project_id": project_id, "standard_id": standard_id, "profession_id": profession_id},
    )
    return SubmitResult(assessment=current, changed=True, history_entry=entry)


def history(project_id: int, standard_id: int, profession_id: int, include_archived: bool = False) -> list[AssessmentHistory]:
    scope = LedgerScope(project_id, standard_id, profession_id)
    return history_ledger.entries_for(scope, include_archived=include_archived)


def archive_history(project_id: int, standard_id: int, profession_id: int, entry_id: int) -> Assessment | None:
    """Archive one ledger entry and reconcile the current assessment from what remains.

    Returns:
        The reconciled assessment, or None when no entries remain and the
        assessment was removed.

    Raises:
        NotFoundError: no active entry with *entry_id* exists in the scope.
    """
    scope = LedgerScope(project_id, standard_id, profession_id)
    if not history_ledger.archive(scope, entry_id):
        raise NotFoundError(resource="AssessmentHistory", resource_id=entry_id)

    assessment = history_ledger.recompute_current_from_latest(scope)
    refresh_standard_summaries(project_id)
    return assessment
