"""
Aggregation engine — profession → standard → project roll-up.

Standard level:
    aggregate_status()           6-value statuses → one 4-value status (worst wins)
    summarise_standard()         summary payload for one (project, standard)
    refresh_standard_summaries() recompute-on-write of the StandardSummary cache

Project level:
    calculate_project_status()   score, completion, percentages, calculated / lowest RAG
    project_status_for()         same, for a Project using configured totals

Both levels are pure over their inputs; the only side effect is the summary
cache write-back in refresh_standard_summaries().
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime

from flask import current_app, has_app_context

from assurance.models import db
from assurance.models.assessment import Assessment
from assurance.models.definitions import Profession, ServiceStandard
from assurance.models.project import Project, StandardSummary
from assurance.models.rating import (
    AGGREGATION_PRIORITY,
    EXCLUDED,
    MAX_STANDARD_SCORE,
    NOT_COMPLETED_STATUSES,
    NOT_UPDATED,
    STANDARD_SCORES,
    StandardRating,
    to_standard_rating,
)
from assurance.utils.helpers import as_utc

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_STANDARDS = 14

# calculatedRag thresholds on percentage across completed standards
GREEN_MIN_PCT = 75
AMBER_MIN_PCT = 50


# ═══════════════════════════════════════════════════════════════════════════
#  STANDARD LEVEL
# ═══════════════════════════════════════════════════════════════════════════


def aggregate_status(statuses) -> str:
    """Collapse profession statuses into one standard status.

    AMBER_RED and GREEN_AMBER map to AMBER first; the worst present value wins
    by RED > AMBER > GREEN > TBC. Unknown values never win. No rated
    contributor at all yields ``NOT_UPDATED``.
    """
    mapped = {to_standard_rating(s) for s in statuses}
    for candidate in AGGREGATION_PRIORITY:
        if candidate in mapped:
            return candidate
    return NOT_UPDATED


def summarise_standard(standard_id: int, assessments: list[Assessment]) -> dict:
    """Build the StandardSummary payload for one standard's assessments."""
    commentaries = [
        a.commentary for a in assessments
        if a.commentary and a.commentary.strip()
    ]
    timestamps = [as_utc(a.last_updated) for a in assessments if a.last_updated]
    return {
        "standard_id": standard_id,
        "aggregated_status": aggregate_status(a.status for a in assessments),
        "aggregated_commentary": "; ".join(commentaries),
        "last_updated": max(timestamps) if timestamps else None,
        "professions": [
            {
                "profession_id": a.profession_id,
                "status": a.status,
                "commentary": a.commentary or "",
                "last_updated": as_utc(a.last_updated).isoformat() if a.last_updated else None,
            }
            for a in assessments
        ],
    }


def refresh_standard_summaries(project_id: int) -> list[StandardSummary]:
    """Recompute every StandardSummary row of a project from its current assessments.

    Assessments that reference a missing or inactive standard or profession
    are skipped. Summaries for standards with no remaining contributors are
    removed. Flushes; the caller commits.

    Returns:
        The project's summaries after the refresh (empty if the project is gone).
    """
    project = db.session.get(Project, project_id)
    if project is None:
        logger.warning("Summary refresh skipped: project %s not found", project_id)
        return []

    active_standards = {s.id for s in ServiceStandard.query_active().all()}
    active_professions = {p.id for p in Profession.query_active().all()}

    grouped: dict[int, list[Assessment]] = {}
    assessments = (
        Assessment.query
        .filter_by(project_id=project_id)
        .order_by(Assessment.standard_id, Assessment.profession_id)
        .all()
    )
    for assessment in assessments:
        if assessment.standard_id not in active_standards:
            logger.warning(
                "Skipping assessment %s: standard %s is not defined",
                assessment.id, assessment.standard_id,
                extra={"project_id": project_id, "standard_id": assessment.standard_id},
            )
            continue
        if assessment.profession_id not in active_professions:
            logger.warning(
                "Skipping assessment %s: profession %s is not defined",
                assessment.id, assessment.profession_id,
                extra={"project_id": project_id, "profession_id": assessment.profession_id},
            )
            continue
        grouped.setdefault(assessment.standard_id, []).append(assessment)

    existing = {s.standard_id: s for s in project.standard_summaries}
    for standard_id, rows in grouped.items():
        payload = summarise_standard(standard_id, rows)
        summary = existing.pop(standard_id, None)
        if summary is None:
            summary = StandardSummary(project_id=project_id, standard_id=standard_id)
            project.standard_summaries.append(summary)
        summary.aggregated_status = payload["aggregated_status"]
        summary.aggregated_commentary = payload["aggregated_commentary"]
        summary.last_updated = payload["last_updated"]
        summary.professions = payload["professions"]
        summary.is_cache = True

    for stale in existing.values():
        project.standard_summaries.remove(stale)

    db.session.flush()
    logger.debug(
        "Standard summaries refreshed for project %s: %d standards",
        project_id, len(grouped), extra={"project_id": project_id},
    )
    return list(project.standard_summaries)


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT LEVEL
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class ProjectStatus:
    """Derived project status — recomputed on every read, never persisted."""

    score_of_standards_completed: int = 0
    number_of_standards_completed: int = 0
    percentage_across_all_standards: float = 0.0
    percentage_across_completed_standards: float = 0.0
    calculated_rag: str = StandardRating.RED.value
    lowest_rag: str = StandardRating.GREEN.value

    def __post_init__(self):
        for name in ("percentage_across_all_standards", "percentage_across_completed_standards"):
            value = getattr(self, name)
            if value < 0 or value > 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")

    def to_dict(self) -> dict:
        return asdict(self)


def _status_of(summary) -> str:
    if isinstance(summary, str):
        return summary.upper()
    if isinstance(summary, dict):
        return str(summary.get("aggregated_status") or "").upper()
    return str(getattr(summary, "aggregated_status", "") or "").upper()


def _percentage(top: int, bottom: int) -> float:
    if top == 0:
        return 0.0
    if bottom == 0:
        raise ValueError("Cannot compute a percentage of a zero maximum score")
    pct = round(top / bottom * 100, 2)
    if pct > 100:
        logger.warning("Percentage %.2f exceeds 100 (%d/%d), clamped", pct, top, bottom)
        pct = 100.0
    return pct


def calculated_rag(percentage_across_completed: float) -> str:
    if percentage_across_completed >= GREEN_MIN_PCT:
        return StandardRating.GREEN.value
    if percentage_across_completed >= AMBER_MIN_PCT:
        return StandardRating.AMBER.value
    return StandardRating.RED.value


def lowest_rag(statuses) -> str:
    """GREEN by default, AMBER if any AMBER, RED as soon as any RED is seen."""
    lowest = StandardRating.GREEN.value
    for status in statuses:
        if status == StandardRating.RED.value:
            return StandardRating.RED.value
        if status == StandardRating.AMBER.value:
            lowest = StandardRating.AMBER.value
    return lowest


def calculate_project_status(summaries, total_standards: int = DEFAULT_TOTAL_STANDARDS) -> ProjectStatus:
    """Roll a project's standard summaries up into a ProjectStatus.

    Args:
        summaries: StandardSummary rows, dicts with ``aggregated_status``, or
            plain status strings.
        total_standards: Number of standards a project is measured against.

    Returns:
        ProjectStatus with percentages rounded to 2 dp.
    """
    statuses = [_status_of(s) for s in summaries]

    total_score = sum(STANDARD_SCORES.get(s, 0) for s in statuses if s != EXCLUDED)
    completed = sum(1 for s in statuses if s not in NOT_COMPLETED_STATUSES)

    pct_all = _percentage(total_score, total_standards * MAX_STANDARD_SCORE)
    # total_score > 0 implies at least one completed standard
    pct_completed = _percentage(total_score, completed * MAX_STANDARD_SCORE)

    return ProjectStatus(
        score_of_standards_completed=total_score,
        number_of_standards_completed=completed,
        percentage_across_all_standards=pct_all,
        percentage_across_completed_standards=pct_completed,
        calculated_rag=calculated_rag(pct_completed),
        lowest_rag=lowest_rag(statuses),
    )


def configured_total_standards() -> int:
    if has_app_context():
        return int(current_app.config.get("TOTAL_SERVICE_STANDARDS", DEFAULT_TOTAL_STANDARDS))
    return DEFAULT_TOTAL_STANDARDS


def project_status_for(project: Project) -> ProjectStatus:
    """ProjectStatus for a project using the configured total standard count."""
    return calculate_project_status(project.standard_summaries, configured_total_standards())


def latest_summary_update(project: Project) -> datetime | None:
    stamps = [as_utc(s.last_updated) for s in project.standard_summaries if s.last_updated]
    return max(stamps) if stamps else None
