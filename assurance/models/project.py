"""
Service Assurance Tracker
Project domain models.

Models:
    - Project: a delivery tracked against the service standards
    - ProjectHistory: project-scope ledger (name / phase / status / commentary / tags)
    - StandardSummary: derived per-standard aggregate (cache, never authored)

Architecture chain: Project → Assessment (per standard × profession)
                    Project → StandardSummary (recomputed on every assessment write)
"""

import json
from datetime import datetime, timezone

from assurance.models import db
from assurance.models.ledger import LedgerEntryMixin


class Project(db.Model):
    """A delivery project with its own 5-RAG status and tags."""

    __tablename__ = "projects"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default="TBC",
        comment="RED | AMBER_RED | AMBER | GREEN_AMBER | GREEN | TBC",
    )
    commentary = db.Column(db.Text, nullable=False, default="")
    phase = db.Column(db.String(50), nullable=True, comment="Discovery | Alpha | Beta | Live")
    def_code = db.Column(db.String(50), nullable=True, comment="Department project identifier")
    tags_json = db.Column(db.Text, nullable=False, default="[]", comment='JSON list of "Category: Value"')
    update_date = db.Column(db.Date, nullable=True, comment="Reporting date shown on the project")
    last_updated = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ──
    standard_summaries = db.relationship(
        "StandardSummary", backref="project",
        lazy="select", cascade="all, delete-orphan",
        order_by="StandardSummary.standard_id",
    )
    history = db.relationship(
        "ProjectHistory", backref="project",
        lazy="dynamic", cascade="all, delete-orphan",
    )

    @property
    def tags(self) -> list[str]:
        try:
            value = json.loads(self.tags_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []
        return [str(t) for t in value] if isinstance(value, list) else []

    @tags.setter
    def tags(self, value) -> None:
        self.tags_json = json.dumps(list(value or []))

    def to_dict(self, include_summary: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "commentary": self.commentary or "",
            "phase": self.phase,
            "def_code": self.def_code,
            "tags": self.tags,
            "update_date": self.update_date.isoformat() if self.update_date else None,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_summary:
            data["standards_summary"] = [s.to_dict() for s in self.standard_summaries]
        return data

    def __repr__(self):
        return f"<Project {self.id}: {self.name}>"


class ProjectHistory(LedgerEntryMixin, db.Model):
    """Project-scope ledger entry."""

    __tablename__ = "project_history"
    __table_args__ = (
        db.Index("idx_project_history_scope_ts", "project_id", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def to_dict(self) -> dict:
        data = self._ledger_dict()
        data["project_id"] = self.project_id
        return data

    def __repr__(self):
        return f"<ProjectHistory {self.id}: project={self.project_id}>"


class StandardSummary(db.Model):
    """
    Aggregated status of one standard for one project.

    Derived from the current assessments by the aggregation engine and
    rewritten in full whenever any contributing assessment changes.
    """

    __tablename__ = "standard_summaries"
    __table_args__ = (
        db.UniqueConstraint("project_id", "standard_id", name="uq_standard_summary_scope"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    standard_id = db.Column(
        db.Integer,
        db.ForeignKey("service_standards.id", ondelete="CASCADE"),
        nullable=False,
    )
    aggregated_status = db.Column(db.String(20), nullable=False, comment="RED | AMBER | GREEN | TBC")
    aggregated_commentary = db.Column(db.Text, nullable=False, default="")
    last_updated = db.Column(db.DateTime(timezone=True), nullable=True)
    professions_json = db.Column(db.Text, nullable=False, default="[]")
    is_cache = db.Column(
        db.Boolean, nullable=False, default=True,
        comment="Always true: rows are derived from assessments, never edited directly",
    )

    @property
    def professions(self) -> list[dict]:
        try:
            return json.loads(self.professions_json or "[]")
        except (json.JSONDecodeError, TypeError):
            return []

    @professions.setter
    def professions(self, value) -> None:
        self.professions_json = json.dumps(list(value or []), default=str)

    def to_dict(self) -> dict:
        return {
            "standard_id": self.standard_id,
            "aggregated_status": self.aggregated_status,
            "aggregated_commentary": self.aggregated_commentary or "",
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "professions": self.professions,
        }

    def __repr__(self):
        return f"<StandardSummary project={self.project_id} standard={self.standard_id}: {self.aggregated_status}>"
