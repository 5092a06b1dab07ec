"""
Service Assurance Tracker
Assessment domain models.

Models:
    - Assessment: current profession-level judgement of one project against one
      standard (current-state semantics, overwritten on every submission)
    - AssessmentHistory: fine-scope ledger (project + standard + profession)
"""

from datetime import datetime, timezone

from assurance.models import db
from assurance.models.ledger import LedgerEntryMixin


class Assessment(db.Model):
    """One row per (project, standard, profession) triple."""

    __tablename__ = "assessments"
    __table_args__ = (
        db.UniqueConstraint(
            "project_id", "standard_id", "profession_id",
            name="uq_assessment_scope",
        ),
        db.Index("idx_assessment_project_standard", "project_id", "standard_id"),
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
    profession_id = db.Column(
        db.Integer,
        db.ForeignKey("professions.id", ondelete="CASCADE"),
        nullable=False,
    )
    status = db.Column(
        db.String(20), nullable=False,
        comment="RED | AMBER_RED | AMBER | GREEN_AMBER | GREEN | TBC",
    )
    commentary = db.Column(db.Text, nullable=False, default="")
    last_updated = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    changed_by = db.Column(db.String(150), nullable=False, default="Unknown")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "standard_id": self.standard_id,
            "profession_id": self.profession_id,
            "status": self.status,
            "commentary": self.commentary or "",
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "changed_by": self.changed_by,
        }

    def __repr__(self):
        return (
            f"<Assessment project={self.project_id} standard={self.standard_id} "
            f"profession={self.profession_id}: {self.status}>"
        )


class AssessmentHistory(LedgerEntryMixin, db.Model):
    """Fine-scope ledger entry for one assessment triple."""

    __tablename__ = "assessment_history"
    __table_args__ = (
        db.Index(
            "idx_assessment_history_scope_ts",
            "project_id", "standard_id", "profession_id", "timestamp",
        ),
        db.Index("idx_assessment_history_project_ts", "project_id", "archived", "timestamp"),
    )

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(
        db.Integer,
        db.ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    standard_id = db.Column(db.Integer, nullable=False)
    profession_id = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        data = self._ledger_dict()
        data.update({
            "project_id": self.project_id,
            "standard_id": self.standard_id,
            "profession_id": self.profession_id,
        })
        return data

    def __repr__(self):
        return (
            f"<AssessmentHistory {self.id}: project={self.project_id} "
            f"standard={self.standard_id} profession={self.profession_id}>"
        )
