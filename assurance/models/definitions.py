"""
Service Assurance Tracker
Definition models — the catalogue projects are assessed against.

Models:
    - ServiceStandard: numbered service standard (1..14 in the current domain)
    - Profession: assessing profession (e.g. Delivery, Technical, User Centred Design)
    - StandardHistory / ProfessionHistory: change ledgers of the two definitions

Definitions are deactivated rather than deleted so historical assessments keep
their reference; aggregation skips assessments whose definition is inactive.
"""

from datetime import datetime, timezone

from assurance.models import db
from assurance.models.ledger import LedgerEntryMixin


class ServiceStandard(db.Model):
    """A single numbered service standard."""

    __tablename__ = "service_standards"

    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.Integer, nullable=False, unique=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def query_active(cls):
        return cls.query.filter(cls.is_active.is_(True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "number": self.number,
            "name": self.name,
            "description": self.description or "",
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<ServiceStandard {self.number}: {self.name}>"


class Profession(db.Model):
    """A profession that contributes assessments to each standard."""

    __tablename__ = "professions"

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(60), nullable=False, unique=True, comment="Slug, e.g. delivery-management")
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True, default="")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def query_active(cls):
        return cls.query.filter(cls.is_active.is_(True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description or "",
            "is_active": bool(self.is_active),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Profession {self.code}>"


class StandardHistory(LedgerEntryMixin, db.Model):
    """Change ledger of one service standard definition."""

    __tablename__ = "service_standard_history"

    OWNER_FIELD = "standard_id"

    id = db.Column(db.Integer, primary_key=True)
    standard_id = db.Column(
        db.Integer,
        db.ForeignKey("service_standards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def to_dict(self) -> dict:
        data = self._ledger_dict()
        data["standard_id"] = self.standard_id
        return data

    def __repr__(self):
        return f"<StandardHistory {self.id}: standard={self.standard_id}>"


class ProfessionHistory(LedgerEntryMixin, db.Model):
    """Change ledger of one profession definition."""

    __tablename__ = "profession_history"

    OWNER_FIELD = "profession_id"

    id = db.Column(db.Integer, primary_key=True)
    profession_id = db.Column(
        db.Integer,
        db.ForeignKey("professions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    def to_dict(self) -> dict:
        data = self._ledger_dict()
        data["profession_id"] = self.profession_id
        return data

    def __repr__(self):
        return f"<ProfessionHistory {self.id}: profession={self.profession_id}>"
