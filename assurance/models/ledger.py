"""
Service Assurance Tracker
History ledger mixin — shared columns for append-only change history.

Entries are immutable once written except for the ``archived`` flag.
"Deleting" an entry through the API archives it; rows are never removed.

Usage:
    class ProjectHistory(LedgerEntryMixin, db.Model):
        ...

    entry.archive()
    db.session.flush()
"""

import json
from datetime import datetime, timezone

from assurance.models import db


class LedgerEntryMixin:
    """Timestamp, actor, field deltas and tombstone flag for a ledger row."""

    timestamp = db.Column(
        db.DateTime(timezone=True), nullable=False, index=True,
        default=lambda: datetime.now(timezone.utc),
    )
    changed_by = db.Column(db.String(150), nullable=False, default="Unknown")
    changes_json = db.Column(
        db.Text, nullable=False, default="{}",
        comment='JSON: {field: {"from": old, "to": new}}, changed fields only',
    )
    archived = db.Column(db.Boolean, nullable=False, default=False, index=True)

    # ── Helpers ──────────────────────────────────────────────────────────

    @property
    def changes(self) -> dict:
        """Deserialise *changes_json* to a dict."""
        try:
            return json.loads(self.changes_json or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}

    @changes.setter
    def changes(self, value: dict) -> None:
        self.changes_json = json.dumps(value or {}, default=str)

    def change_to(self, field: str):
        """Return the ``to`` side of a field delta, or None when absent."""
        pair = self.changes.get(field)
        if not isinstance(pair, dict):
            return None
        return pair.get("to")

    @property
    def status_to(self):
        return self.change_to("status")

    def archive(self) -> None:
        self.archived = True

    def _ledger_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "changed_by": self.changed_by,
            "changes": self.changes,
            "archived": bool(self.archived),
        }
