"""Definitions service — service standards and professions catalogue.

Transaction policy: functions flush, never commit.

Delete is a soft operation: definitions are deactivated so historical
assessments keep a valid reference, and restored with ``restore_*``.

Every write that changes a tracked field appends one entry to the
definition's change ledger (StandardHistory / ProfessionHistory).
"""
import logging

from assurance.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from assurance.models import db
from assurance.models.definitions import Profession, ProfessionHistory, ServiceStandard, StandardHistory
from assurance.services import history_ledger

logger = logging.getLogger(__name__)

_TEXT_FIELDS = ("name", "description")

STANDARD_TRACKED_FIELDS = ("number", "name", "description", "is_active")
PROFESSION_TRACKED_FIELDS = ("code", "name", "description", "is_active")

DEFINITIONS_ADMIN = "Definitions Admin"


def _require_text(data: dict, field: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", details={field: "required"})
    return value.strip()


def _apply_text(obj, data: dict) -> None:
    for field in _TEXT_FIELDS:
        if field in data:
            value = data[field]
            if field == "name" and not str(value or "").strip():
                raise ValidationError("name cannot be empty", details={"name": "required"})
            setattr(obj, field, str(value or "").strip())


# ── Change ledger ────────────────────────────────────────────────────────


def _actor(changed_by) -> str:
    return str(changed_by or "").strip() or DEFINITIONS_ADMIN


def _state(obj, fields: tuple[str, ...]) -> dict:
    return {field: getattr(obj, field) for field in fields}


def _record(history_model, obj, before: dict | None, fields: tuple[str, ...], changed_by) -> None:
    """Append a ledger entry for *obj* when any tracked field moved away from *before*."""
    changes = history_ledger.build_changes(before, _state(obj, fields), fields)
    if not changes:
        return
    entry = history_model(changed_by=_actor(changed_by), **{history_model.OWNER_FIELD: obj.id})
    entry.changes = changes
    if not history_ledger.append(entry):
        raise StorageError("ledger append")


# ── Service standards ────────────────────────────────────────────────────


def _parse_number(value) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError("number must be an integer", details={"number": value}) from None
    if number < 1:
        raise ValidationError("number must be positive", details={"number": number})
    return number


def list_standards(include_inactive: bool = False) -> list[ServiceStandard]:
    query = ServiceStandard.query if include_inactive else ServiceStandard.query_active()
    return query.order_by(ServiceStandard.number).all()


def get_standard(standard_id: int) -> ServiceStandard:
    standard = db.session.get(ServiceStandard, standard_id)
    if standard is None:
        raise NotFoundError(resource="ServiceStandard", resource_id=standard_id)
    return standard


def create_standard(data: dict) -> ServiceStandard:
    name = _require_text(data, "name")
    number = _parse_number(data.get("number"))
    if ServiceStandard.query.filter_by(number=number).first():
        raise ConflictError("ServiceStandard", "number", number)

    standard = ServiceStandard(
        number=number,
        name=name,
        description=(data.get("description") or "").strip(),
        is_active=True,
    )
    db.session.add(standard)
    db.session.flush()
    _record(StandardHistory, standard, None, STANDARD_TRACKED_FIELDS, data.get("changed_by"))
    logger.info("Service standard created id=%s number=%s", standard.id, number)
    return standard


def update_standard(standard_id: int, data: dict) -> ServiceStandard:
    standard = get_standard(standard_id)
    before = _state(standard, STANDARD_TRACKED_FIELDS)
    if "number" in data:
        number = _parse_number(data["number"])
        clash = ServiceStandard.query.filter(
            ServiceStandard.number == number, ServiceStandard.id != standard.id,
        ).first()
        if clash:
            raise ConflictError("ServiceStandard", "number", number)
        standard.number = number
    _apply_text(standard, data)
    db.session.flush()
    _record(StandardHistory, standard, before, STANDARD_TRACKED_FIELDS, data.get("changed_by"))
    return standard


def _set_standard_active(standard_id: int, active: bool, changed_by) -> ServiceStandard:
    standard = get_standard(standard_id)
    before = _state(standard, STANDARD_TRACKED_FIELDS)
    standard.is_active = active
    db.session.flush()
    _record(StandardHistory, standard, before, STANDARD_TRACKED_FIELDS, changed_by)
    logger.info("Service standard %s id=%s", "restored" if active else "deactivated", standard_id)
    return standard


def deactivate_standard(standard_id: int, changed_by: str | None = None) -> ServiceStandard:
    return _set_standard_active(standard_id, False, changed_by)


def restore_standard(standard_id: int, changed_by: str | None = None) -> ServiceStandard:
    return _set_standard_active(standard_id, True, changed_by)


def standard_history(standard_id: int) -> list[StandardHistory]:
    get_standard(standard_id)
    return history_ledger.definition_entries(StandardHistory, standard_id)


# ── Professions ──────────────────────────────────────────────────────────


def _slugify(value: str) -> str:
    return "-".join(str(value).strip().lower().replace("_", " ").split())


def list_professions(include_inactive: bool = False) -> list[Profession]:
    query = Profession.query if include_inactive else Profession.query_active()
    return query.order_by(Profession.name).all()


def get_profession(profession_id: int) -> Profession:
    profession = db.session.get(Profession, profession_id)
    if profession is None:
        raise NotFoundError(resource="Profession", resource_id=profession_id)
    return profession


def create_profession(data: dict) -> Profession:
    name = _require_text(data, "name")
    code = _slugify(data.get("code") or name)
    if Profession.query.filter_by(code=code).first():
        raise ConflictError("Profession", "code", code)

    profession = Profession(
        code=code,
        name=name,
        description=(data.get("description") or "").strip(),
        is_active=True,
    )
    db.session.add(profession)
    db.session.flush()
    _record(ProfessionHistory, profession, None, PROFESSION_TRACKED_FIELDS, data.get("changed_by"))
    logger.info("Profession created id=%s code=%s", profession.id, code)
    return profession


def update_profession(profession_id: int, data: dict) -> Profession:
    profession = get_profession(profession_id)
    before = _state(profession, PROFESSION_TRACKED_FIELDS)
    if "code" in data:
        code = _slugify(data["code"] or "")
        if not code:
            raise ValidationError("code cannot be empty", details={"code": "required"})
        clash = Profession.query.filter(
            Profession.code == code, Profession.id != profession.id,
        ).first()
        if clash:
            raise ConflictError("Profession", "code", code)
        profession.code = code
    _apply_text(profession, data)
    db.session.flush()
    _record(ProfessionHistory, profession, before, PROFESSION_TRACKED_FIELDS, data.get("changed_by"))
    return profession


def _set_profession_active(profession_id: int, active: bool, changed_by) -> Profession:
    profession = get_profession(profession_id)
    before = _state(profession, PROFESSION_TRACKED_FIELDS)
    profession.is_active = active
    db.session.flush()
    _record(ProfessionHistory, profession, before, PROFESSION_TRACKED_FIELDS, changed_by)
    logger.info("Profession %s id=%s", "restored" if active else "deactivated", profession_id)
    return profession


def deactivate_profession(profession_id: int, changed_by: str | None = None) -> Profession:
    return _set_profession_active(profession_id, False, changed_by)


def restore_profession(profession_id: int, changed_by: str | None = None) -> Profession:
    return _set_profession_active(profession_id, True, changed_by)


def profession_history(profession_id: int) -> list[ProfessionHistory]:
    get_profession(profession_id)
    return history_ledger.definition_entries(ProfessionHistory, profession_id)


# ── Bulk seeding ─────────────────────────────────────────────────────────


def seed_standards(items: list[dict]) -> list[ServiceStandard]:
    """Upsert standards by number; seeded standards are (re)activated."""
    seeded = []
    for item in items:
        number = _parse_number(item.get("number"))
        standard = ServiceStandard.query.filter_by(number=number).first()
        if standard is None:
            standard = create_standard(item)
        else:
            before = _state(standard, STANDARD_TRACKED_FIELDS)
            _apply_text(standard, item)
            standard.is_active = True
            db.session.flush()
            _record(StandardHistory, standard, before, STANDARD_TRACKED_FIELDS, item.get("changed_by"))
        seeded.append(standard)
    db.session.flush()
    logger.info("Seeded %d service standards", len(seeded))
    return seeded


def seed_professions(items: list[dict]) -> list[Profession]:
    """Upsert professions by code (derived from the name when absent)."""
    seeded = []
    for item in items:
        code = _slugify(item.get("code") or _require_text(item, "name"))
        profession = Profession.query.filter_by(code=code).first()
        if profession is None:
            profession = create_profession({**item, "code": code})
        else:
            before = _state(profession, PROFESSION_TRACKED_FIELDS)
            _apply_text(profession, item)
            profession.is_active = True
            db.session.flush()
            _record(ProfessionHistory, profession, before, PROFESSION_TRACKED_FIELDS, item.get("changed_by"))
        seeded.append(profession)
    db.session.flush()
    logger.info("Seeded %d professions", len(seeded))
    return seeded
