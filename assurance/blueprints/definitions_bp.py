"""
Service Assurance Tracker
Definitions blueprint — service standards and professions.

Endpoints summary:
    STANDARD    /api/v1/service-standards                  GET, POST
                /api/v1/service-standards/<id>             GET, PUT, DELETE (deactivate)
                /api/v1/service-standards/<id>/restore     POST
                /api/v1/service-standards/<id>/history     GET   (change ledger, newest first)

    PROFESSION  /api/v1/professions                        GET, POST
                /api/v1/professions/<id>                   GET, PUT, DELETE (deactivate)
                /api/v1/professions/<id>/restore           POST
                /api/v1/professions/<id>/history           GET   (change ledger, newest first)

    SEED        /api/v1/service-standards/seed             POST  (upsert list by number)
                /api/v1/professions/seed                   POST  (upsert list by code)

List endpoints accept ``includeInactive=true``.
"""

import logging

from flask import Blueprint, jsonify, request

from assurance.blueprints import json_body, register_error_handlers
from assurance.core.exceptions import ValidationError
from assurance.services import definitions_service as svc
from assurance.utils.helpers import db_commit_or_error, query_flag

logger = logging.getLogger(__name__)

definitions_bp = register_error_handlers(Blueprint("definitions", __name__, url_prefix="/api/v1"))


def _committed(obj, status=200):
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(obj.to_dict()), status


# ═══════════════════════════════════════════════════════════════════════════
#  SERVICE STANDARDS
# ═══════════════════════════════════════════════════════════════════════════

@definitions_bp.route("/service-standards", methods=["GET"])
def list_standards():
    standards = svc.list_standards(include_inactive=query_flag("includeInactive"))
    return jsonify([s.to_dict() for s in standards])


@definitions_bp.route("/service-standards", methods=["POST"])
def create_standard():
    return _committed(svc.create_standard(json_body()), 201)


@definitions_bp.route("/service-standards/<int:standard_id>", methods=["GET"])
def get_standard(standard_id):
    return jsonify(svc.get_standard(standard_id).to_dict())


@definitions_bp.route("/service-standards/<int:standard_id>", methods=["PUT"])
def update_standard(standard_id):
    return _committed(svc.update_standard(standard_id, json_body()))


@definitions_bp.route("/service-standards/<int:standard_id>", methods=["DELETE"])
def delete_standard(standard_id):
    return _committed(svc.deactivate_standard(standard_id, json_body().get("changed_by")))


@definitions_bp.route("/service-standards/<int:standard_id>/restore", methods=["POST"])
def restore_standard(standard_id):
    return _committed(svc.restore_standard(standard_id, json_body().get("changed_by")))


@definitions_bp.route("/service-standards/<int:standard_id>/history", methods=["GET"])
def standard_history(standard_id):
    return jsonify([e.to_dict() for e in svc.standard_history(standard_id)])


# ═══════════════════════════════════════════════════════════════════════════
#  PROFESSIONS
# ═══════════════════════════════════════════════════════════════════════════

@definitions_bp.route("/professions", methods=["GET"])
def list_professions():
    professions = svc.list_professions(include_inactive=query_flag("includeInactive"))
    return jsonify([p.to_dict() for p in professions])


@definitions_bp.route("/professions", methods=["POST"])
def create_profession():
    return _committed(svc.create_profession(json_body()), 201)


@definitions_bp.route("/professions/<int:profession_id>", methods=["GET"])
def get_profession(profession_id):
    return jsonify(svc.get_profession(profession_id).to_dict())


@definitions_bp.route("/professions/<int:profession_id>", methods=["PUT"])
def update_profession(profession_id):
    return _committed(svc.update_profession(profession_id, json_body()))


@definitions_bp.route("/professions/<int:profession_id>", methods=["DELETE"])
def delete_profession(profession_id):
    return _committed(svc.deactivate_profession(profession_id, json_body().get("changed_by")))


@definitions_bp.route("/professions/<int:profession_id>/restore", methods=["POST"])
def restore_profession(profession_id):
    return _committed(svc.restore_profession(profession_id, json_body().get("changed_by")))


@definitions_bp.route("/professions/<int:profession_id>/history", methods=["GET"])
def profession_history(profession_id):
    return jsonify([e.to_dict() for e in svc.profession_history(profession_id)])


# ═══════════════════════════════════════════════════════════════════════════
#  BULK SEED
# ═══════════════════════════════════════════════════════════════════════════

def _seed_payload():
    data = request.get_json(silent=True)
    if not isinstance(data, list) or not all(isinstance(i, dict) for i in data):
        raise ValidationError("Body must be a list of objects")
    return data


@definitions_bp.route("/service-standards/seed", methods=["POST"])
def seed_standards():
    seeded = svc.seed_standards(_seed_payload())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify([s.to_dict() for s in seeded]), 200


@definitions_bp.route("/professions/seed", methods=["POST"])
def seed_professions():
    seeded = svc.seed_professions(_seed_payload())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify([p.to_dict() for p in seeded]), 200
