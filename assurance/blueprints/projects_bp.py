"""
Service Assurance Tracker
Projects blueprint — project CRUD, project ledger and tag reporting.

Endpoints summary:
    PROJECT  /api/v1/projects                                  GET, POST
             /api/v1/projects/<id>                             GET, PUT, DELETE
             /api/v1/projects/<id>/status                      GET   (derived ProjectStatus)

    LEDGER   /api/v1/projects/<id>/history                     GET
             /api/v1/projects/<id>/history/<hid>/archive       PUT

    TAGS     /api/v1/projects/tags/summary                     GET
"""

import logging

from flask import Blueprint, jsonify, request

from assurance.blueprints import json_body, register_error_handlers
from assurance.services import project_service
from assurance.utils.helpers import db_commit_or_error, query_flag

logger = logging.getLogger(__name__)

projects_bp = register_error_handlers(Blueprint("projects", __name__, url_prefix="/api/v1"))


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT CRUD
# ═══════════════════════════════════════════════════════════════════════════

@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    """List projects with their derived status.

    Query params: tag, start_date, end_date (ISO dates on last_updated)
    """
    projects = project_service.list_projects(
        tag=request.args.get("tag"),
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
    )
    items = [project_service.serialise(p) for p in projects]
    return jsonify({"items": items, "total": len(items)})


@projects_bp.route("/projects", methods=["POST"])
def create_project():
    project = project_service.create_project(json_body())
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.serialise(project)), 201


@projects_bp.route("/projects/tags/summary", methods=["GET"])
def tags_summary():
    return jsonify(project_service.tags_summary())


@projects_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project = project_service.get_project(project_id)
    return jsonify(project_service.serialise(project))


@projects_bp.route("/projects/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    """Update a project.

    Query params: suppressHistory=true skips the project ledger entry.
    """
    project = project_service.update_project(
        project_id, json_body(), suppress_history=query_flag("suppressHistory"),
    )
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project_service.serialise(project))


@projects_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    project_service.delete_project(project_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Project deleted"}), 200


@projects_bp.route("/projects/<int:project_id>/status", methods=["GET"])
def project_status(project_id):
    return jsonify(project_service.project_status(project_id).to_dict())


# ═══════════════════════════════════════════════════════════════════════════
#  PROJECT LEDGER
# ═══════════════════════════════════════════════════════════════════════════

@projects_bp.route("/projects/<int:project_id>/history", methods=["GET"])
def project_history(project_id):
    entries = project_service.history(project_id, include_archived=query_flag("includeArchived"))
    return jsonify([e.to_dict() for e in entries])


@projects_bp.route("/projects/<int:project_id>/history/<int:history_id>/archive", methods=["PUT"])
def archive_project_history(project_id, history_id):
    project_service.archive_history(project_id, history_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "History entry archived", "id": history_id}), 200
