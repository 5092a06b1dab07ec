"""
Service Assurance Tracker
Assessments blueprint — profession judgements per project and standard.

Endpoints (prefix /api/v1/projects/<pid>/standards/<sid>/professions/<prof>):
    /assessment                    GET, POST
    /history                       GET
    /history/<hid>/archive         POST  (archive + reconcile + summary refresh)
"""

import logging

from flask import Blueprint, jsonify

from assurance.blueprints import json_body, register_error_handlers
from assurance.services import assessment_service
from assurance.utils.helpers import db_commit_or_error, query_flag

logger = logging.getLogger(__name__)

assessments_bp = register_error_handlers(Blueprint("assessments", __name__, url_prefix="/api/v1"))

_SCOPE = "/projects/<int:project_id>/standards/<int:standard_id>/professions/<int:profession_id>"


@assessments_bp.route(f"{_SCOPE}/assessment", methods=["GET"])
def get_assessment(project_id, standard_id, profession_id):
    assessment = assessment_service.get_assessment(project_id, standard_id, profession_id)
    return jsonify(assessment.to_dict())


@assessments_bp.route(f"{_SCOPE}/assessment", methods=["POST"])
def submit_assessment(project_id, standard_id, profession_id):
    """Record an assessment.

    Body: {status, commentary?, changed_by?}
    Returns 201 when something changed, 200 for a no-op resubmission.
    """
    result = assessment_service.submit_assessment(project_id, standard_id, profession_id, json_body())
    if not result.changed:
        return jsonify(result.to_dict()), 200
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(result.to_dict()), 201


@assessments_bp.route(f"{_SCOPE}/history", methods=["GET"])
def assessment_history(project_id, standard_id, profession_id):
    entries = assessment_service.history(
        project_id, standard_id, profession_id, include_archived=query_flag("includeArchived"),
    )
    return jsonify([e.to_dict() for e in entries])


@assessments_bp.route(f"{_SCOPE}/history/<int:history_id>/archive", methods=["POST"])
def archive_assessment_history(project_id, standard_id, profession_id, history_id):
    assessment = assessment_service.archive_history(project_id, standard_id, profession_id, history_id)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({
        "message": "History entry archived",
        "id": history_id,
        "assessment": assessment.to_dict() if assessment else None,
    }), 200
