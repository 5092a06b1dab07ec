"""
Service Assurance Tracker
Blueprint registry and shared error handling.
"""

import logging

from flask import request

from assurance.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from assurance.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def register_error_handlers(bp):
    """Map service-layer exceptions to JSON error envelopes for *bp*."""

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, str(error))

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(E.VALIDATION_INVALID, str(error), details=error.details)

    @bp.errorhandler(ConflictError)
    def _handle_conflict(error: ConflictError):
        return api_error(E.CONFLICT_DUPLICATE, str(error), details={error.field: error.value})

    @bp.errorhandler(StorageError)
    def _handle_storage(error: StorageError):
        logger.error("Storage failure in %s endpoint=%s", bp.name, request.endpoint)
        return api_error(E.DATABASE, str(error))

    return bp


def json_body() -> dict:
    """Request JSON as a dict; anything else is treated as an empty body."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
