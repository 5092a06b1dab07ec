"""Standardised API error responses.

Every error body has the same envelope::

    {"error": "<human readable>", "code": "ERR_...", "details": {...}?}

Usage
-----
    from assurance.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Project id=7 not found")
    return api_error(E.VALIDATION_INVALID, "Invalid status: PURPLE", details={"status": "PURPLE"})
"""

from __future__ import annotations

from flask import jsonify


class E:
    """Machine-readable error codes."""

    # 400
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # 401 / 404 / 409 / 429
    UNAUTHORIZED = "ERR_UNAUTHORIZED"
    NOT_FOUND = "ERR_NOT_FOUND"
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"
    RATE_LIMITED = "ERR_RATE_LIMITED"

    # 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


STATUS_FOR_CODE: dict[str, int] = {
    E.VALIDATION_INVALID: 400,
    E.UNAUTHORIZED: 401,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
    E.RATE_LIMITED: 429,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    body: dict = {"error": message, "code": code}
    if details:
        body["details"] = details
    return body


def api_error(code: str, message: str, *, status: int | None = None, details: dict | None = None):
    """Return ``(jsonify(body), http_status)`` for a Flask view.

    Parameters
    ----------
    code : str
        One of the ``E.*`` constants.
    message : str
        Human-readable explanation.
    status : int, optional
        Overrides the status implied by *code* (400 for unknown codes).
    details : dict, optional
        Field-level payload, omitted from the body when empty.
    """
    http_status = status or STATUS_FOR_CODE.get(code, 400)
    return jsonify(error_body(code, message, details)), http_status
