"""HTTP Basic auth for mutating API calls.

Enabled only when both ADMIN_USERNAME and ADMIN_PASSWORD are configured.
Reads and health probes stay open.
"""
import hmac

from flask import jsonify, request

from assurance.utils.errors import E, error_body

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
REALM = "Service Assurance Tracker"


def _credentials_match(auth, username: str, password: str) -> bool:
    if auth is None:
        return False
    return hmac.compare_digest(auth.username or "", username) and hmac.compare_digest(
        auth.password or "", password
    )


def init_basic_auth(app):
    username = app.config.get("ADMIN_USERNAME")
    password = app.config.get("ADMIN_PASSWORD")

    if not username or not password:
        app.logger.info("Basic auth: disabled (no ADMIN_USERNAME/ADMIN_PASSWORD)")
        return

    app.logger.info("Basic auth: enabled for mutating requests")

    @app.before_request
    def require_basic_auth():
        if request.method not in MUTATING_METHODS or request.path.startswith("/api/v1/health"):
            return None
        if _credentials_match(request.authorization, username, password):
            return None
        app.logger.warning("Basic auth rejected %s %s", request.method, request.path)
        return (
            jsonify(error_body(E.UNAUTHORIZED, "Login required")),
            401,
            {"WWW-Authenticate": f'Basic realm="{REALM}"'},
        )
