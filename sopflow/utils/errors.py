"""Standardised API error responses.

Usage
-----
    from sopflow.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Workflow not found")
    return api_error(E.VALIDATION_REQUIRED, "location_id is required")
    return api_error(E.INCOMPLETE_TASKS, "3 task(s) still pending",
                     details={"incomplete_tasks": 3})
"""

from __future__ import annotations

from flask import jsonify


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants.

    Convention:
     • ERR_  prefix for every application error
    """

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"
    TEMPLATE_NOT_FOUND = "ERR_TEMPLATE_NOT_FOUND"
    NO_APPLICABLE_TASKS = "ERR_NO_APPLICABLE_TASKS"

    # Lifecycle – HTTP 400
    ILLEGAL_TRANSITION = "ERR_ILLEGAL_TRANSITION"
    INVALID_STATUS_TRANSITION = "ERR_INVALID_STATUS_TRANSITION"
    INCOMPLETE_TASKS = "ERR_INCOMPLETE_TASKS"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Server – HTTP 500
    TEMPLATE_DEFINITION_MISSING = "ERR_TEMPLATE_DEFINITION_MISSING"
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.TEMPLATE_NOT_FOUND: 400,
    E.NO_APPLICABLE_TASKS: 400,
    E.ILLEGAL_TRANSITION: 400,
    E.INVALID_STATUS_TRANSITION: 400,
    E.INCOMPLETE_TASKS: 400,
    E.NOT_FOUND: 404,
    E.TEMPLATE_DEFINITION_MISSING: 500,
    E.DATABASE: 500,
    E.INTERNAL: 500,
}


def api_error(
    code: str,
    message: str,
    *,
    status: int | None = None,
    details: dict | None = None,
):
    """Return a standard JSON error response.

    Parameters
    ----------
    code : str
        Machine-readable error code (use ``E.*`` constants).
    message : str
        Human-readable explanation for developers / UI.
    status : int, optional
        HTTP status override.  Falls back to ``_DEFAULT_STATUS[code]``,
        then to ``400``.
    details : dict, optional
        Extra structured payload (remaining task count, offending status, ...).

    Returns
    -------
    tuple[Response, int]
        ``(jsonify(body), http_status)`` – drop-in for Flask views.
    """

    http_status = status or _DEFAULT_STATUS.get(code, 400)

    body: dict = {
        "error": message,
        "code": code,
    }
    if details:
        body["details"] = details

    return jsonify(body), http_status
