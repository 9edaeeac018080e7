"""Standardised API error responses.

Usage
-----
    from ogsm_manager.utils.errors import api_error, E

    return api_error(E.NOT_FOUND, "Component not found")
    return api_error(E.VALIDATION_REQUIRED, "component_type and title are required")
    return api_error(E.VALIDATION_INVALID, "Circular dependency ...", details={"id": cid})
"""

from __future__ import annotations

import logging

from flask import jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ogsm_manager.core.exceptions import NotFoundError, ValidationError
from ogsm_manager.models import db


# ── Error code constants ──────────────────────────────────────────────
class E:
    """Machine-readable error code constants (``ERR_`` prefix)."""

    # Validation – HTTP 400
    VALIDATION_REQUIRED = "ERR_VALIDATION_REQUIRED"
    VALIDATION_INVALID = "ERR_VALIDATION_INVALID"

    # Not-found – HTTP 404
    NOT_FOUND = "ERR_NOT_FOUND"

    # Conflict / constraint – HTTP 409
    CONFLICT_DUPLICATE = "ERR_CONFLICT_DUPLICATE"

    # Server – HTTP 500
    DATABASE = "ERR_DATABASE"
    INTERNAL = "ERR_INTERNAL"


# ── Default HTTP status mapping ───────────────────────────────────────
_DEFAULT_STATUS: dict[str, int] = {
    E.VALIDATION_REQUIRED: 400,
    E.VALIDATION_INVALID: 400,
    E.NOT_FOUND: 404,
    E.CONFLICT_DUPLICATE: 409,
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
        Extra structured payload (failing bulk entry id, template node path).

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


def register_error_handlers(bp) -> None:
    """Map service exceptions and storage failures onto ``bp``.

    ValidationError -> 400, NotFoundError -> 404, IntegrityError -> 409,
    any other SQLAlchemyError -> 500. The session is rolled back before a
    storage error response is returned, so no partial write survives.
    """
    logger = logging.getLogger(bp.import_name)

    @bp.errorhandler(ValidationError)
    def _handle_validation(error: ValidationError):
        return api_error(
            error.code or E.VALIDATION_INVALID, str(error), details=error.details,
        )

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        details = {"id": error.resource_id} if error.resource_id is not None else None
        return api_error(E.NOT_FOUND, f"{error.resource} not found", details=details)

    @bp.errorhandler(IntegrityError)
    def _handle_integrity(error: IntegrityError):
        db.session.rollback()
        logger.warning("Integrity error: %s", error.orig)
        return api_error(E.CONFLICT_DUPLICATE, "Duplicate or constraint violation")

    @bp.errorhandler(SQLAlchemyError)
    def _handle_storage(error: SQLAlchemyError):
        db.session.rollback()
        logger.exception("Database error in endpoint=%s", bp.name)
        return api_error(E.DATABASE, "Database error")
