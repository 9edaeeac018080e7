"""
Service-layer exception types.

Services raise these; blueprints register handlers against them once and get
consistent HTTP status codes everywhere. Storage failures are not wrapped:
SQLAlchemy errors propagate unchanged and are mapped by the blueprint
handlers.

Usage:
    from ogsm_manager.core.exceptions import NotFoundError, ValidationError

    raise NotFoundError(resource="Component", resource_id=component_id)
    raise ValidationError("title is required", details={"field": "title"})
"""


class NotFoundError(Exception):
    """Raised when an id does not resolve to a stored row.

    Kept distinct from ValidationError so callers can tell a stale
    reference apart from bad input.

    Args:
        resource: Human-readable entity name (e.g. "Component", "Template").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class ValidationError(Exception):
    """Raised when input is missing or violates a hierarchy rule.

    Maps to HTTP 400. The message is shown to the client verbatim, so it
    must say what to fix (missing field, cycle, type mismatch, failing
    bulk entry).

    Args:
        message: Human-readable explanation of what failed.
        details: Optional structured payload (e.g. {"id": <failing entry>}).
        code: Machine-readable error code, see ``ogsm_manager.utils.errors.E``.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        code: str | None = None,
    ) -> None:
        self.details = details or {}
        self.code = code
        super().__init__(message)
