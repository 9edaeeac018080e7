"""
OGSM Hierarchy Validator.

Read-only checks run before any write that sets a component's parent:

    1. the proposed parent exists
    2. the proposed parent is not the component itself or one of its
       descendants (ancestor walk with a bounded recursive CTE)
    3. the parent's component_type is allowed for the child's type

Rejections are returned as a ValidationResult, never raised. Callers turn
``valid=False`` into a 400 and abort the pending write.

Usage:
    validator = HierarchyValidator()
    result = validator.validate_parent_child(component_id, parent_id)
    if not result.valid:
        raise ValidationError(result.error)
"""

import logging
from dataclasses import dataclass
from typing import Mapping

from sqlalchemy import literal, select
from sqlalchemy.orm import aliased

from ogsm_manager.models import db
from ogsm_manager.models.ogsm import ALLOWED_PARENT_TYPES, OGSMComponent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ANCESTOR_DEPTH = 10

PARENT_NOT_FOUND = "Parent component not found."
CIRCULAR_DEPENDENCY = "Circular dependency detected: component cannot be its own ancestor."


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict:
        d = {"valid": self.valid}
        if self.error:
            d["error"] = self.error
        return d


_VALID = ValidationResult(valid=True)


class HierarchyValidator:
    """Parent/child checks for OGSM components.

    Args:
        allowed_parent_types: child type -> set of permitted parent types.
            Types missing from the mapping accept any parent.
        max_depth: How many links above the proposed parent the ancestor
            walk follows. A safety cap for the query, not a business rule.
    """

    def __init__(
        self,
        allowed_parent_types: Mapping[str, frozenset] | None = None,
        max_depth: int = DEFAULT_MAX_ANCESTOR_DEPTH,
    ) -> None:
        self.allowed_parent_types = (
            ALLOWED_PARENT_TYPES if allowed_parent_types is None else allowed_parent_types
        )
        self.max_depth = max_depth

    # ── Public API ───────────────────────────────────────────────────────

    def validate_parent_child(
        self,
        component_id: str | None,
        proposed_parent_id: str | None,
        component_type: str | None = None,
    ) -> ValidationResult:
        """Check whether ``proposed_parent_id`` may become the parent of
        ``component_id``.

        ``component_type`` is only consulted when the component is not stored
        yet (creation); for existing rows the stored type wins.
        """
        if not proposed_parent_id:
            return _VALID

        parent = db.session.get(OGSMComponent, proposed_parent_id)
        if parent is None:
            return ValidationResult(False, PARENT_NOT_FOUND)

        if component_id and component_id in self.ancestor_ids(proposed_parent_id):
            logger.warning(
                "Cycle rejected",
                extra={"component_id": component_id, "parent_id": proposed_parent_id},
            )
            return ValidationResult(False, CIRCULAR_DEPENDENCY)

        child_type = component_type
        if component_id:
            existing = db.session.get(OGSMComponent, component_id)
            if existing is not None:
                child_type = existing.component_type

        if child_type and not self.is_allowed_parent_type(child_type, parent.component_type):
            return ValidationResult(
                False,
                f"Invalid hierarchy: {child_type} cannot be a child of {parent.component_type}",
            )
        return _VALID

    def is_allowed_parent_type(self, child_type: str, parent_type: str) -> bool:
        allowed = self.allowed_parent_types.get(child_type)
        if allowed is None:
            return True
        return parent_type in allowed

    def ancestor_ids(self, start_id: str) -> set[str]:
        """Ids on the chain from ``start_id`` (inclusive) up towards the root,
        following at most ``max_depth`` parent links."""
        anchor = (
            select(
                OGSMComponent.id.label("id"),
                OGSMComponent.parent_id.label("parent_id"),
                literal(0).label("depth"),
            )
            .where(OGSMComponent.id == start_id)
            .cte("ancestors", recursive=True)
        )
        up = aliased(OGSMComponent)
        chain = anchor.union_all(
            select(up.id, up.parent_id, anchor.c.depth + 1)
            .where(up.id == anchor.c.parent_id)
            .where(anchor.c.depth < self.max_depth)
        )
        return set(db.session.execute(select(chain.c.id)).scalars())
