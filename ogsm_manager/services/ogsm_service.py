"""
OGSM Component Service.

Business logic for the OGSM hierarchy (Objectives, Goals, Strategies,
Measures). Blueprints stay thin; this module owns validation, writes and
transaction boundaries.

Functions:
    - list_components:        Filtered, ordered list (type, document_id)
    - get_component:          Single component by id
    - create_component:       Insert; parent validated when supplied
    - update_component:       Coalesce update; parent change validated first
    - delete_component:       Delete (descendants cascade in the database)
    - build_hierarchy_tree:   Flattened forest with breadth-first levels
    - duplicate_component:    Copy one node, optionally its whole subtree
    - bulk_reorder:           All-or-nothing order/parent changes

Parent sentinel:
    In update and bulk-reorder payloads an absent ``parent_id`` key leaves the
    parent unchanged, while ``null`` (or the string ``"null"``) detaches the
    component to root level.
"""

import logging
from datetime import datetime, timezone

from flask import current_app
from sqlalchemy import literal, select, update
from sqlalchemy.orm import aliased

from ogsm_manager.core.exceptions import NotFoundError, ValidationError
from ogsm_manager.models import db
from ogsm_manager.models.ogsm import COMPONENT_TYPES, OGSMComponent
from ogsm_manager.services.hierarchy_validator import (
    DEFAULT_MAX_ANCESTOR_DEPTH,
    HierarchyValidator,
)
from ogsm_manager.utils.errors import E

logger = logging.getLogger(__name__)

COPY_SUFFIX = " (Copy)"
DEFAULT_MAX_TREE_DEPTH = 50

_UNSET = object()
_DETACH_VALUES = ("null", "")


# ── Helpers ──────────────────────────────────────────────────────────────────


def _utcnow():
    return datetime.now(timezone.utc)


def _get_or_raise(component_id: str) -> OGSMComponent:
    component = db.session.get(OGSMComponent, component_id)
    if component is None:
        raise NotFoundError(resource="Component", resource_id=component_id)
    return component


def get_validator() -> HierarchyValidator:
    """Validator configured from the current app."""
    return HierarchyValidator(
        max_depth=current_app.config.get("OGSM_MAX_ANCESTOR_DEPTH", DEFAULT_MAX_ANCESTOR_DEPTH),
    )


def _requested_parent(payload: dict):
    """Return the parent id asked for, None for "detach", or _UNSET."""
    if "parent_id" not in payload:
        return _UNSET
    value = payload["parent_id"]
    if value is None or value in _DETACH_VALUES:
        return None
    return str(value)


def _parse_order_index(payload: dict) -> int | None:
    value = payload.get("order_index")
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError("order_index must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("order_index must be an integer") from None


def _sibling_filter(parent_id: str | None):
    if parent_id is None:
        return OGSMComponent.parent_id.is_(None)
    return OGSMComponent.parent_id == parent_id


def _make_room(parent_id: str | None, order_index: int, component_id: str) -> int:
    """Shift siblings at or after ``order_index`` down by one when the slot
    is already taken. Returns the number of shifted rows."""
    occupied = db.session.execute(
        select(OGSMComponent.id).where(
            _sibling_filter(parent_id),
            OGSMComponent.order_index == order_index,
            OGSMComponent.id != component_id,
        ).limit(1)
    ).first()
    if occupied is None:
        return 0
    result = db.session.execute(
        update(OGSMComponent)
        .where(
            _sibling_filter(parent_id),
            OGSMComponent.order_index >= order_index,
            OGSMComponent.id != component_id,
        )
        .values(order_index=OGSMComponent.order_index + 1, updated_at=_utcnow())
        .execution_options(synchronize_session="fetch")
    )
    return result.rowcount


# ═════════════════════════════════════════════════════════════════════════════
# Read
# ═════════════════════════════════════════════════════════════════════════════


def list_components(
    component_type: str | None = None,
    document_id: str | None = None,
) -> list[dict]:
    """List components, optionally filtered by type and source document.

    Returns:
        Serialized components ordered by order_index, then creation time.
    """
    stmt = select(OGSMComponent)
    if component_type:
        stmt = stmt.where(OGSMComponent.component_type == component_type)
    if document_id:
        stmt = stmt.where(OGSMComponent.document_id == document_id)
    stmt = stmt.order_by(OGSMComponent.order_index, OGSMComponent.created_at)
    return [c.to_dict() for c in db.session.execute(stmt).scalars()]


def get_component(component_id: str) -> dict:
    return _get_or_raise(component_id).to_dict()


def build_hierarchy_tree(max_depth: int | None = None) -> list[dict]:
    """Flatten the whole forest into rows carrying a ``level``.

    Roots are level 0; each child sits at its parent's level + 1. Rows come
    back ordered by level, then order_index (breadth-first), which is what
    the flat tree tables render from.

    Args:
        max_depth: Deepest level expanded. Defaults to OGSM_MAX_TREE_DEPTH.
    """
    if max_depth is None:
        max_depth = current_app.config.get("OGSM_MAX_TREE_DEPTH", DEFAULT_MAX_TREE_DEPTH)

    anchor = (
        select(
            OGSMComponent.id,
            OGSMComponent.component_type,
            OGSMComponent.title,
            OGSMComponent.description,
            OGSMComponent.parent_id,
            OGSMComponent.order_index,
            literal(0).label("level"),
        )
        .where(OGSMComponent.parent_id.is_(None))
        .cte("ogsm_tree", recursive=True)
    )
    child = aliased(OGSMComponent)
    tree = anchor.union_all(
        select(
            child.id,
            child.component_type,
            child.title,
            child.description,
            child.parent_id,
            child.order_index,
            anchor.c.level + 1,
        )
        .where(child.parent_id == anchor.c.id)
        .where(anchor.c.level < max_depth)
    )
    rows = db.session.execute(
        select(tree).order_by(tree.c.level, tree.c.order_index)
    ).mappings()
    return [dict(row) for row in rows]


# ═════════════════════════════════════════════════════════════════════════════
# Create / Update / Delete
# ═════════════════════════════════════════════════════════════════════════════


def create_component(data: dict, validator: HierarchyValidator | None = None) -> dict:
    """Create a component.

    Args:
        data: component_type and title (required); description, parent_id,
              order_index, document_id (optional).
        validator: Override for tests; defaults to get_validator().

    Returns:
        Serialized component.

    Raises:
        ValidationError: Missing/invalid fields or a rejected parent.
    """
    component_type = data.get("component_type")
    title = data.get("title")
    if isinstance(title, str):
        title = title.strip()
    if not component_type or not title:
        missing = [f for f, v in (("component_type", component_type), ("title", title)) if not v]
        raise ValidationError(
            "component_type and title are required",
            details={"missing": missing},
            code=E.VALIDATION_REQUIRED,
        )
    if component_type not in COMPONENT_TYPES:
        raise ValidationError(
            f"component_type must be one of: {', '.join(COMPONENT_TYPES)}",
            details={"component_type": component_type},
        )

    parent_id = data.get("parent_id") or None
    if parent_id in _DETACH_VALUES:
        parent_id = None
    if parent_id is not None:
        result = (validator or get_validator()).validate_parent_child(
            None, parent_id, component_type=component_type,
        )
        if not result.valid:
            raise ValidationError(result.error, details={"parent_id": parent_id})

    component = OGSMComponent(
        document_id=data.get("document_id") or None,
        component_type=component_type,
        title=str(title),
        description=data.get("description") or "",
        parent_id=parent_id,
        order_index=_parse_order_index(data) or 0,
    )
    db.session.add(component)
    db.session.commit()
    logger.info(
        "OGSM component created",
        extra={
            "component_id": component.id,
            "component_type": component_type,
            "parent_id": parent_id,
        },
    )
    return component.to_dict()


def update_component(
    component_id: str,
    data: dict,
    validator: HierarchyValidator | None = None,
) -> dict:
    """Coalesce-update title, description, order_index and parent_id.

    Fields that are absent or null stay unchanged; parent_id is the
    exception (see module docstring). All input is checked before anything
    is written. If the component lands on an occupied sibling slot, the
    siblings from that slot onwards move down by one.

    Raises:
        NotFoundError: Unknown component.
        ValidationError: Blank title, bad order_index, or rejected parent.
    """
    component = _get_or_raise(component_id)

    parent_id = _requested_parent(data)
    if parent_id is not _UNSET:
        result = (validator or get_validator()).validate_parent_child(component_id, parent_id)
        if not result.valid:
            raise ValidationError(result.error, details={"id": component_id, "parent_id": parent_id})

    title = data.get("title")
    if title is not None:
        title = str(title).strip()
        if not title:
            raise ValidationError("title cannot be empty", details={"field": "title"})
    order_index = _parse_order_index(data)

    if title is not None:
        component.title = title
    if data.get("description") is not None:
        component.description = data["description"]

    moved = False
    if parent_id is not _UNSET and parent_id != component.parent_id:
        component.parent_id = parent_id
        moved = True
    if order_index is not None and order_index != component.order_index:
        component.order_index = order_index
        moved = True
    component.updated_at = _utcnow()

    try:
        shifted = _make_room(component.parent_id, component.order_index, component.id) if moved else 0
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "OGSM component updated",
        extra={"component_id": component_id, "moved": moved, "shifted_siblings": shifted},
    )
    return component.to_dict()


def delete_component(component_id: str) -> dict:
    """Delete a component and return its state before deletion.

    Descendants are removed by the ON DELETE CASCADE foreign key.
    """
    component = _get_or_raise(component_id)
    snapshot = component.to_dict()
    db.session.delete(component)
    db.session.commit()
    logger.info("OGSM component deleted", extra={"component_id": component_id})
    return snapshot


# ═════════════════════════════════════════════════════════════════════════════
# Duplicate
# ═════════════════════════════════════════════════════════════════════════════


def _clone(source: OGSMComponent, parent_id: str | None, order_index: int) -> OGSMComponent:
    copy = OGSMComponent(
        document_id=source.document_id,
        component_type=source.component_type,
        title=f"{source.title}{COPY_SUFFIX}",
        description=source.description,
        parent_id=parent_id,
        order_index=order_index,
    )
    db.session.add(copy)
    db.session.flush()  # children need copy.id
    return copy


def _clone_children(source_id: str, new_parent_id: str) -> int:
    children = db.session.execute(
        select(OGSMComponent)
        .where(OGSMComponent.parent_id == source_id)
        .order_by(OGSMComponent.order_index, OGSMComponent.created_at)
    ).scalars().all()
    created = 0
    for child in children:
        copy = _clone(child, new_parent_id, child.order_index)
        created += 1 + _clone_children(child.id, copy.id)
    return created


def duplicate_component(component_id: str, include_children: bool = False) -> dict:
    """Copy a component next to the original.

    The copy keeps type, description, parent and document, gets " (Copy)"
    appended to its title and order_index + 1 (siblings are not
    renumbered, so the index may collide). With ``include_children`` every
    descendant is copied under the new node with its original order_index.
    All rows are written in one transaction.

    Returns:
        Serialized root of the copy.
    """
    source = _get_or_raise(component_id)
    try:
        root = _clone(source, source.parent_id, source.order_index + 1)
        created = 1
        if include_children:
            created += _clone_children(source.id, root.id)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(
        "OGSM component duplicated",
        extra={
            "component_id": component_id,
            "new_component_id": root.id,
            "include_children": include_children,
            "created_count": created,
        },
    )
    return root.to_dict()


# ═════════════════════════════════════════════════════════════════════════════
# Bulk reorder
# ═════════════════════════════════════════════════════════════════════════════


def bulk_reorder(updates, validator: HierarchyValidator | None = None) -> dict:
    """Apply ``[{id, order_index?, parent_id?}, ...]`` as one transaction.

    Entries run in input order and each parent change is validated against
    the state left by the entries before it. The first failing entry rolls
    back the whole batch.

    Returns:
        {"updated_count": int, "components": [...]} in input order.

    Raises:
        ValidationError: Malformed batch or rejected parent (details.id names
            the failing entry).
        NotFoundError: An entry id does not exist.
    """
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates array is required", code=E.VALIDATION_REQUIRED)

    validator = validator or get_validator()
    touched: list[OGSMComponent] = []
    try:
        for position, entry in enumerate(updates):
            if not isinstance(entry, dict) or not entry.get("id"):
                raise ValidationError(
                    "Each update requires an id",
                    details={"index": position},
                    code=E.VALIDATION_REQUIRED,
                )
            component_id = str(entry["id"])
            component = _get_or_raise(component_id)

            parent_id = _requested_parent(entry)
            if parent_id is not _UNSET:
                result = validator.validate_parent_child(component_id, parent_id)
                if not result.valid:
                    logger.warning(
                        "Bulk reorder rejected",
                        extra={"component_id": component_id, "reason": result.error},
                    )
                    raise ValidationError(
                        f"Validation failed for component {component_id}: {result.error}",
                        details={"id": component_id, "reason": result.error},
                    )
                component.parent_id = parent_id

            order_index = _parse_order_index(entry)
            if order_index is not None:
                component.order_index = order_index

            component.updated_at = _utcnow()
            db.session.flush()
            touched.append(component)

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info("OGSM bulk reorder committed", extra={"updated_count": len(touched)})
    return {
        "updated_count": len(touched),
        "components": [c.to_dict() for c in touched],
    }
