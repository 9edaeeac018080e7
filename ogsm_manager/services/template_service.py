"""
OGSM Template Service.

Reusable component structures and their expansion into real OGSM
components.

Functions:
    - list_templates:       Filter by category / is_public, most used first
    - get_template:         Single template
    - create_template:      Insert after structure validation
    - update_template:      Coalesce update; new structure re-validated
    - delete_template:      Delete
    - validate_structure:   Node shape + type-hierarchy check of a structure
    - apply_template:       Expand a structure into components (one transaction)
"""

import logging

from sqlalchemy import select

from ogsm_manager.core.exceptions import NotFoundError, ValidationError
from ogsm_manager.models import db
from ogsm_manager.models.ogsm import COMPONENT_TYPES, OGSMComponent, OGSMTemplate
from ogsm_manager.services.hierarchy_validator import HierarchyValidator
from ogsm_manager.utils.errors import E

logger = logging.getLogger(__name__)

_UPDATABLE = ("name", "description", "category", "structure", "is_public", "tags")


def _get_or_raise(template_id: str) -> OGSMTemplate:
    template = db.session.get(OGSMTemplate, template_id)
    if template is None:
        raise NotFoundError(resource="Template", resource_id=template_id)
    return template


# ── Structure validation ─────────────────────────────────────────────────────


def validate_structure(structure, validator: HierarchyValidator | None = None) -> None:
    """Check every node of a template structure.

    A node is ``{"component_type", "title", "description"?, "children"?}``.
    Child types must be allowed under their parent node's type, using the
    same table as the hierarchy validator.

    Raises:
        ValidationError: First bad node, with its path in ``details.path``.
    """
    if not isinstance(structure, list):
        raise ValidationError("Invalid template structure")
    validator = validator or HierarchyValidator()
    _validate_nodes(structure, None, "structure", validator)


def _validate_nodes(nodes, parent_type, path, validator):
    for i, node in enumerate(nodes):
        node_path = f"{path}[{i}]"
        if not isinstance(node, dict):
            raise ValidationError("Template node must be an object", details={"path": node_path})
        node_type = node.get("component_type")
        if node_type not in COMPONENT_TYPES:
            raise ValidationError(
                f"component_type must be one of: {', '.join(COMPONENT_TYPES)}",
                details={"path": node_path},
            )
        if not str(node.get("title") or "").strip():
            raise ValidationError("Template node title is required", details={"path": node_path})
        if parent_type and not validator.is_allowed_parent_type(node_type, parent_type):
            raise ValidationError(
                f"Invalid hierarchy: {node_type} cannot be a child of {parent_type}",
                details={"path": node_path},
            )
        children = node.get("children")
        if children is None:
            continue
        if not isinstance(children, list):
            raise ValidationError("children must be a list", details={"path": node_path})
        _validate_nodes(children, node_type, f"{node_path}.children", validator)


# ── CRUD ─────────────────────────────────────────────────────────────────────


def _check_field_types(data: dict) -> None:
    if data.get("is_public") is not None and not isinstance(data["is_public"], bool):
        raise ValidationError("is_public must be a boolean", details={"field": "is_public"})
    if data.get("tags") is not None and not isinstance(data["tags"], list):
        raise ValidationError("tags must be a list", details={"field": "tags"})


def list_templates(category: str | None = None, is_public: bool | None = None) -> list[dict]:
    stmt = select(OGSMTemplate)
    if category:
        stmt = stmt.where(OGSMTemplate.category == category)
    if is_public is not None:
        stmt = stmt.where(OGSMTemplate.is_public == is_public)
    stmt = stmt.order_by(OGSMTemplate.usage_count.desc(), OGSMTemplate.created_at.desc())
    return [t.to_dict() for t in db.session.execute(stmt).scalars()]


def get_template(template_id: str) -> dict:
    return _get_or_raise(template_id).to_dict()


def create_template(data: dict) -> dict:
    """Create a template.

    Raises:
        ValidationError: name/structure missing or structure invalid.
    """
    name = (data.get("name") or "").strip()
    structure = data.get("structure")
    if not name or not structure:
        raise ValidationError("name and structure are required", code=E.VALIDATION_REQUIRED)
    validate_structure(structure)
    _check_field_types(data)
    tags = data.get("tags") or []

    template = OGSMTemplate(
        name=name,
        description=data.get("description") or "",
        category=data.get("category") or None,
        structure=structure,
        is_public=data.get("is_public") is not False,
        created_by=data.get("created_by") or None,
        tags=tags,
        template_metadata=data.get("metadata"),
    )
    db.session.add(template)
    db.session.commit()
    logger.info("OGSM template created", extra={"template_id": template.id})
    return template.to_dict()


def update_template(template_id: str, data: dict) -> dict:
    template = _get_or_raise(template_id)

    if data.get("name") is not None and not str(data["name"]).strip():
        raise ValidationError("name cannot be empty", details={"field": "name"})
    if data.get("structure") is not None:
        validate_structure(data["structure"])
    _check_field_types(data)

    for field in _UPDATABLE:
        if data.get(field) is not None:
            setattr(template, field, data[field])
    if data.get("metadata") is not None:
        template.template_metadata = data["metadata"]

    db.session.commit()
    logger.info("OGSM template updated", extra={"template_id": template_id})
    return template.to_dict()


def delete_template(template_id: str) -> None:
    template = _get_or_raise(template_id)
    db.session.delete(template)
    db.session.commit()
    logger.info("OGSM template deleted", extra={"template_id": template_id})


# ── Apply ────────────────────────────────────────────────────────────────────


def _create_from_structure(nodes, document_id, parent_id) -> list[OGSMComponent]:
    created = []
    for position, node in enumerate(nodes):
        component = OGSMComponent(
            document_id=document_id,
            component_type=node["component_type"],
            title=str(node["title"]).strip(),
            description=node.get("description") or "",
            parent_id=parent_id,
            order_index=position,
        )
        db.session.add(component)
        db.session.flush()
        created.append(component)
        if node.get("children"):
            created.extend(_create_from_structure(node["children"], document_id, component.id))
    return created


def apply_template(template_id: str, document_id: str | None = None) -> dict:
    """Expand a template into components.

    Top-level nodes become roots; children go under their freshly created
    parent. Each node's order_index is its position among its siblings.
    The usage counter and every insert share one transaction.

    Returns:
        {"message": str, "components": [...]} in creation order
        (parent before children).
    """
    template = _get_or_raise(template_id)
    validate_structure(template.structure)

    try:
        template.usage_count = OGSMTemplate.usage_count + 1
        created = _create_from_structure(template.structure, document_id or None, None)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        "OGSM template applied",
        extra={"template_id": template_id, "created_count": len(created)},
    )
    return {
        "message": "Components created from template successfully",
        "components": [c.to_dict() for c in created],
    }
