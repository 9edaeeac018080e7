"""
OGSM Component Blueprint.

Routes for the OGSM hierarchy (Objectives, Goals, Strategies, Measures).
All business logic is delegated to ogsm_service (3-layer architecture);
service exceptions are mapped to JSON errors by the handlers registered below.

Endpoints:
  Component:     GET/POST   /api/v1/ogsm
                 GET/PUT/DELETE /api/v1/ogsm/<id>
  Tree:          GET        /api/v1/ogsm/hierarchy/tree
  Duplicate:     POST       /api/v1/ogsm/<id>/duplicate
  Bulk reorder:  POST       /api/v1/ogsm/bulk/reorder
"""

import logging

from flask import Blueprint, jsonify, request

from ogsm_manager.services import ogsm_service
from ogsm_manager.utils.errors import register_error_handlers
from ogsm_manager.utils.helpers import json_body

logger = logging.getLogger(__name__)

ogsm_bp = Blueprint("ogsm", __name__, url_prefix="/api/v1/ogsm")

register_error_handlers(ogsm_bp)


# ═════════════════════════════════════════════════════════════════════════════
# Component CRUD
# ═════════════════════════════════════════════════════════════════════════════


@ogsm_bp.route("", methods=["GET"])
def list_components():
    """List components.

    Query params: type?, document_id?
    Returns: list ordered by order_index, created_at.
    """
    items = ogsm_service.list_components(
        component_type=request.args.get("type"),
        document_id=request.args.get("document_id"),
    )
    return jsonify(items), 200


@ogsm_bp.route("/<component_id>", methods=["GET"])
def get_component(component_id: str):
    return jsonify(ogsm_service.get_component(component_id)), 200


@ogsm_bp.route("", methods=["POST"])
def create_component():
    """Create a component.

    Body: { "component_type": str, "title": str, "description"?: str,
            "parent_id"?: str, "order_index"?: int, "document_id"?: str }
    Returns: created component (201).
    """
    data = json_body()
    return jsonify(ogsm_service.create_component(data)), 201


@ogsm_bp.route("/<component_id>", methods=["PUT"])
def update_component(component_id: str):
    """Update title / description / order_index / parent_id.

    ``parent_id: null`` detaches the component to root level; omit the key to
    keep the current parent.
    """
    data = json_body()
    return jsonify(ogsm_service.update_component(component_id, data)), 200


@ogsm_bp.route("/<component_id>", methods=["DELETE"])
def delete_component(component_id: str):
    """Delete a component; its descendants are removed with it."""
    deleted = ogsm_service.delete_component(component_id)
    return jsonify({"message": "Component deleted successfully", "component": deleted}), 200


# ═════════════════════════════════════════════════════════════════════════════
# Hierarchy
# ═════════════════════════════════════════════════════════════════════════════


@ogsm_bp.route("/hierarchy/tree", methods=["GET"])
def hierarchy_tree():
    """Flattened forest: rows with ``level``, ordered by level then order_index."""
    return jsonify(ogsm_service.build_hierarchy_tree()), 200


@ogsm_bp.route("/<component_id>/duplicate", methods=["POST"])
def duplicate_component(component_id: str):
    """Duplicate a component.

    Body: { "include_children"?: bool }
    Returns: root of the copy (201).
    """
    data = json_body()
    copy = ogsm_service.duplicate_component(
        component_id, include_children=bool(data.get("include_children", False)),
    )
    return jsonify(copy), 201


@ogsm_bp.route("/bulk/reorder", methods=["POST"])
def bulk_reorder():
    """Apply several order/parent changes atomically.

    Body: { "updates": [{ "id": str, "order_index"?: int, "parent_id"?: str|null }] }
    Returns: { "message", "updated_count", "components" }.
    """
    data = json_body()
    result = ogsm_service.bulk_reorder(data.get("updates"))
    return jsonify({"message": "Components reordered successfully", **result}), 200
