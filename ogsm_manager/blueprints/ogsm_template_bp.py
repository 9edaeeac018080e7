"""
OGSM Template Blueprint.

Routes for reusable OGSM structures and their expansion into components.
Business logic lives in template_service.

Endpoints:
  Template:  GET/POST        /api/v1/ogsm-templates
             GET/PUT/DELETE  /api/v1/ogsm-templates/<id>
  Apply:     POST            /api/v1/ogsm-templates/<id>/apply
"""

import logging

from flask import Blueprint, jsonify, request

from ogsm_manager.services import template_service
from ogsm_manager.utils.errors import register_error_handlers
from ogsm_manager.utils.helpers import json_body

logger = logging.getLogger(__name__)

ogsm_template_bp = Blueprint("ogsm_templates", __name__, url_prefix="/api/v1/ogsm-templates")

register_error_handlers(ogsm_template_bp)


@ogsm_template_bp.route("", methods=["GET"])
def list_templates():
    """List templates, most used first.

    Query params: category?, is_public? ("true" | "false")
    """
    is_public_raw = request.args.get("is_public")
    is_public = None
    if is_public_raw is not None:
        is_public = is_public_raw.lower() in ("true", "1", "yes")

    items = template_service.list_templates(
        category=request.args.get("category"),
        is_public=is_public,
    )
    return jsonify(items), 200


@ogsm_template_bp.route("/<template_id>", methods=["GET"])
def get_template(template_id: str):
    return jsonify(template_service.get_template(template_id)), 200


@ogsm_template_bp.route("", methods=["POST"])
def create_template():
    """Body: { "name": str, "structure": [...], "description"?, "category"?,
    "is_public"?, "created_by"?, "tags"?, "metadata"? }"""
    data = json_body()
    return jsonify(template_service.create_template(data)), 201


@ogsm_template_bp.route("/<template_id>", methods=["PUT"])
def update_template(template_id: str):
    data = json_body()
    return jsonify(template_service.update_template(template_id, data)), 200


@ogsm_template_bp.route("/<template_id>", methods=["DELETE"])
def delete_template(template_id: str):
    template_service.delete_template(template_id)
    return jsonify({"message": "Template deleted successfully"}), 200


@ogsm_template_bp.route("/<template_id>/apply", methods=["POST"])
def apply_template(template_id: str):
    """Create components from a template.

    Body: { "document_id"?: str }
    Returns: { "message", "components": [...] } (201).
    """
    data = json_body()
    result = template_service.apply_template(template_id, document_id=data.get("document_id"))
    return jsonify(result), 201
