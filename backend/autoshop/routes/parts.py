# Overview: Flask API routes for the parts catalogue; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth, require_role
from ..errors import ServiceError
from ..services import parts_service


parts_bp = Blueprint("parts", __name__, url_prefix="/api/parts")

INVENTORY_ROLES = ("admin", "manager", "accountant")


def _flag(value) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes")


@parts_bp.get("")
@require_auth
@require_role(*INVENTORY_ROLES)
def list_parts_route():
    """
    Query params:
        search: matches name, part number, description, category
        category: exact category
        available: true to hide parts with zero stock
    """
    try:
        parts = parts_service.list_parts(
            search=request.args.get("search"),
            category=request.args.get("category") or None,
            available_only=_flag(request.args.get("available")),
        )
        return jsonify({"success": True, "parts": [p.to_dict() for p in parts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list parts")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@parts_bp.get("/categories")
@require_auth
@require_role(*INVENTORY_ROLES)
def categories_route():
    try:
        return jsonify({"success": True, "categories": parts_service.list_categories()}), 200
    except Exception:
        current_app.logger.exception("Failed to list part categories")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@parts_bp.get("/low-stock")
@require_auth
@require_role(*INVENTORY_ROLES)
def low_stock_route():
    try:
        parts = parts_service.get_low_stock_parts()
        return jsonify({"success": True, "parts": [p.to_dict() for p in parts]}), 200
    except Exception:
        current_app.logger.exception("Failed to list low-stock parts")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@parts_bp.get("/<int:part_id>")
@require_auth
@require_role(*INVENTORY_ROLES)
def get_part_route(part_id: int):
    try:
        part = parts_service.get_part(part_id)
        return jsonify({"success": True, "part": part.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load part")
        return jsonify({"success": False, "message": "Internal server error"}), 500
