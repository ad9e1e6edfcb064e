# Overview: Flask API routes for the admin appointment dashboard; parses input and returns JSON responses.

# backend/autoshop/routes/admin.py
"""
Admin Appointment API Routes

- Dashboard listing with status / date / search filters
- Appointment detail including allocated parts and history
- The approve / reject decision, with part allocation on approval
- Statistics over the last 30 days

SECURITY:
- Every route requires an authenticated admin
- Decisions are attributed to the acting admin in the history trail
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth, require_role
from ..errors import ServiceError
from ..money import format_cents
from ..services import allocation_service, appointment_service, history_service
from ..validation import parse_selected_parts, parse_status_decision


admin_bp = Blueprint("admin", __name__, url_prefix="/admin/api/appointments")


STATUS_MESSAGES = {
    "approved": "Appointment approved successfully",
    "rejected": "Appointment rejected",
    "pending": "Appointment kept pending",
}


def _admin_view(appointment) -> dict:
    body = appointment.to_dict()
    user = appointment.user
    vehicle = appointment.vehicle
    body["client"] = {
        "id": user.id,
        "name": user.full_name,
        "email": user.email,
        "phone": user.phone,
    } if user else None
    body["vehicle"] = vehicle.to_dict() if vehicle else None
    return body


def _parts_info(appointment_id: int) -> dict:
    rows = allocation_service.get_allocation(appointment_id)
    total = allocation_service.get_allocation_total(appointment_id)
    return {
        "parts": [row.to_dict() for row in rows],
        "partsCount": total.parts_count,
        "totalCost": format_cents(total.total_cents),
    }


@admin_bp.get("")
@require_auth
@require_role("admin")
def list_appointments_route():
    """
    Query params:
        status: pending | approved | rejected | completed | cancelled
        dateFilter: today | tomorrow | week | month
        search: free text over client, problem and vehicle
    """
    try:
        appointments = appointment_service.list_appointments_for_admin(
            status=request.args.get("status") or None,
            date_filter=request.args.get("dateFilter") or request.args.get("date_filter") or None,
            search=request.args.get("search"),
        )
        return jsonify({
            "success": True,
            "appointments": [_admin_view(a) for a in appointments],
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list appointments for admin")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@admin_bp.get("/statistics")
@require_auth
@require_role("admin")
def statistics_route():
    try:
        return jsonify({"success": True, "statistics": appointment_service.get_statistics()}), 200
    except Exception:
        current_app.logger.exception("Failed to compute appointment statistics")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@admin_bp.get("/<int:appointment_id>")
@require_auth
@require_role("admin")
def get_appointment_route(appointment_id: int):
    try:
        appointment = appointment_service.get_appointment(appointment_id)
        body = _admin_view(appointment)
        body["partsInfo"] = _parts_info(appointment_id)
        return jsonify({"success": True, "appointment": body}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load appointment for admin")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@admin_bp.put("/<int:appointment_id>/status")
@require_auth
@require_role("admin")
def update_status_route(appointment_id: int):
    """
    Approve, reject or annotate a pending appointment.

    Request body:
    {
        "status": "approved",
        "adminResponse": "See you on Monday",      (optional)
        "estimatedPrice": 150,                     (approval)
        "warranty": 6,                             (approval, months)
        "rejectionReason": "schedule",             (rejection)
        "rejectionDetails": "...",                 (rejection, reason "other")
        "retryDays": 7,                            (rejection, optional)
        "selectedParts": [{"partId": 5, "quantity": 2, "unitPrice": 20}]
    }

    Returns:
        200: decision applied
        400: invalid input or insufficient stock (with unavailableParts)
        404: appointment not found
        409: appointment already processed / cancelled / completed
    """
    try:
        data = request.get_json(silent=True)
        decision = parse_status_decision(data)
        selected_parts = parse_selected_parts(data.get("selectedParts", data.get("selected_parts")))

        result = appointment_service.update_status_with_parts(
            appointment_id,
            decision,
            selected_parts,
            actor_id=g.current_user.id,
        )

        appointment = result.appointment
        current_app.logger.info(
            "Appointment %s set to %s by admin %s (%d parts allocated)",
            appointment_id, appointment.status, g.current_user.id, len(result.allocation),
        )

        body = {
            "success": True,
            "message": STATUS_MESSAGES.get(appointment.status, "Appointment updated"),
            "appointment": appointment.to_dict(),
        }
        if result.allocation:
            body["partsInfo"] = {
                "parts": [row.to_dict() for row in result.allocation],
                "partsCount": len(result.allocation),
                "totalCost": format_cents(result.parts_total_cents),
            }
        if result.stock_updates:
            body["stockInfo"] = [u.to_dict() for u in result.stock_updates]
        if result.low_stock_warnings:
            body["lowStockWarnings"] = result.low_stock_warnings

        return jsonify(body), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update appointment status")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@admin_bp.get("/<int:appointment_id>/history")
@require_auth
@require_role("admin")
def history_route(appointment_id: int):
    try:
        appointment_service.get_appointment(appointment_id)
        entries = history_service.list_history(appointment_id)
        return jsonify({"success": True, "history": [e.to_dict() for e in entries]}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load appointment history")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@admin_bp.get("/<int:appointment_id>/parts")
@require_auth
@require_role("admin")
def parts_route(appointment_id: int):
    try:
        appointment_service.get_appointment(appointment_id)
        return jsonify({"success": True, **_parts_info(appointment_id)}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load appointment parts")
        return jsonify({"success": False, "message": "Internal server error"}), 500
