# Overview: Flask API routes for client appointment operations; parses input and returns JSON responses.

# backend/autoshop/routes/appointments.py
"""
Client Appointment API Routes

- Book an appointment into a calendar slot (status: pending)
- List and view own appointments
- Cancel a pending appointment ahead of the cancellation cutoff

A client only ever sees their own appointments; someone else's id answers 404.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_auth
from ..errors import ServiceError, ValidationError
from ..models import STATUS_CANCELLED
from ..services import appointment_service
from ..validation import parse_int
from autoshop.time_utils import format_date, format_time, to_utc_z


appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def _summary(appointment) -> dict:
    return {
        "id": appointment.id,
        "date": format_date(appointment.appointment_date),
        "time": format_time(appointment.appointment_time),
        "status": appointment.status,
        "description": appointment.problem_description,
        "createdAt": to_utc_z(appointment.created_at),
    }


@appointments_bp.get("")
@require_auth
def list_appointments_route():
    try:
        appointments = appointment_service.list_user_appointments(g.current_user.id)
        return jsonify({
            "success": True,
            "appointments": [a.to_dict() for a in appointments],
        }), 200
    except Exception:
        current_app.logger.exception("Failed to list appointments")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@appointments_bp.post("")
@require_auth
def create_appointment_route():
    """
    Book an appointment.

    Request body:
    {
        "date": "2030-01-07",
        "time": "10:00",
        "description": "Strange noise when braking",
        "vehicleId": 3  (optional)
    }

    Returns:
        201: appointment created (pending)
        400: invalid input or time in the past
        404: vehicle not found
        409: slot full/unavailable or duplicate booking
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")

        appointment = appointment_service.create_appointment(
            user_id=g.current_user.id,
            date=data.get("date"),
            time=data.get("time"),
            description=data.get("description"),
            vehicle_id=parse_int(data.get("vehicleId", data.get("vehicle_id")), field="vehicleId", minimum=1),
        )

        current_app.logger.info(
            "Appointment %s booked by user %s for %s",
            appointment.id, g.current_user.id, appointment.appointment_at,
        )
        return jsonify({
            "success": True,
            "message": "Appointment created successfully",
            "appointment": _summary(appointment),
        }), 201

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create appointment")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@appointments_bp.get("/<int:appointment_id>")
@require_auth
def get_appointment_route(appointment_id: int):
    try:
        appointment = appointment_service.get_appointment_for_user(appointment_id, g.current_user.id)
        return jsonify({"success": True, "appointment": appointment.to_dict()}), 200
    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load appointment")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@appointments_bp.put("/<int:appointment_id>")
@require_auth
def update_appointment_route(appointment_id: int):
    """
    Clients can only cancel: {"status": "cancelled"}.
    """
    try:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Invalid JSON payload")
        if data.get("status") != STATUS_CANCELLED:
            raise ValidationError("Clients can only cancel appointments")

        appointment = appointment_service.cancel_appointment(
            user_id=g.current_user.id,
            appointment_id=appointment_id,
        )

        current_app.logger.info("Appointment %s cancelled by user %s", appointment_id, g.current_user.id)
        return jsonify({
            "success": True,
            "message": "Appointment cancelled successfully",
            "appointment": appointment.to_dict(),
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to cancel appointment")
        return jsonify({"success": False, "message": "Internal server error"}), 500
