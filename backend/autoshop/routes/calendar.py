# Overview: Flask API routes for calendar slot lookups; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..decorators import require_auth
from ..errors import ServiceError
from ..services import calendar_service
from ..validation import parse_date, parse_time
from autoshop.time_utils import format_date


calendar_bp = Blueprint("calendar", __name__, url_prefix="/api/calendar")


@calendar_bp.get("/available-slots")
@require_auth
def available_slots_route():
    """
    Bookable slots of one day.

    Query params:
        date: YYYY-MM-DD (required)

    Weekends return an empty list, not an error.
    """
    try:
        day = parse_date(request.args.get("date"))
        slots = calendar_service.get_available_slots(day)
        return jsonify({
            "success": True,
            "date": format_date(day),
            "availableSlots": [slot.to_dict() for slot in slots],
        }), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load available slots")
        return jsonify({"success": False, "message": "Internal server error"}), 500


@calendar_bp.get("/slot-availability")
@require_auth
def slot_availability_route():
    """
    Query params:
        date: YYYY-MM-DD (required)
        time: HH:MM or HH:MM:SS (required)
    """
    try:
        day = parse_date(request.args.get("date"))
        at = parse_time(request.args.get("time"))
        availability = calendar_service.check_slot_availability(day, at)
        return jsonify({"success": True, **availability.to_dict()}), 200

    except ServiceError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to check slot availability")
        return jsonify({"success": False, "message": "Internal server error"}), 500
