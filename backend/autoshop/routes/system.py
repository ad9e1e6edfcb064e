# backend/autoshop/routes/system.py
"""
System health endpoint.

Reports database connectivity plus a few workshop counters that are handy
when debugging a deployment.
"""

import time
from flask import Blueprint, current_app, jsonify
from ..extensions import db
from ..models import Appointment, CalendarSlot, Part, STATUS_PENDING
from autoshop.time_utils import to_utc_z, utcnow

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        pending = db.session.query(Appointment).filter_by(status=STATUS_PENDING).count()
        slots = db.session.query(CalendarSlot).count()
        parts = db.session.query(Part).count()

        elapsed_ms = (time.time() - start_time) * 1000

        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "pending_appointments": pending,
                "calendar_slots": slots,
                "parts": parts,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    healthy = database["status"] == "healthy"
    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": to_utc_z(utcnow()),
        "checks": {"database": database},
    }), 200 if healthy else 503
