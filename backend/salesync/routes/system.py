# backend/salesync/routes/system.py
"""
System health endpoint.

Reports database reachability and whether realtime fan-out is wired to
Socket.IO or recorded in memory.
"""

import time

from flask import Blueprint, current_app, jsonify

from ..extensions import db
from ..models import Product, Sale, User
from ..realtime import SocketIOPublisher, get_dispatcher
from salesync.time_utils import utc_timestamp

system_bp = Blueprint("system", __name__, url_prefix="/api/system")


def check_database_health() -> dict:
    start_time = time.time()
    try:
        details = {
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
            "sales": db.session.query(Sale).count(),
        }
        elapsed_ms = (time.time() - start_time) * 1000
        return {"status": "healthy", "latency_ms": round(elapsed_ms, 2), "details": details}
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": round(elapsed_ms, 2), "error": "Database error"}


def check_realtime_health() -> dict:
    publisher = get_dispatcher().publisher
    return {
        "status": "healthy",
        "transport": "socketio" if isinstance(publisher, SocketIOPublisher) else "in_memory",
    }


@system_bp.get("/health")
def health():
    database = check_database_health()
    realtime = check_realtime_health()
    healthy = database["status"] == "healthy"

    return jsonify({
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": utc_timestamp(),
        "checks": {"database": database, "realtime": realtime},
    }), 200 if healthy else 503
