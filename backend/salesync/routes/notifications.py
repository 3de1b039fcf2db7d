# Overview: Flask API routes for direct user notifications over the realtime layer.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import require_auth, require_role
from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN
from ..realtime import get_dispatcher, router
from ..realtime.events import PRIORITY_INFO, PRIORITY_SUCCESS, PRIORITY_WARNING, PRIORITY_CRITICAL


notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

PRIORITIES = (PRIORITY_INFO, PRIORITY_SUCCESS, PRIORITY_WARNING, PRIORITY_CRITICAL)


@notifications_bp.post("/users/<int:user_id>")
@require_auth
@require_role(ROLE_ADMIN)
def notify_user_route(user_id: int):
    """
    Push a user_notification to one user's room.

    Request body:
    {
        "title": "Shift change",
        "message": "...",
        "priority": "info",     (optional)
        "data": {}              (optional)
    }

    Delivery is best effort; "delivered" reports whether the transport
    accepted the message, not whether the user was online.
    """
    try:
        data = request.get_json(silent=True) or {}
        title = (data.get("title") or "").strip()
        message = (data.get("message") or "").strip()
        priority = data.get("priority") or PRIORITY_INFO

        if not title or not message:
            return jsonify({"error": "title and message required"}), 400
        if priority not in PRIORITIES:
            return jsonify({"error": f"priority must be one of: {', '.join(PRIORITIES)}"}), 400

        if db.session.get(User, user_id) is None:
            return jsonify({"error": f"User {user_id} not found"}), 404

        notice = router.user_notice(
            user_id,
            title=title,
            message=message,
            priority=priority,
            data=data.get("data") if isinstance(data.get("data"), dict) else None,
        )
        delivered = get_dispatcher().deliver([notice]) == 1

        return jsonify({"delivered": delivered, "notification": notice.to_payload()}), 200

    except Exception:
        current_app.logger.exception("Failed to notify user")
        return jsonify({"error": "Internal server error"}), 500
