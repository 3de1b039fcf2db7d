# Overview: Socket.IO event handlers; authenticated room membership and realtime lifecycle commands.

"""
Connection protocol:

1. connect with auth={"token": <session token>}; refused without a live token
2. join_sales_room {userId, role}: must match the authenticated identity
   - admin:    admin_room + user_<id>_room, receives initial_pending_count
   - employee: employee_<id>_room + user_<id>_room, receives recent_sales_status
   - everyone: sales_room_joined; other admins see admin_online
3. lifecycle commands run the same services as the HTTP routes and reply
   through the ack: {success, data | error, kind, message, pendingCount}
4. disconnect: admins announce admin_offline

The authenticated identity lives in the per-connection Socket.IO session.
"""

from __future__ import annotations

from flask import current_app, session
from flask_socketio import emit, join_room, leave_room

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN
from ..models.sales import SALE_STATUS_PENDING
from ..services import bulk_service, lifecycle_service, pending_service, session_service
from ..services.errors import SaleLifecycleError
from salesync.time_utils import utc_timestamp
from .dispatcher import get_dispatcher
from .rooms import ADMIN_ROOM, rooms_for
from .router import sale_snapshot


SESSION_USER_KEY = "salesync_user_id"
SESSION_ROLE_KEY = "salesync_role"
SESSION_NAME_KEY = "salesync_name"
SESSION_ROOMS_KEY = "salesync_rooms"


def _failure(error: str, kind: str, details: dict | None = None) -> dict:
    ack = {"success": False, "error": error, "kind": kind, "message": error}
    if details:
        ack["details"] = details
    return ack


def _lifecycle_failure(exc: SaleLifecycleError) -> dict:
    return _failure(exc.message, exc.kind, exc.details)


def _internal_failure() -> dict:
    return _failure("Internal server error", "InternalError")


def _current_actor() -> User | None:
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return None
    user = db.session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


# =============================================================================
# CONNECTION LIFECYCLE
# =============================================================================

def on_connect(auth=None):
    token = auth.get("token") if isinstance(auth, dict) else None
    context = session_service.validate_session(token)
    if not context:
        current_app.logger.warning("Socket connection refused: missing or invalid token")
        return False

    user = context.user
    session[SESSION_USER_KEY] = user.id
    session[SESSION_ROLE_KEY] = user.role
    session[SESSION_NAME_KEY] = user.full_name
    session[SESSION_ROOMS_KEY] = []
    current_app.logger.info("Socket connected: user %s (%s)", user.id, user.role)
    return True


def on_disconnect(reason=None):
    user_id = session.get(SESSION_USER_KEY)
    if user_id is None:
        return

    if session.get(SESSION_ROLE_KEY) == ROLE_ADMIN:
        emit(
            "admin_offline",
            {"adminId": user_id, "adminName": session.get(SESSION_NAME_KEY), "timestamp": utc_timestamp()},
            to=ADMIN_ROOM,
        )
    current_app.logger.info("Socket disconnected: user %s", user_id)


def on_join_sales_room(data=None):
    data = _payload(data)
    user_id = session.get(SESSION_USER_KEY)
    role = session.get(SESSION_ROLE_KEY)
    if user_id is None:
        return _failure("Authentication required", "Unauthenticated")

    if data.get("userId") != user_id or data.get("role") != role:
        current_app.logger.warning(
            "Socket user %s tried to join sales rooms as %s/%s", user_id, data.get("userId"), data.get("role")
        )
        return _failure("Identity does not match the authenticated user", "IdentityMismatch")

    try:
        rooms = rooms_for(user_id, role)
        for room in rooms:
            join_room(room)
        session[SESSION_ROOMS_KEY] = rooms

        if role == ROLE_ADMIN:
            emit("initial_pending_count", {"count": pending_service.count_pending(), "timestamp": utc_timestamp()})
            emit(
                "admin_online",
                {"adminId": user_id, "adminName": session.get(SESSION_NAME_KEY), "timestamp": utc_timestamp()},
                to=ADMIN_ROOM,
                include_self=False,
            )
        else:
            recent = lifecycle_service.recent_sales_for_employee(
                user_id, limit=current_app.config.get("RECENT_SALES_LIMIT", 5)
            )
            emit("recent_sales_status", {"sales": [sale_snapshot(s) for s in recent], "timestamp": utc_timestamp()})

        emit("sales_room_joined", {"success": True, "role": role, "rooms": rooms, "timestamp": utc_timestamp()})
        return {"success": True, "rooms": rooms}

    except Exception:
        current_app.logger.exception("Failed to join sales rooms for user %s", user_id)
        return _internal_failure()


def on_leave_sales_room(data=None):
    for room in session.get(SESSION_ROOMS_KEY) or []:
        leave_room(room)
    session[SESSION_ROOMS_KEY] = []
    return {"success": True}


# =============================================================================
# LIFECYCLE COMMANDS
# =============================================================================

def on_create_sale_realtime(data=None):
    data = _payload(data)
    actor = _current_actor()
    if actor is None:
        return _failure("Authentication required", "Unauthenticated")

    try:
        transition = lifecycle_service.create_sale(
            data.get("productId"),
            data.get("qtySold"),
            actor=actor,
            payment_method=data.get("paymentMethod"),
            customer_name=data.get("customerName"),
            customer_phone=data.get("customerPhone"),
            notes=data.get("notes"),
            employee_notes=data.get("employeeNotes"),
        )
    except SaleLifecycleError as e:
        return _lifecycle_failure(e)
    except Exception:
        current_app.logger.exception("Realtime sale creation failed")
        return _internal_failure()

    current_app.logger.info("Sale %s created by user %s", transition.sale_number, actor.id)
    pending_count = get_dispatcher().dispatch(transition)
    return {
        "success": True,
        "data": transition.sale.to_dict(),
        "message": "Sale created successfully and is pending approval",
        "pendingCount": pending_count,
    }


def _require_admin() -> tuple[User | None, dict | None]:
    actor = _current_actor()
    if actor is None:
        return None, _failure("Authentication required", "Unauthenticated")
    if actor.role != ROLE_ADMIN:
        return None, _failure("Admin access required", "PermissionDenied")
    return actor, None


def on_approve_sale_realtime(data=None):
    data = _payload(data)
    actor, denied = _require_admin()
    if denied:
        return denied

    try:
        transition = lifecycle_service.approve_sale(data.get("saleId"), actor=actor, notes=data.get("notes"))
    except SaleLifecycleError as e:
        return _lifecycle_failure(e)
    except Exception:
        current_app.logger.exception("Realtime sale approval failed")
        return _internal_failure()

    current_app.logger.info("Sale %s approved by admin %s", transition.sale_number, actor.id)
    pending_count = get_dispatcher().dispatch(transition)
    return {
        "success": True,
        "data": transition.sale.to_dict(),
        "message": "Sale approved successfully",
        "pendingCount": pending_count,
    }


def on_reject_sale_realtime(data=None):
    data = _payload(data)
    actor, denied = _require_admin()
    if denied:
        return denied

    try:
        transition = lifecycle_service.reject_sale(data.get("saleId"), actor=actor, reason=data.get("reason"))
    except SaleLifecycleError as e:
        return _lifecycle_failure(e)
    except Exception:
        current_app.logger.exception("Realtime sale rejection failed")
        return _internal_failure()

    current_app.logger.info("Sale %s rejected by admin %s", transition.sale_number, actor.id)
    pending_count = get_dispatcher().dispatch(transition)
    return {
        "success": True,
        "data": transition.sale.to_dict(),
        "stockRestored": transition.stock_restored,
        "message": "Sale rejected and stock restored",
        "pendingCount": pending_count,
    }


def on_bulk_approve_sales(data=None):
    data = _payload(data)
    actor, denied = _require_admin()
    if denied:
        return denied

    try:
        result = bulk_service.bulk_approve_sales(data.get("saleIds"), actor=actor, notes=data.get("notes"))
    except SaleLifecycleError as e:
        return _lifecycle_failure(e)
    except Exception:
        current_app.logger.exception("Realtime bulk approval failed")
        return _internal_failure()

    current_app.logger.info(
        "Bulk approval by admin %s: %s/%s approved", actor.id, result.success_count, result.total_processed
    )
    pending_count = get_dispatcher().dispatch(result)
    return {
        "success": True,
        "data": result.to_dict(),
        "message": f"Bulk approval completed: {result.success_count} approved, {result.failure_count} failed",
        "pendingCount": pending_count,
    }


def on_request_sales_update(data=None):
    data = _payload(data)
    actor = _current_actor()
    if actor is None:
        return _failure("Authentication required", "Unauthenticated")

    limit = data.get("limit") if isinstance(data.get("limit"), int) else 50
    limit = max(1, min(limit, 200))

    try:
        if actor.role == ROLE_ADMIN:
            sales = lifecycle_service.list_sales(status=data.get("status") or SALE_STATUS_PENDING, limit=limit)
        else:
            sales = lifecycle_service.list_sales(
                status=data.get("status") or None, sold_by_user_id=actor.id, limit=limit
            )
        pending_count = pending_service.count_pending(None if actor.role == ROLE_ADMIN else actor.id)
    except SaleLifecycleError as e:
        return _lifecycle_failure(e)
    except Exception:
        current_app.logger.exception("Failed to load sales update for user %s", actor.id)
        return _internal_failure()

    payload = {
        "sales": [sale_snapshot(s) for s in sales],
        "pendingCount": pending_count,
        "timestamp": utc_timestamp(),
    }
    emit("sales_update", payload)
    return {"success": True, "count": len(sales)}


HANDLERS = {
    "connect": on_connect,
    "disconnect": on_disconnect,
    "join_sales_room": on_join_sales_room,
    "leave_sales_room": on_leave_sales_room,
    "create_sale_realtime": on_create_sale_realtime,
    "approve_sale_realtime": on_approve_sale_realtime,
    "reject_sale_realtime": on_reject_sale_realtime,
    "bulk_approve_sales": on_bulk_approve_sales,
    "request_sales_update": on_request_sales_update,
}


def register_socket_handlers(socketio) -> None:
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler)
