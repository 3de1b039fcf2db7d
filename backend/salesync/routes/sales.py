# Overview: Flask API routes for the sale lifecycle; parses input and returns JSON responses.

# backend/salesync/routes/sales.py
"""
Sales API Routes

DESIGN:
- Employees (and admins) record sales; stock is reserved immediately
- Admins approve or reject pending sales, singly or in bulk
- Every committed transition is handed to the NotificationDispatcher,
  which fans it out to the Socket.IO rooms after the commit

Responses carry the fully materialized sale; transition responses also
carry the freshly recomputed pendingCount (null if the push failed).
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMIN
from ..realtime import get_dispatcher
from ..services import bulk_service, lifecycle_service, pending_service
from ..services.errors import SaleLifecycleError
from salesync.time_utils import parse_iso_datetime


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _error_response(exc: SaleLifecycleError):
    return jsonify(exc.to_dict()), exc.status_code


def _can_view(sale) -> bool:
    user = g.current_user
    return user.is_admin or sale.sold_by_user_id == user.id


# =============================================================================
# CREATION
# =============================================================================

@sales_bp.post("/")
@require_auth
def create_sale_route():
    """
    Record a sale (status: pending) and reserve its stock.

    Request body:
    {
        "product_id": 1,
        "qty_sold": 2,
        "payment_method": "cash",      (optional: cash|card|mobile|credit)
        "customer_name": "...",        (optional)
        "customer_phone": "...",       (optional)
        "notes": "...",                (optional)
        "employee_notes": "..."        (optional)
    }

    Returns:
        201: Sale created
        400: Invalid input or insufficient stock
        404: Product not found
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("product_id")
        qty_sold = data.get("qty_sold")

        if product_id is None or qty_sold is None:
            return jsonify({"error": "product_id and qty_sold required"}), 400

        transition = lifecycle_service.create_sale(
            product_id,
            qty_sold,
            actor=g.current_user,
            payment_method=data.get("payment_method"),
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
            notes=data.get("notes"),
            employee_notes=data.get("employee_notes"),
        )
        current_app.logger.info("Sale %s created by user %s", transition.sale_number, transition.actor_id)
        pending_count = get_dispatcher().dispatch(transition)

        return jsonify({
            "sale": transition.sale.to_dict(),
            "pendingCount": pending_count,
            "message": "Sale created successfully and is pending approval",
        }), 201

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# QUERIES
# =============================================================================

@sales_bp.get("/")
@require_auth
def list_sales_route():
    """
    Admins see every sale; employees only ever see their own.

    Query params: status, payment_method, product_id,
    start_date, end_date (ISO-8601 on sales_date, inclusive), limit
    """
    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "start_date and end_date must be ISO-8601 datetimes"}), 400

    try:
        limit = min(request.args.get("limit", 50, type=int), 200)

        sold_by = None if g.current_user.is_admin else g.current_user.id
        sales = lifecycle_service.list_sales(
            status=request.args.get("status") or None,
            sold_by_user_id=sold_by,
            product_id=request.args.get("product_id", type=int),
            payment_method=request.args.get("payment_method") or None,
            start_date=start_dt,
            end_date=end_dt,
            limit=limit,
        )

        return jsonify({"sales": [s.to_dict() for s in sales], "count": len(sales)}), 200

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list sales")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/pending-count")
@require_auth
@require_role(ROLE_ADMIN)
def pending_count_route():
    return jsonify({"count": pending_service.count_pending()}), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = lifecycle_service.get_sale(sale_id)
        if not _can_view(sale):
            return jsonify({"error": "Permission denied"}), 403
        return jsonify({"sale": sale.to_dict()}), 200

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get sale")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# RESOLUTION (admin)
# =============================================================================

@sales_bp.post("/<int:sale_id>/approve")
@require_auth
@require_role(ROLE_ADMIN)
def approve_sale_route(sale_id: int):
    """
    Approve a pending sale (pending -> approved).

    Request body (optional):
    {
        "notes": "..."
    }

    Returns:
        200: Sale approved
        404: Sale not found
        409: Sale already resolved
    """
    try:
        data = request.get_json(silent=True) or {}
        transition = lifecycle_service.approve_sale(sale_id, actor=g.current_user, notes=data.get("notes"))
        current_app.logger.info("Sale %s approved by admin %s", transition.sale_number, transition.actor_id)
        pending_count = get_dispatcher().dispatch(transition)

        return jsonify({
            "sale": transition.sale.to_dict(),
            "pendingCount": pending_count,
            "message": "Sale approved successfully",
        }), 200

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to approve sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/<int:sale_id>/reject")
@require_auth
@require_role(ROLE_ADMIN)
def reject_sale_route(sale_id: int):
    """
    Reject a pending sale and restore its stock (pending -> rejected).

    Request body:
    {
        "reason": "damaged"    (required)
    }

    Returns:
        200: Sale rejected
        400: Missing reason
        404: Sale not found
        409: Sale already resolved
    """
    try:
        data = request.get_json(silent=True) or {}
        transition = lifecycle_service.reject_sale(sale_id, actor=g.current_user, reason=data.get("reason"))
        current_app.logger.info("Sale %s rejected by admin %s", transition.sale_number, transition.actor_id)
        pending_count = get_dispatcher().dispatch(transition)

        return jsonify({
            "sale": transition.sale.to_dict(),
            "stockRestored": transition.stock_restored,
            "pendingCount": pending_count,
            "message": "Sale rejected and stock restored",
        }), 200

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reject sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.post("/bulk-approve")
@require_auth
@require_role(ROLE_ADMIN)
def bulk_approve_route():
    """
    Approve many pending sales, each in its own transaction.

    Request body:
    {
        "sale_ids": [1, 2, 3],
        "notes": "..."         (optional)
    }

    Returns:
        200: Per-sale results with success/failure counts
        400: sale_ids missing or empty
    """
    try:
        data = request.get_json(silent=True) or {}
        result = bulk_service.bulk_approve_sales(
            data.get("sale_ids"),
            actor=g.current_user,
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Bulk approval by admin %s: %s/%s approved",
            g.current_user.id,
            result.success_count,
            result.total_processed,
        )
        pending_count = get_dispatcher().dispatch(result)

        body = result.to_dict()
        body["pendingCount"] = pending_count
        return jsonify(body), 200

    except SaleLifecycleError as e:
        return _error_response(e)
    except Exception:
        current_app.logger.exception("Failed to bulk approve sales")
        return jsonify({"error": "Internal server error"}), 500
