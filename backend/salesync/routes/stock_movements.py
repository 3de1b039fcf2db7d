# Overview: Flask API routes for the stock ledger; history, per-product history and manual adjustments.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_role
from ..models.auth import ROLE_ADMIN
from ..services import ledger_service
from ..services.errors import SaleLifecycleError
from salesync.time_utils import parse_iso_datetime


stock_movements_bp = Blueprint("stock_movements", __name__, url_prefix="/api/stock-movements")


@stock_movements_bp.get("/")
@require_auth
def list_movements_route():
    """
    Movement history, newest first.

    Query params: product_id, type (in|out), user_id, sale_id,
    start_date, end_date (ISO-8601, inclusive), limit

    Employees only see movements they recorded; user_id is ignored for them.
    """
    try:
        start_dt = parse_iso_datetime(request.args.get("start_date"))
        end_dt = parse_iso_datetime(request.args.get("end_date"))
    except ValueError:
        return jsonify({"error": "start_date and end_date must be ISO-8601 datetimes"}), 400

    if g.current_user.is_admin:
        recorded_by = request.args.get("user_id", type=int)
    else:
        recorded_by = g.current_user.id

    try:
        movements = ledger_service.list_movements(
            product_id=request.args.get("product_id", type=int),
            movement_type=request.args.get("type") or None,
            recorded_by_user_id=recorded_by,
            sale_id=request.args.get("sale_id", type=int),
            start_date=start_dt,
            end_date=end_dt,
            limit=min(request.args.get("limit", 100, type=int), 500),
        )
        return jsonify({"movements": [m.to_dict() for m in movements], "count": len(movements)}), 200
    except Exception:
        current_app.logger.exception("Failed to list stock movements")
        return jsonify({"error": "Internal server error"}), 500


@stock_movements_bp.get("/product/<int:product_id>")
@require_auth
def product_history_route(product_id: int):
    """Latest movements of one product (?limit, default 20)."""
    try:
        movements = ledger_service.product_history(
            product_id,
            limit=min(request.args.get("limit", 20, type=int), 500),
        )
        return jsonify({"movements": [m.to_dict() for m in movements], "count": len(movements)}), 200
    except SaleLifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to load product stock history")
        return jsonify({"error": "Internal server error"}), 500


@stock_movements_bp.post("/")
@require_auth
@require_role(ROLE_ADMIN)
def adjust_stock_route():
    """
    Manual restock or write-off.

    Request body:
    {
        "product_id": 1,
        "type": "in",              (in|out)
        "quantity": 10,
        "reason": "Restock",
        "notes": "...",            (optional)
        "cost_price_cents": 60     (optional, defaults to product cost)
    }
    """
    try:
        data = request.get_json(silent=True) or {}
        product_id = data.get("product_id")
        if product_id is None:
            return jsonify({"error": "product_id required"}), 400

        movement = ledger_service.adjust_stock(
            product_id,
            movement_type=data.get("type"),
            quantity=data.get("quantity"),
            reason=data.get("reason"),
            actor=g.current_user,
            notes=data.get("notes"),
            cost_price_cents=data.get("cost_price_cents"),
        )
        current_app.logger.info(
            "Stock movement %s (%s %s) on product %s by admin %s",
            movement.id, movement.type, movement.quantity, movement.product_id, g.current_user.id,
        )
        return jsonify({
            "movement": movement.to_dict(),
            "product": movement.product.to_dict(),
        }), 201

    except SaleLifecycleError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record stock movement")
        return jsonify({"error": "Internal server error"}), 500
