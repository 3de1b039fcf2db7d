from __future__ import annotations

from ..extensions import db
from salesync.time_utils import to_utc_z


MOVEMENT_IN = "in"
MOVEMENT_OUT = "out"
MOVEMENT_TYPES = (MOVEMENT_IN, MOVEMENT_OUT)


class StockMovement(db.Model):
    """
    Append-only stock audit trail.

    One row per stock-changing event:
    - "out" when a sale is created (stock reserved while pending)
    - "in"  when a sale is rejected (stock restored) or stock is received

    Rows are written in the same transaction as the qty_in_stock change they
    describe and are never updated or deleted.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_stock_movements_quantity_positive"),
        db.Index("ix_stock_movements_product_date", "product_id", "movement_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Sale that caused this movement, when there is one
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    type = db.Column(db.String(8), nullable=False, index=True)
    quantity = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=True)

    reason = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    # Business time vs. system time
    movement_date = db.Column(db.DateTime(timezone=True), nullable=False, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", backref=db.backref("stock_movements", lazy=True))
    recorded_by = db.relationship("User", foreign_keys=[recorded_by_user_id])
    sale = db.relationship("Sale", backref=db.backref("stock_movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "recorded_by_user_id": self.recorded_by_user_id,
            "sale_id": self.sale_id,
            "type": self.type,
            "quantity": self.quantity,
            "cost_price_cents": self.cost_price_cents,
            "reason": self.reason,
            "notes": self.notes,
            "movement_date": to_utc_z(self.movement_date),
            "created_at": to_utc_z(self.created_at),
        }
