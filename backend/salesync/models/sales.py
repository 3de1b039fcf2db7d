from __future__ import annotations

from ..extensions import db
from salesync.time_utils import to_utc_z


SALE_STATUS_PENDING = "pending"
SALE_STATUS_APPROVED = "approved"
SALE_STATUS_REJECTED = "rejected"
SALE_STATUSES = (SALE_STATUS_PENDING, SALE_STATUS_APPROVED, SALE_STATUS_REJECTED)

PAYMENT_METHODS = ("cash", "card", "mobile", "credit")


class Sale(db.Model):
    """
    A single-product sale recorded by an employee, resolved by an admin.

    LIFECYCLE:
        pending -> approved   (terminal)
        pending -> rejected   (terminal)

    IMMUTABLE AFTER CREATE: qty_sold, unit/total price and cost, profit,
    product_id, sold_by_user_id. Only status, approved_by_user_id,
    approved_at and notes move after creation.

    approved_by_user_id / approved_at record whoever resolved the sale,
    for both approval and rejection.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint("sale_number", name="uq_sales_sale_number"),
        db.CheckConstraint("qty_sold > 0", name="ck_sales_qty_positive"),
        db.Index("ix_sales_status_created", "status", "created_at"),
        db.Index("ix_sales_sold_by_status", "sold_by_user_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable number (e.g., "SALE-000042"), derived from document_sequences
    sale_number = db.Column(db.String(32), nullable=False)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sold_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    # Economics, frozen at creation (all amounts in cents)
    qty_sold = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)
    profit_cents = db.Column(db.Integer, nullable=False)

    status = db.Column(db.String(16), nullable=False, default=SALE_STATUS_PENDING, index=True)
    payment_method = db.Column(db.String(16), nullable=False, default="cash")

    customer_name = db.Column(db.String(255), nullable=True)
    customer_phone = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    employee_notes = db.Column(db.Text, nullable=True)

    # Timestamps
    sales_date = db.Column(db.DateTime(timezone=True), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    product = db.relationship("Product", backref=db.backref("sales", lazy=True))
    sold_by = db.relationship("User", foreign_keys=[sold_by_user_id], backref=db.backref("sales_made", lazy=True))
    approved_by = db.relationship("User", foreign_keys=[approved_by_user_id])
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Sale id={self.id} number={self.sale_number!r} status={self.status}>"

    @property
    def is_pending(self) -> bool:
        return self.status == SALE_STATUS_PENDING

    def to_dict(self) -> dict:
        product = self.product
        return {
            "id": self.id,
            "sale_number": self.sale_number,
            "status": self.status,
            "qty_sold": self.qty_sold,
            "unit_price_cents": self.unit_price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "total_price_cents": self.total_price_cents,
            "total_cost_cents": self.total_cost_cents,
            "profit_cents": self.profit_cents,
            "payment_method": self.payment_method,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "notes": self.notes,
            "employee_notes": self.employee_notes,
            "sales_date": to_utc_z(self.sales_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "approved_at": to_utc_z(self.approved_at),
            "product": {
                "id": product.id,
                "name": product.name,
                "category": product.category.name if product.category else None,
                "qty_in_stock": product.qty_in_stock,
            } if product else None,
            "sold_by": self.sold_by.to_summary() if self.sold_by else None,
            "approved_by": self.approved_by.to_summary() if self.approved_by else None,
            "version_id": self.version_id,
        }
