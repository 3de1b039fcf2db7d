from __future__ import annotations

from ..extensions import db
from salesync.time_utils import to_utc_z


STOCK_OUT = "out_of_stock"
STOCK_CRITICAL = "critical"
STOCK_LOW = "low"
STOCK_OK = "ok"


class Category(db.Model):
    """Product grouping. Only the name travels in sale payloads."""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
        }


class Product(db.Model):
    """
    Shared, mutable catalog entry that sales are recorded against.

    STOCK: qty_in_stock is authoritative. It is decremented when a sale is
    created (before approval) and restored when the sale is rejected. It must
    never go negative.

    AGGREGATES: total_sales_cents / total_profit_cents / last_sale_date only
    move on approval. Rejected and pending sales never touch them.

    PRICING: price_cents and cost_price_cents are snapshotted into each Sale
    at creation; later price edits do not affect existing sales.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("qty_in_stock >= 0", name="ck_products_qty_non_negative"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=True, unique=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)
    cost_price_cents = db.Column(db.Integer, nullable=False)

    qty_in_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=10)

    # Running aggregates (approved sales only)
    total_sales_cents = db.Column(db.Integer, nullable=False, default=0)
    total_profit_cents = db.Column(db.Integer, nullable=False, default=0)
    last_sale_date = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    category = db.relationship("Category", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} qty_in_stock={self.qty_in_stock}>"

    @property
    def stock_level(self) -> str:
        """
        Classify current stock against min_stock_level.

        out_of_stock: nothing left
        critical:     at or below half the minimum
        low:          at or below the minimum
        ok:           above the minimum
        """
        qty = self.qty_in_stock or 0
        minimum = self.min_stock_level or 0
        if qty <= 0:
            return STOCK_OUT
        if qty <= minimum // 2:
            return STOCK_CRITICAL
        if qty <= minimum:
            return STOCK_LOW
        return STOCK_OK

    @property
    def is_low_stock(self) -> bool:
        return self.stock_level != STOCK_OK

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "category_id": self.category_id,
            "category": self.category.name if self.category else None,
            "price_cents": self.price_cents,
            "cost_price_cents": self.cost_price_cents,
            "qty_in_stock": self.qty_in_stock,
            "min_stock_level": self.min_stock_level,
            "stock_level": self.stock_level,
            "total_sales_cents": self.total_sales_cents,
            "total_profit_cents": self.total_profit_cents,
            "last_sale_date": to_utc_z(self.last_sale_date),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
