# Overview: Pending aggregate counter; always a fresh COUNT, never cached.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Sale
from ..models.sales import SALE_STATUS_PENDING


# Actions carried by pending_count_updated, with their advisory deltas
ACTION_NEW_SALE = "new_sale"
ACTION_APPROVED = "approved"
ACTION_REJECTED = "rejected"
ACTION_BULK_APPROVED = "bulk_approved"


def count_pending(sold_by_user_id: int | None = None) -> int:
    """
    Number of sales currently awaiting review.

    Recomputed from the sales table on every call so each push reflects the
    committed state at that moment; a dashboard applying the latest value it
    receives converges once activity stops.
    """
    q = db.session.query(func.count(Sale.id)).filter(Sale.status == SALE_STATUS_PENDING)
    if sold_by_user_id is not None:
        q = q.filter(Sale.sold_by_user_id == sold_by_user_id)
    return q.scalar() or 0
