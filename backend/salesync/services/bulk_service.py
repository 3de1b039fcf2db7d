# Overview: Bulk approval coordinator; one independent transaction per sale, one summary event.

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app

from ..extensions import db
from ..models import User
from ..realtime import router
from ..realtime.events import RealtimeEvent
from .errors import InvalidSaleInput, SaleLifecycleError
from .lifecycle_service import approve_sale
from .pending_service import ACTION_BULK_APPROVED


@dataclass
class BulkApprovalResult:
    """
    Per-sale results plus the batch outbox.

    No cross-sale atomicity: every success in results is committed even when
    later ids in the batch failed.
    """
    results: list[dict]
    total_processed: int
    success_count: int
    failure_count: int
    events: list[RealtimeEvent] = field(default_factory=list)
    pending_action: str = ACTION_BULK_APPROVED
    sale_number: str | None = None

    @property
    def pending_delta(self) -> int:
        return -self.success_count

    def to_dict(self) -> dict:
        return {
            "results": self.results,
            "totalProcessed": self.total_processed,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
        }


def _failure(sale_id, exc: SaleLifecycleError) -> dict:
    return {
        "saleId": sale_id,
        "success": False,
        "error": exc.message,
        "kind": exc.kind,
    }


def bulk_approve_sales(sale_ids, *, actor: User, notes: str | None = None) -> BulkApprovalResult:
    """
    Approve each id in order, continuing past failures.

    Raises:
        InvalidSaleInput: sale_ids is not a non-empty list
    """
    if not isinstance(sale_ids, list) or not sale_ids:
        raise InvalidSaleInput("sale_ids must be a non-empty list", details={"sale_ids": sale_ids})

    results: list[dict] = []
    events: list[RealtimeEvent] = []
    success_count = 0

    for sale_id in sale_ids:
        if isinstance(sale_id, bool) or not isinstance(sale_id, int):
            results.append(_failure(sale_id, InvalidSaleInput("Sale id must be an integer")))
            continue

        try:
            transition = approve_sale(sale_id, actor=actor, notes=notes, bulk=True)
        except SaleLifecycleError as exc:
            results.append(_failure(sale_id, exc))
            continue
        except Exception:
            db.session.rollback()
            current_app.logger.exception("Bulk approval failed for sale %s", sale_id)
            results.append({
                "saleId": sale_id,
                "success": False,
                "error": "Internal server error",
                "kind": "InternalError",
            })
            continue

        success_count += 1
        events.extend(transition.events)
        results.append({"saleId": sale_id, "success": True, "data": transition.sale.to_dict()})

    total = len(sale_ids)
    events.append(
        router.bulk_completed_event(
            total_processed=total,
            success_count=success_count,
            failure_count=total - success_count,
            actor=actor,
        )
    )

    return BulkApprovalResult(
        results=results,
        total_processed=total,
        success_count=success_count,
        failure_count=total - success_count,
        events=events,
    )
