# Overview: Typed realtime events; one frozen dataclass per wire event, serialized at the boundary.

"""
Every realtime message the sales engine can emit is one of the classes
below. Each carries:

- event_name: the fixed Socket.IO event name clients subscribe to
- room:       the logical multicast group it is addressed to
- to_payload(): the wire dict (camelCase keys)

Required wire fields are dataclass fields without defaults, so an event
cannot be constructed with one missing. Clients must tolerate additional
keys; existing keys are never renamed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

from salesync.time_utils import utc_timestamp


PRIORITY_INFO = "info"
PRIORITY_SUCCESS = "success"
PRIORITY_WARNING = "warning"
PRIORITY_CRITICAL = "critical"


@dataclass(frozen=True)
class Notification:
    """UI rendering hints; presentation metadata only."""
    title: str
    message: str
    priority: str = PRIORITY_INFO
    auto_hide: bool = True
    hide_after: int | None = None
    extra: dict = field(default_factory=dict)

    def to_payload(self) -> dict:
        payload = {
            "title": self.title,
            "message": self.message,
            "priority": self.priority,
            "autoHide": self.auto_hide,
        }
        if self.hide_after is not None:
            payload["hideAfter"] = self.hide_after
        payload.update(self.extra)
        return payload


@dataclass(frozen=True)
class RealtimeEvent:
    event_name: ClassVar[str] = ""

    room: str

    def to_payload(self) -> dict:
        raise NotImplementedError


@dataclass(frozen=True)
class NewSalePending(RealtimeEvent):
    """Admins: a sale is waiting for review. Carries the full snapshot."""
    event_name: ClassVar[str] = "new_sale_pending"

    sale: dict
    notification: Notification
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "sale": self.sale,
            "notification": self.notification.to_payload(),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SaleCreated(RealtimeEvent):
    """Employee: acknowledgment that their sale was recorded."""
    event_name: ClassVar[str] = "sale_created_success"

    sale: dict
    notification: Notification
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "sale": self.sale,
            "notification": self.notification.to_payload(),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SaleStatusUpdated(RealtimeEvent):
    """Employee: their sale was approved or rejected."""
    event_name: ClassVar[str] = "sale_status_updated"

    type: str
    sale: dict
    notification: Notification
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "sale": self.sale,
            "notification": self.notification.to_payload(),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SaleApprovedBroadcast(RealtimeEvent):
    """Admins: compact record for pending-list reconciliation."""
    event_name: ClassVar[str] = "sale_approved_broadcast"

    sale_id: int
    sale_number: str
    approved_by: str
    amount_cents: int
    profit_cents: int
    employee_name: str
    product_name: str
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "saleId": self.sale_id,
            "saleNumber": self.sale_number,
            "approvedBy": self.approved_by,
            "amountCents": self.amount_cents,
            "profitCents": self.profit_cents,
            "employeeName": self.employee_name,
            "productName": self.product_name,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SaleRejectedBroadcast(RealtimeEvent):
    event_name: ClassVar[str] = "sale_rejected_broadcast"

    sale_id: int
    sale_number: str
    rejected_by: str
    reason: str
    amount_cents: int
    employee_name: str
    product_name: str
    stock_restored: int
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "saleId": self.sale_id,
            "saleNumber": self.sale_number,
            "rejectedBy": self.rejected_by,
            "reason": self.reason,
            "amountCents": self.amount_cents,
            "employeeName": self.employee_name,
            "productName": self.product_name,
            "stockRestored": self.stock_restored,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class PendingCountUpdated(RealtimeEvent):
    """
    Admins: freshly recomputed pending count.

    Last write wins on the dashboard; delta is advisory only.
    """
    event_name: ClassVar[str] = "pending_count_updated"

    count: int
    action: str
    delta: int | None = None
    sale_number: str | None = None

    def to_payload(self) -> dict:
        payload = {"count": self.count, "action": self.action}
        if self.delta is not None:
            payload["delta"] = self.delta
        if self.sale_number is not None:
            payload["saleNumber"] = self.sale_number
        return payload


@dataclass(frozen=True)
class BulkApprovalCompleted(RealtimeEvent):
    event_name: ClassVar[str] = "bulk_approval_completed"

    total_processed: int
    success_count: int
    failure_count: int
    approved_by: str
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "totalProcessed": self.total_processed,
            "successCount": self.success_count,
            "failureCount": self.failure_count,
            "approvedBy": self.approved_by,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class LowStockAlert(RealtimeEvent):
    """Admins: a sale left a product at or below its minimum stock level."""
    event_name: ClassVar[str] = "low_stock_alert"

    product: dict
    severity: str
    notification: Notification
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "product": self.product,
            "severity": self.severity,
            "notification": self.notification.to_payload(),
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class UserNotice(RealtimeEvent):
    """Single user: system message unrelated to a particular sale."""
    event_name: ClassVar[str] = "user_notification"

    user_id: int
    notification: Notification
    data: dict = field(default_factory=dict)
    timestamp: str = field(default_factory=utc_timestamp)

    def to_payload(self) -> dict:
        return {
            "userId": self.user_id,
            "notification": self.notification.to_payload(),
            "data": self.data,
            "timestamp": self.timestamp,
        }


EVENT_TYPES = (
    NewSalePending,
    SaleCreated,
    SaleStatusUpdated,
    SaleApprovedBroadcast,
    SaleRejectedBroadcast,
    PendingCountUpdated,
    BulkApprovalCompleted,
    LowStockAlert,
    UserNotice,
)
