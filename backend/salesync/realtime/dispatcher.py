# Overview: Post-commit delivery of lifecycle outboxes and pending-count pushes.

"""
Delivery guarantees (at-most-once, best effort):

- Called only after the lifecycle transaction has committed; a failure here
  can never roll back or change the outcome the caller already has.
- Each event is published independently. A failed publish is logged and
  skipped; the remaining events are still attempted.
- No retries, no persistence, no replay for offline clients.
- The pending count is recomputed from the database for every push, so a
  dropped push is corrected by the next one.
"""

from __future__ import annotations

from typing import Iterable

from flask import current_app

from .events import PendingCountUpdated, RealtimeEvent
from .publisher import Publisher
from .rooms import ADMIN_ROOM


EXTENSION_KEY = "salesync.dispatcher"


class NotificationDispatcher:
    def __init__(self, publisher: Publisher):
        self.publisher = publisher

    def publish(self, event: RealtimeEvent) -> bool:
        try:
            self.publisher.publish(event.room, event.event_name, event.to_payload())
            return True
        except Exception:
            current_app.logger.exception(
                "Realtime delivery failed: event=%s room=%s", event.event_name, event.room
            )
            return False

    def deliver(self, events: Iterable[RealtimeEvent]) -> int:
        """Publish each event; returns how many were handed to the transport."""
        delivered = 0
        for event in events:
            if self.publish(event):
                delivered += 1
        return delivered

    def publish_pending_count(
        self,
        action: str,
        delta: int | None = None,
        sale_number: str | None = None,
    ) -> int | None:
        """Recompute the pending count and push it to admins. None on failure."""
        from ..services import pending_service

        try:
            count = pending_service.count_pending()
        except Exception:
            current_app.logger.exception("Pending count recompute failed (action=%s)", action)
            return None

        event = PendingCountUpdated(
            room=ADMIN_ROOM,
            count=count,
            action=action,
            delta=delta,
            sale_number=sale_number,
        )
        if not self.publish(event):
            return None
        return count

    def dispatch(self, transition) -> int | None:
        """
        Deliver a committed transition's outbox, then push the pending count.

        Accepts anything carrying events, pending_action, pending_delta and
        sale_number (SaleTransition, BulkApprovalResult).
        """
        self.deliver(transition.events)
        if not transition.pending_action:
            return None
        return self.publish_pending_count(
            transition.pending_action,
            delta=transition.pending_delta,
            sale_number=transition.sale_number,
        )


def init_dispatcher(app, publisher: Publisher) -> NotificationDispatcher:
    dispatcher = NotificationDispatcher(publisher)
    app.extensions[EXTENSION_KEY] = dispatcher
    return dispatcher


def get_dispatcher() -> NotificationDispatcher:
    return current_app.extensions[EXTENSION_KEY]
