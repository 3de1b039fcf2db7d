"""
Notification dispatcher tests.

Delivery is post-commit and best effort: failures are logged and swallowed,
never surfacing to the caller or undoing a committed transition.
"""

import logging

from salesync.models import Sale
from salesync.realtime import InMemoryPublisher, NotificationDispatcher, get_dispatcher
from salesync.realtime.events import Notification, UserNotice
from salesync.realtime.rooms import ADMIN_ROOM, employee_room, user_room
from salesync.services import lifecycle_service, pending_service


class ExplodingPublisher:
    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.sent = []

    def publish(self, room, event, payload):
        if self.fail_on is None or event == self.fail_on:
            raise ConnectionError("socket server unreachable")
        self.sent.append((room, event, payload))


class TestDispatch:
    def test_create_delivers_outbox_then_pending_count(self, product, employee, publisher):
        transition = lifecycle_service.create_sale(product.id, 2, actor=employee)

        count = get_dispatcher().dispatch(transition)

        assert count == 1
        assert [d.event for d in publisher.deliveries] == [
            "new_sale_pending",
            "sale_created_success",
            "pending_count_updated",
        ]
        pending = publisher.named("pending_count_updated")[0]
        assert pending.room == ADMIN_ROOM
        assert pending.payload == {"count": 1, "action": "new_sale", "delta": 1, "saleNumber": "SALE-000001"}

    def test_approve_scenario(self, product, employee, admin, publisher):
        created = lifecycle_service.create_sale(product.id, 2, actor=employee)
        publisher.clear()

        transition = lifecycle_service.approve_sale(created.sale.id, actor=admin)
        get_dispatcher().dispatch(transition)

        to_employee = publisher.to_room(employee_room(employee.id))
        assert [d.event for d in to_employee] == ["sale_status_updated"]
        assert to_employee[0].payload["type"] == "approved"
        assert to_employee[0].payload["notification"]["profitCents"] == 80

        broadcasts = publisher.named("sale_approved_broadcast")
        assert len(broadcasts) == 1
        assert broadcasts[0].room == ADMIN_ROOM

        pending = publisher.named("pending_count_updated")[0].payload
        assert pending["count"] == 0
        assert pending["action"] == "approved"
        assert pending["delta"] == -1

    def test_pending_count_matches_database_after_every_push(self, product, employee, admin, publisher):
        dispatcher = get_dispatcher()
        a = lifecycle_service.create_sale(product.id, 1, actor=employee)
        dispatcher.dispatch(a)
        b = lifecycle_service.create_sale(product.id, 1, actor=employee)
        dispatcher.dispatch(b)
        dispatcher.dispatch(lifecycle_service.reject_sale(a.sale.id, actor=admin, reason="typo"))

        pushes = [d.payload["count"] for d in publisher.named("pending_count_updated")]
        assert pushes == [1, 2, 1]
        assert pushes[-1] == pending_service.count_pending()


class TestFailureIsolation:
    def test_publish_failure_is_logged_and_swallowed(self, app, product, employee, caplog):
        transition = lifecycle_service.create_sale(product.id, 2, actor=employee)
        dispatcher = NotificationDispatcher(ExplodingPublisher())

        with caplog.at_level(logging.ERROR):
            count = dispatcher.dispatch(transition)

        assert count is None
        assert "Realtime delivery failed" in caplog.text
        assert transition.sale.id is not None

    def test_one_failed_event_does_not_block_the_rest(self, product, employee):
        transition = lifecycle_service.create_sale(product.id, 2, actor=employee)
        recorder = ExplodingPublisher(fail_on="new_sale_pending")

        count = NotificationDispatcher(recorder).dispatch(transition)

        assert count == 1
        assert [event for _, event, _ in recorder.sent] == ["sale_created_success", "pending_count_updated"]

    def test_committed_transition_survives_delivery_failure(self, product, employee, admin, fresh):
        created = lifecycle_service.create_sale(product.id, 2, actor=employee)
        transition = lifecycle_service.approve_sale(created.sale.id, actor=admin)

        NotificationDispatcher(ExplodingPublisher()).dispatch(transition)

        assert fresh(Sale, created.sale.id).status == "approved"

    def test_recompute_failure_returns_none(self, db_session, monkeypatch, caplog):
        def broken():
            raise RuntimeError("database gone")

        monkeypatch.setattr(pending_service, "count_pending", broken)
        recorder = InMemoryPublisher()

        with caplog.at_level(logging.ERROR):
            assert NotificationDispatcher(recorder).publish_pending_count("approved", delta=-1) is None

        assert recorder.deliveries == []
        assert "Pending count recompute failed" in caplog.text


class TestDeliver:
    def test_user_notice_goes_to_user_room(self, db_session):
        recorder = InMemoryPublisher()
        notice = UserNotice(
            room=user_room(9),
            user_id=9,
            notification=Notification(title="Hi", message="Shift starts at 9"),
        )

        assert NotificationDispatcher(recorder).deliver([notice]) == 1
        delivery = recorder.deliveries[0]
        assert delivery.room == "user_9_room"
        assert delivery.event == "user_notification"
        assert delivery.payload["notification"]["title"] == "Hi"
