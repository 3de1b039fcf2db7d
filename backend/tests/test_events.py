"""Wire shape of realtime events and room naming."""

import pytest

from salesync.realtime.events import (
    EVENT_TYPES,
    BulkApprovalCompleted,
    Notification,
    PendingCountUpdated,
    SaleApprovedBroadcast,
)
from salesync.realtime.rooms import ADMIN_ROOM, employee_room, rooms_for, user_room


class TestRooms:
    def test_names(self):
        assert ADMIN_ROOM == "admin_room"
        assert employee_room(7) == "employee_7_room"
        assert user_room(7) == "user_7_room"

    def test_rooms_for_role(self):
        assert rooms_for(1, "admin") == ["admin_room", "user_1_room"]
        assert rooms_for(2, "employee") == ["employee_2_room", "user_2_room"]


class TestPayloads:
    def test_event_names_are_unique(self):
        names = [cls.event_name for cls in EVENT_TYPES]
        assert len(names) == len(set(names)) == 9

    def test_notification_hide_after_is_optional(self):
        sticky = Notification(title="t", message="m", auto_hide=False).to_payload()
        assert sticky == {"title": "t", "message": "m", "priority": "info", "autoHide": False}

        timed = Notification(title="t", message="m", hide_after=5000, extra={"reason": "x"}).to_payload()
        assert timed["hideAfter"] == 5000
        assert timed["reason"] == "x"

    def test_pending_count_optional_keys(self):
        bare = PendingCountUpdated(room=ADMIN_ROOM, count=3, action="approved").to_payload()
        assert bare == {"count": 3, "action": "approved"}

        full = PendingCountUpdated(room=ADMIN_ROOM, count=3, action="approved", delta=-1, sale_number="SALE-000004")
        assert full.to_payload() == {"count": 3, "action": "approved", "delta": -1, "saleNumber": "SALE-000004"}

    def test_required_fields_cannot_be_omitted(self):
        with pytest.raises(TypeError):
            SaleApprovedBroadcast(room=ADMIN_ROOM, sale_id=1, sale_number="SALE-000001")

    def test_events_are_immutable(self):
        event = BulkApprovalCompleted(
            room=ADMIN_ROOM, total_processed=2, success_count=1, failure_count=1, approved_by="Ada Admin"
        )
        with pytest.raises(AttributeError):
            event.success_count = 2
        assert event.to_payload()["timestamp"].endswith("Z")
