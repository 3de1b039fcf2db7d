"""
Socket.IO transport tests.

Uses Flask-SocketIO test clients against the real SocketIOPublisher, so
every assertion here is about what a connected client actually receives.
"""

import pytest

from salesync.extensions import socketio
from salesync.models import Product
from salesync.models.auth import ROLE_ADMIN, ROLE_EMPLOYEE
from salesync.realtime import get_dispatcher
from salesync.services import lifecycle_service, session_service


def received(sio, event):
    return [msg["args"][0] for msg in sio.get_received() if msg["name"] == event]


def by_name(messages):
    grouped = {}
    for msg in messages:
        grouped.setdefault(msg["name"], []).append(msg["args"][0])
    return grouped


# =============================================================================
# CONNECTION / ROOMS
# =============================================================================


class TestConnection:
    def test_refused_without_token(self, app, client, db_session):
        sio = socketio.test_client(app, flask_test_client=client)
        assert not sio.is_connected()

    def test_refused_with_bad_token(self, app, client, db_session):
        sio = socketio.test_client(app, auth={"token": "forged"}, flask_test_client=client)
        assert not sio.is_connected()

    def test_admin_join(self, app, client, admin, admin_token, employee, product):
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        sio = socketio.test_client(app, auth={"token": admin_token}, flask_test_client=client)
        assert sio.is_connected()

        ack = sio.emit("join_sales_room", {"userId": admin.id, "role": ROLE_ADMIN}, callback=True)

        assert ack == {"success": True, "rooms": ["admin_room", f"user_{admin.id}_room"]}
        messages = by_name(sio.get_received())
        assert messages["initial_pending_count"][0]["count"] == 1
        assert messages["sales_room_joined"][0]["role"] == ROLE_ADMIN
        assert "admin_online" not in messages
        sio.disconnect()

    def test_employee_join_gets_recent_sales(self, app, client, employee, employee_token, product):
        for _ in range(3):
            lifecycle_service.create_sale(product.id, 1, actor=employee)
        sio = socketio.test_client(app, auth={"token": employee_token}, flask_test_client=client)

        ack = sio.emit("join_sales_room", {"userId": employee.id, "role": ROLE_EMPLOYEE}, callback=True)

        assert ack["success"] is True
        assert ack["rooms"] == [f"employee_{employee.id}_room", f"user_{employee.id}_room"]
        recent = received(sio, "recent_sales_status")[0]["sales"]
        assert [s["saleNumber"] for s in recent] == ["SALE-000003", "SALE-000002", "SALE-000001"]
        sio.disconnect()

    def test_join_as_someone_else_is_refused(self, app, client, employee, employee_token, admin):
        sio = socketio.test_client(app, auth={"token": employee_token}, flask_test_client=client)

        ack = sio.emit("join_sales_room", {"userId": admin.id, "role": ROLE_ADMIN}, callback=True)

        assert ack["success"] is False
        assert ack["kind"] == "IdentityMismatch"
        assert received(sio, "sales_room_joined") == []
        sio.disconnect()

    def test_other_admins_see_online_and_offline(self, app, client, admin_socket, second_admin):
        _, token = session_service.create_session(second_admin.id)
        other = socketio.test_client(app, auth={"token": token}, flask_test_client=client)
        other.emit("join_sales_room", {"userId": second_admin.id, "role": ROLE_ADMIN}, callback=True)

        online = received(admin_socket, "admin_online")
        assert len(online) == 1
        assert online[0]["adminId"] == second_admin.id

        other.disconnect()
        offline = received(admin_socket, "admin_offline")
        assert offline[0]["adminName"] == "Bea Boss"

    def test_leave_stops_delivery(self, admin_socket, employee, product):
        ack = admin_socket.emit("leave_sales_room", {}, callback=True)
        assert ack == {"success": True}

        get_dispatcher().dispatch(lifecycle_service.create_sale(product.id, 1, actor=employee))

        assert received(admin_socket, "new_sale_pending") == []


# =============================================================================
# LIFECYCLE OVER THE SOCKET
# =============================================================================


class TestRealtimeLifecycle:
    def test_create_fans_out(self, admin_socket, employee_socket, product, fresh):
        ack = employee_socket.emit(
            "create_sale_realtime", {"productId": product.id, "qtySold": 2}, callback=True
        )

        assert ack["success"] is True
        assert ack["data"]["sale_number"] == "SALE-000001"
        assert ack["pendingCount"] == 1
        assert fresh(Product, product.id).qty_in_stock == 3

        admin_msgs = by_name(admin_socket.get_received())
        assert admin_msgs["new_sale_pending"][0]["sale"]["totalPriceCents"] == 200
        assert admin_msgs["new_sale_pending"][0]["notification"]["priority"] == "info"
        assert admin_msgs["pending_count_updated"][0] == {
            "count": 1, "action": "new_sale", "delta": 1, "saleNumber": "SALE-000001",
        }

        employee_msgs = by_name(employee_socket.get_received())
        assert employee_msgs["sale_created_success"][0]["notification"]["priority"] == "success"
        assert "new_sale_pending" not in employee_msgs

    def test_create_failure_is_reported_in_ack(self, employee_socket, product):
        ack = employee_socket.emit("create_sale_realtime", {"productId": product.id, "qtySold": 99}, callback=True)

        assert ack["success"] is False
        assert ack["kind"] == "InsufficientStock"
        assert ack["details"] == {"available": 5, "requested": 99}

    def test_approve_reaches_only_the_owner(self, app, client, admin_socket, employee_socket, product, employee, other_employee):
        _, token = session_service.create_session(other_employee.id)
        bystander = socketio.test_client(app, auth={"token": token}, flask_test_client=client)
        bystander.emit("join_sales_room", {"userId": other_employee.id, "role": ROLE_EMPLOYEE}, callback=True)
        bystander.get_received()

        sale = lifecycle_service.create_sale(product.id, 2, actor=employee).sale
        ack = admin_socket.emit("approve_sale_realtime", {"saleId": sale.id}, callback=True)

        assert ack["success"] is True
        assert ack["pendingCount"] == 0

        updates = received(employee_socket, "sale_status_updated")
        assert len(updates) == 1
        assert updates[0]["type"] == "approved"
        assert updates[0]["sale"]["approvedBy"]["name"] == "Ada Admin"

        admin_msgs = by_name(admin_socket.get_received())
        assert admin_msgs["sale_approved_broadcast"][0]["profitCents"] == 80
        assert admin_msgs["pending_count_updated"][0]["action"] == "approved"

        assert bystander.get_received() == []
        bystander.disconnect()

    def test_reject(self, admin_socket, employee_socket, product, employee, fresh):
        sale = lifecycle_service.create_sale(product.id, 2, actor=employee).sale

        ack = admin_socket.emit("reject_sale_realtime", {"saleId": sale.id, "reason": "damaged"}, callback=True)

        assert ack["success"] is True
        assert ack["stockRestored"] == 2
        assert fresh(Product, product.id).qty_in_stock == 5

        update = received(employee_socket, "sale_status_updated")[0]
        assert update["type"] == "rejected"
        assert update["notification"]["reason"] == "damaged"
        assert update["notification"]["stockRestored"] == 2

        broadcast = received(admin_socket, "sale_rejected_broadcast")[0]
        assert broadcast["stockRestored"] == 2

    def test_reject_without_reason(self, admin_socket, product, employee):
        sale = lifecycle_service.create_sale(product.id, 2, actor=employee).sale

        ack = admin_socket.emit("reject_sale_realtime", {"saleId": sale.id, "reason": "  "}, callback=True)

        assert ack["success"] is False
        assert ack["kind"] == "MissingReason"
        assert received(admin_socket, "sale_rejected_broadcast") == []

    @pytest.mark.parametrize(
        "event,payload",
        [
            ("approve_sale_realtime", {"saleId": 1}),
            ("reject_sale_realtime", {"saleId": 1, "reason": "x"}),
            ("bulk_approve_sales", {"saleIds": [1]}),
        ],
    )
    def test_employee_cannot_resolve(self, employee_socket, event, payload):
        ack = employee_socket.emit(event, payload, callback=True)
        assert ack["success"] is False
        assert ack["kind"] == "PermissionDenied"

    def test_bulk(self, admin_socket, employee_socket, product, employee):
        ids = [lifecycle_service.create_sale(product.id, 1, actor=employee).sale.id for _ in range(2)]

        ack = admin_socket.emit("bulk_approve_sales", {"saleIds": ids + [777]}, callback=True)

        assert ack["success"] is True
        assert ack["data"]["successCount"] == 2
        assert ack["data"]["failureCount"] == 1
        assert ack["pendingCount"] == 0

        assert len(received(employee_socket, "sale_status_updated")) == 2

        admin_msgs = by_name(admin_socket.get_received())
        assert len(admin_msgs["bulk_approval_completed"]) == 1
        assert admin_msgs["bulk_approval_completed"][0]["totalProcessed"] == 3
        assert admin_msgs["pending_count_updated"] == [{"count": 0, "action": "bulk_approved", "delta": -2}]
        assert "sale_approved_broadcast" not in admin_msgs


class TestSalesUpdate:
    def test_admin_gets_pending(self, admin_socket, product, employee, admin):
        a = lifecycle_service.create_sale(product.id, 1, actor=employee)
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        lifecycle_service.approve_sale(a.sale.id, actor=admin)

        ack = admin_socket.emit("request_sales_update", {}, callback=True)

        assert ack == {"success": True, "count": 1}
        update = received(admin_socket, "sales_update")[0]
        assert update["pendingCount"] == 1
        assert [s["status"] for s in update["sales"]] == ["pending"]

    def test_employee_gets_own(self, employee_socket, product, employee, other_employee):
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        lifecycle_service.create_sale(product.id, 1, actor=other_employee)

        ack = employee_socket.emit("request_sales_update", {"limit": 10}, callback=True)

        assert ack["count"] == 1
        update = received(employee_socket, "sales_update")[0]
        assert update["sales"][0]["soldBy"]["id"] == employee.id
