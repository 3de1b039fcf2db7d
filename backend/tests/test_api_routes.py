"""Auth, stock movement, notification and health endpoints."""

from salesync.models import Product
from salesync.services import ledger_service, lifecycle_service


PASSWORD = "Password123!"


class TestAuthRoutes:
    def test_login_and_me(self, client, employee):
        resp = client.post("/api/auth/login", json={"username": "employee", "password": PASSWORD})
        assert resp.status_code == 200
        token = resp.json["token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json["user"]["role"] == "employee"

    def test_login_by_email(self, client, admin):
        resp = client.post("/api/auth/login", json={"email": "admin@salesync.local", "password": PASSWORD})
        assert resp.status_code == 200

    def test_bad_credentials(self, client, employee):
        resp = client.post("/api/auth/login", json={"username": "employee", "password": "nope"})
        assert resp.status_code == 401

    def test_missing_credentials(self, client, db_session):
        assert client.post("/api/auth/login", json={}).status_code == 400

    def test_inactive_user_cannot_login(self, client, employee, db_session):
        employee.is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"username": "employee", "password": PASSWORD})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, employee_headers):
        assert client.post("/api/auth/logout", headers=employee_headers).status_code == 200
        assert client.get("/api/auth/me", headers=employee_headers).status_code == 401


class TestStockMovementRoutes:
    def test_manual_restock(self, client, admin_headers, product, fresh):
        resp = client.post(
            "/api/stock-movements/",
            json={"product_id": product.id, "type": "in", "quantity": 10, "reason": "Restock"},
            headers=admin_headers,
        )

        assert resp.status_code == 201
        assert resp.json["movement"]["type"] == "in"
        assert resp.json["product"]["qty_in_stock"] == 15
        assert fresh(Product, product.id).qty_in_stock == 15

    def test_write_off_beyond_stock(self, client, admin_headers, product):
        resp = client.post(
            "/api/stock-movements/",
            json={"product_id": product.id, "type": "out", "quantity": 50, "reason": "Lost"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["kind"] == "InsufficientStock"

    def test_history(self, client, admin_headers, employee, product, admin):
        created = lifecycle_service.create_sale(product.id, 2, actor=employee)
        lifecycle_service.reject_sale(created.sale.id, actor=admin, reason="damaged")

        resp = client.get(f"/api/stock-movements/?sale_id={created.sale.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert [m["type"] for m in resp.json["movements"]] == ["in", "out"]

    def test_employee_sees_only_own_movements(self, client, employee_headers, employee, product, admin):
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        ledger_service.adjust_stock(product.id, movement_type="in", quantity=3, reason="Restock", actor=admin)

        resp = client.get(f"/api/stock-movements/?user_id={admin.id}", headers=employee_headers)

        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert resp.json["movements"][0]["recorded_by_user_id"] == employee.id

    def test_admin_filters_by_user_and_date(self, client, admin_headers, employee, product, admin):
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        ledger_service.adjust_stock(product.id, movement_type="in", quantity=3, reason="Restock", actor=admin)

        by_admin = client.get(f"/api/stock-movements/?user_id={admin.id}", headers=admin_headers).json
        assert [m["type"] for m in by_admin["movements"]] == ["in"]

        future = client.get("/api/stock-movements/?start_date=2999-01-01T00:00:00Z", headers=admin_headers).json
        assert future["count"] == 0

    def test_bad_date_is_400(self, client, admin_headers):
        resp = client.get("/api/stock-movements/?end_date=yesterday", headers=admin_headers)
        assert resp.status_code == 400

    def test_employee_cannot_adjust(self, client, employee_headers, product):
        resp = client.post(
            "/api/stock-movements/",
            json={"product_id": product.id, "type": "in", "quantity": 1, "reason": "Found one"},
            headers=employee_headers,
        )
        assert resp.status_code == 403

    def test_bad_adjustment_kind(self, client, admin_headers, product):
        resp = client.post(
            "/api/stock-movements/",
            json={"product_id": product.id, "type": "sideways", "quantity": 1, "reason": "x"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert resp.json["kind"] == "InvalidMovementInput"

    def test_product_history(self, client, employee_headers, employee, product):
        lifecycle_service.create_sale(product.id, 2, actor=employee)

        resp = client.get(f"/api/stock-movements/product/{product.id}", headers=employee_headers)

        assert resp.status_code == 200
        assert [(m["type"], m["quantity"]) for m in resp.json["movements"]] == [("out", 2)]
        assert client.get("/api/stock-movements/product/404", headers=employee_headers).status_code == 404


class TestNotificationRoutes:
    def test_push_to_user_room(self, client, admin_headers, employee, publisher):
        resp = client.post(
            f"/api/notifications/users/{employee.id}",
            json={"title": "Shift change", "message": "Start at 10", "priority": "warning", "data": {"shift": 2}},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.json["delivered"] is True
        delivery = publisher.deliveries[0]
        assert delivery.room == f"user_{employee.id}_room"
        assert delivery.event == "user_notification"
        assert delivery.payload["data"] == {"shift": 2}
        assert delivery.payload["notification"]["priority"] == "warning"

    def test_validation(self, client, admin_headers, employee):
        url = f"/api/notifications/users/{employee.id}"
        assert client.post(url, json={"title": "x"}, headers=admin_headers).status_code == 400
        assert client.post(
            url, json={"title": "x", "message": "y", "priority": "urgent"}, headers=admin_headers
        ).status_code == 400
        assert client.post(
            "/api/notifications/users/999", json={"title": "x", "message": "y"}, headers=admin_headers
        ).status_code == 404


class TestHealth:
    def test_health(self, client, db_session):
        resp = client.get("/api/system/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["checks"]["realtime"]["transport"] == "socketio"

    def test_cors_header_for_allowed_origin(self, client, db_session):
        resp = client.get("/api/system/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"

        other = client.get("/api/system/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in other.headers
