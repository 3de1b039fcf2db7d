from salesync.services import lifecycle_service, pending_service


class TestCountPending:
    def test_empty(self, db_session):
        assert pending_service.count_pending() == 0

    def test_tracks_every_transition(self, product, employee, admin):
        a = lifecycle_service.create_sale(product.id, 1, actor=employee)
        b = lifecycle_service.create_sale(product.id, 1, actor=employee)
        c = lifecycle_service.create_sale(product.id, 1, actor=employee)
        assert pending_service.count_pending() == 3

        lifecycle_service.approve_sale(a.sale.id, actor=admin)
        assert pending_service.count_pending() == 2

        lifecycle_service.reject_sale(b.sale.id, actor=admin, reason="damaged")
        assert pending_service.count_pending() == 1

        lifecycle_service.approve_sale(c.sale.id, actor=admin)
        assert pending_service.count_pending() == 0

    def test_per_employee(self, product, employee, other_employee):
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        lifecycle_service.create_sale(product.id, 1, actor=employee)
        lifecycle_service.create_sale(product.id, 1, actor=other_employee)

        assert pending_service.count_pending(employee.id) == 2
        assert pending_service.count_pending(other_employee.id) == 1
        assert pending_service.count_pending() == 3
