"""Integration tests for administrative order changes.

Covers PUT/PATCH /orders/{id}/, PUT /orders/{id}/status/ and DELETE.
"""

from __future__ import annotations

import pytest

from modules.orders.models import Order

pytestmark = pytest.mark.integration


@pytest.fixture()
def order(order_service, place_dto, product_a, product_b):
    return order_service.place_order(place_dto([(product_a, 3), (product_b, 2)])).order


def _url(order, suffix=""):
    return f"/api/v1/orders/{order.id}/{suffix}"


class TestStatusEndpoint:
    def test_cancel_restores_stock(self, admin_client, order, product_a, product_b):
        response = admin_client.put(
            _url(order, "status/"), {"status": "cancelled"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "cancelled"
        assert data["stock_restored"] is True
        assert data["warnings"] == []
        product_a.refresh_from_db()
        product_b.refresh_from_db()
        assert (product_a.stock, product_b.stock) == (10, 5)

    def test_repeated_release_does_not_credit_twice(
        self, admin_client, order, product_a
    ):
        admin_client.put(_url(order, "status/"), {"status": "cancelled"}, format="json")
        response = admin_client.put(
            _url(order, "status/"), {"status": "refund"}, format="json"
        )

        assert response.json()["stock_restored"] is False
        product_a.refresh_from_db()
        assert product_a.stock == 10

    def test_shipping_details_with_status(self, admin_client, order):
        response = admin_client.put(
            _url(order, "status/"),
            {
                "status": "shipped",
                "carrier": "Caribe Express",
                "tracking_number": "CE-123",
                "notes": "Salió del almacén",
            },
            format="json",
        )

        data = response.json()
        assert data["carrier"] == "Caribe Express"
        assert data["tracking_number"] == "CE-123"
        assert data["status_history"][-1]["notes"] == "Salió del almacén"

    def test_invalid_status_returns_400(self, admin_client, order):
        response = admin_client.put(
            _url(order, "status/"), {"status": "lost"}, format="json"
        )
        assert response.status_code == 400

    def test_missing_status_returns_400(self, admin_client, order):
        response = admin_client.put(_url(order, "status/"), {}, format="json")
        assert response.status_code == 400

    def test_unknown_order_returns_404(self, admin_client):
        response = admin_client.put(
            "/api/v1/orders/555555/status/", {"status": "paid"}, format="json"
        )
        assert response.status_code == 404

    def test_customer_cannot_change_status(self, customer_client, order):
        response = customer_client.put(
            _url(order, "status/"), {"status": "cancelled"}, format="json"
        )
        assert response.status_code == 403


class TestUpdateEndpoint:
    def test_patch_allowed_fields(self, admin_client, order):
        response = admin_client.patch(
            _url(order),
            {"internal_notes": "Llamar antes", "shipping_city": "Santiago"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["internal_notes"] == "Llamar antes"
        assert data["shipping_city"] == "Santiago"

    def test_put_with_status_restores_stock(self, admin_client, order, product_b):
        response = admin_client.put(
            _url(order), {"status": "return"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["stock_restored"] is True
        product_b.refresh_from_db()
        assert product_b.stock == 5

    def test_only_unknown_fields_returns_400(self, admin_client, order):
        response = admin_client.patch(_url(order), {"total": "0.01"}, format="json")

        assert response.status_code == 400
        order.refresh_from_db()
        assert str(order.total) == "1601.00"

    def test_customer_cannot_update(self, customer_client, order):
        response = customer_client.patch(
            _url(order), {"carrier": "x"}, format="json"
        )
        assert response.status_code == 403


class TestDeleteEndpoint:
    def test_soft_delete_keeps_row_and_stock(self, admin_client, order, product_a):
        response = admin_client.delete(_url(order))

        assert response.status_code == 204
        assert Order.objects.dead().filter(id=order.id).exists()
        product_a.refresh_from_db()
        assert product_a.stock == 7
        assert admin_client.get(_url(order)).status_code == 404

    def test_delete_unknown_returns_404(self, admin_client):
        assert admin_client.delete("/api/v1/orders/777777/").status_code == 404

    def test_customer_cannot_delete(self, customer_client, order):
        assert customer_client.delete(_url(order)).status_code == 403
