from __future__ import annotations

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.ledger import StockLedger
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_user():
    return User.objects.create_user(
        username="maria",
        password="testpass123",
        email="Maria@Example.com",
        first_name="María",
        last_name="Pérez",
    )


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="admin", password="adminpass123", is_staff=True
    )


@pytest.fixture()
def customer_client(customer_user):
    client = APIClient()
    client.force_authenticate(user=customer_user)
    return client


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_product():
    def _make(name="Café 1lb", price="450.00", stock=10, **extra) -> Product:
        return Product.objects.create(
            name=name, price=Decimal(price), stock=stock, **extra
        )

    return _make


@pytest.fixture()
def product_a(make_product):
    return make_product(name="Café 1lb", price="450.00", stock=10)


@pytest.fixture()
def product_b(make_product):
    return make_product(name="Chocolate", price="125.50", stock=5)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@pytest.fixture()
def ledger():
    return StockLedger()


@pytest.fixture()
def order_service(ledger):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        stock_ledger=ledger,
        cart_repository=CartDjangoRepository(),
    )


@pytest.fixture()
def place_dto():
    """Build a placement DTO; ``lines`` is a list of ``(product, quantity)``."""

    def _build(lines, user=None, **overrides) -> PlaceOrderDTO:
        data = {
            "items": [
                PlaceOrderItemDTO(product_id=product.id, quantity=quantity)
                for product, quantity in lines
            ],
            "user_id": user.pk if user else None,
            "shipping_street": "Calle El Conde 12",
            "shipping_city": "Santo Domingo",
            "shipping_sector": "Zona Colonial",
            "skip_notification": True,
        }
        if user is None:
            data["customer_email"] = "guest@example.com"
        data.update(overrides)
        return PlaceOrderDTO(**data)

    return _build
