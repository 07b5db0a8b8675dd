"""Unit tests for ``ProductDjangoRepository``."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.products.ledger import StockLedger
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.unit


@pytest.fixture()
def repo():
    return ProductDjangoRepository()


class TestGetById:
    def test_returns_alive_product(self, repo, product_a):
        assert repo.get_by_id(str(product_a.id)) == product_a

    def test_soft_deleted_product_is_none(self, repo, product_a):
        product_a.delete()
        assert repo.get_by_id(str(product_a.id)) is None

    def test_malformed_id_is_none(self, repo):
        assert repo.get_by_id("not-a-uuid") is None


class TestSave:
    def test_inserts_new_product_with_stock(self, repo):
        product = repo.save(
            Product(name="Ron añejo 700ml", price=Decimal("1250.00"), stock=7)
        )

        stored = Product.objects.get(id=product.id)
        assert stored.stock == 7
        assert stored.price == Decimal("1250.00")

    def test_update_never_overwrites_stock(self, repo, product_a):
        stale = Product.objects.get(id=product_a.id)
        StockLedger().reserve(product_a.id, 4)

        stale.price = Decimal("500.00")
        stale.stock = 999
        repo.save(stale)

        product_a.refresh_from_db()
        assert product_a.price == Decimal("500.00")
        assert product_a.stock == 6
