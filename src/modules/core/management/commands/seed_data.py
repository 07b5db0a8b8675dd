from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.orders.constants import OrderStatus
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.exceptions import InsufficientStock
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.products.ledger import StockLedger
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository

SEED_PRODUCTS = [
    ("Café Santo Domingo 1lb", "Alimentos", Decimal("450.00"), 120),
    ("Ron añejo 700ml", "Bebidas", Decimal("1250.00"), 40),
    ("Mamajuana artesanal", "Bebidas", Decimal("980.00"), 25),
    ("Chocolate orgánico", "Alimentos", Decimal("320.00"), 80),
    ("Tabaco premium (caja 10)", "Tabaco", Decimal("3500.00"), 10),
    ("Larimar colgante", "Joyería", Decimal("2800.00"), 15),
    ("Ámbar pulsera", "Joyería", Decimal("1900.00"), 20),
    ("Sombrero de guano", "Accesorios", Decimal("650.00"), 30),
]

SEED_STATUSES = [
    OrderStatus.PAID,
    OrderStatus.TO_SHIP,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument("--orders", type=int, default=10)

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(users, products, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={len(users)}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> list:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
        customer = User.objects.filter(username="cliente").first()
        if customer is None:
            customer = User.objects.create_user(
                "cliente",
                email="cliente@example.com",
                password="cliente123",
                first_name="María",
            )
        return [customer]

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        for name, category, price, stock in SEED_PRODUCTS:
            product, _ = Product.objects.get_or_create(
                name=name,
                defaults={"category": category, "price": price, "stock": stock},
            )
            products.append(product)
        return products

    def _seed_orders(self, users: list, products: list[Product], count: int) -> int:
        if Order.objects.exists():
            self.stdout.write("Orders already present, skipping.")
            return 0

        self.stdout.write("Placing orders...")
        service = OrderService(
            order_repository=OrderDjangoRepository(),
            product_repository=ProductDjangoRepository(),
            stock_ledger=StockLedger(),
        )
        created = 0
        for index in range(count):
            user = random.choice(users + [None])
            picked = random.sample(products, k=random.randint(1, 3))
            dto = PlaceOrderDTO(
                items=[
                    PlaceOrderItemDTO(product_id=p.id, quantity=random.randint(1, 2))
                    for p in picked
                ],
                user_id=user.pk if user else None,
                customer_name=None if user else f"Invitado {index + 1}",
                customer_email=None if user else f"invitado{index + 1}@example.com",
                shipping_street=f"Calle {random.randint(1, 40)} #{index + 10}",
                shipping_city=random.choice(["Santo Domingo", "Santiago", "La Romana"]),
                shipping_sector="Centro",
                payment_method=random.choice(["cash", "transfer", "card"]),
                skip_notification=True,
            )
            try:
                result = service.place_order(dto, user=user)
            except InsufficientStock:
                continue
            created += 1

            status = random.choice(SEED_STATUSES)
            service.apply_status(result.order.id, status, notes="Seed data")
        return created
