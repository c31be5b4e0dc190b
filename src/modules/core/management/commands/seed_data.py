from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from modules.inventory.models import MovementReason, StockMovement
from modules.payments.models import PaymentMethod, PaymentMethodType
from modules.products.models import Product

CATALOG = [
    ("ELEC-001", "27in Monitor", Decimal("1299.90"), Decimal("950.00")),
    ("ELEC-002", "Mechanical Keyboard", Decimal("399.90"), Decimal("250.00")),
    ("ELEC-003", "Gaming Mouse", Decimal("249.90"), Decimal("140.00")),
    ("ELEC-004", "14in Laptop", Decimal("3999.00"), Decimal("3100.00")),
    ("ELEC-005", "Headset", Decimal("299.90"), Decimal("180.00")),
    ("HOME-001", "Office Desk", Decimal("899.00"), Decimal("600.00")),
    ("HOME-002", "Ergonomic Chair", Decimal("1499.00"), Decimal("1000.00")),
    ("HOME-003", "Bookshelf", Decimal("699.00"), Decimal("420.00")),
    ("OFF-001", "A4 Paper", Decimal("29.90"), Decimal("18.00")),
    ("OFF-002", "Blue Pen", Decimal("4.90"), Decimal("1.50")),
    ("OFF-003", "Notebook", Decimal("19.90"), Decimal("8.00")),
    ("OFF-004", "Stapler", Decimal("39.90"), Decimal("20.00")),
]


class Command(BaseCommand):
    help = "Seed database with demo users, products and ledger-backed stock."

    @transaction.atomic
    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        products_created = self._seed_products()
        methods_created = self._seed_payment_methods()

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={products_created}, "
                f"payment_methods={methods_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1
        if not User.objects.filter(username="user").exists():
            User.objects.create_user("user", password="user123")
            created += 1
        return created

    def _seed_products(self) -> int:
        self.stdout.write("Creating products...")
        created_count = 0
        for sku, name, price, cost in CATALOG:
            product, created = Product.objects.get_or_create(
                sku=sku,
                defaults={"name": name, "price": price},
            )
            if not created:
                continue
            created_count += 1
            # Stock only ever enters through the ledger.
            StockMovement.objects.create(
                product=product,
                delta_quantity=random.randint(10, 200),
                unit_cost=cost,
                reason=MovementReason.RESTOCK,
                note="Seed stock",
            )
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return created_count

    def _seed_payment_methods(self) -> int:
        user = get_user_model().objects.get(username="user")
        _, created = PaymentMethod.objects.get_or_create(
            user=user,
            type=PaymentMethodType.KBZ_PAY,
            defaults={"details": {"account_name": "Demo User", "account_no": "09000000000"}},
        )
        return int(created)
