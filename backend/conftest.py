"""Shared builders for the ledger tests."""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SEED_DEMO_CATALOG", "false")

from datetime import date
from decimal import Decimal

import pytest

from trustmeds.schemas.sales import CartLine, CheckoutRequest
from trustmeds.store.catalog import InventoryStore
from trustmeds.store.entities import Batch, Category, Department, Medicine


def make_batch(batch_id, expiry, stock, purchase_price="10.00", number=None):
    return Batch(
        id=batch_id,
        batch_number=number or f"LOT-{batch_id}",
        expiry_date=date.fromisoformat(expiry) if isinstance(expiry, str) else expiry,
        stock=stock,
        purchase_price=Decimal(purchase_price),
    )


def make_medicine(medicine_id, name, price, batches=(), min_threshold=0, barcode=None, manufacturer="PharmaCorp"):
    return Medicine(
        id=medicine_id,
        name=name,
        generic_name=name,
        brand=name,
        manufacturer=manufacturer,
        department=Department.PHARMACY,
        category=Category.TABLET,
        price=Decimal(price),
        min_threshold=min_threshold,
        barcode=barcode,
        batches=list(batches),
    )


def cart(*lines, **overrides):
    """cart(("1", 30), ("2", 5), customer_name="Priya Verma")"""
    fields = {
        "lines": [CartLine(medicine_id=mid, quantity=qty) for mid, qty in lines],
        "customer_name": "Aravind Swamy",
        "customer_phone": "9876543210",
    }
    fields.update(overrides)
    return CheckoutRequest(**fields)


def stocks(store, medicine_id):
    med = store.get_copy(medicine_id)
    return {b.id: b.stock for b in med.batches}


@pytest.fixture
def store():
    """Amoxicillin (one batch) plus a two-batch Paracetamol and a Cetirizine."""
    return InventoryStore([
        make_medicine(
            "1", "Amoxicillin", "150.00", min_threshold=20, barcode="123456789",
            batches=[make_batch("b1", "2025-05-01", 100, "110.00", number="AMX-202")],
        ),
        make_medicine(
            "2", "Paracetamol 500mg", "2.50", min_threshold=10,
            batches=[
                make_batch("b2", "2025-01-01", 5, "1.50"),
                make_batch("b3", "2025-06-01", 10, "1.20"),
            ],
        ),
        make_medicine(
            "3", "Cetirizine", "4.00", min_threshold=5,
            batches=[make_batch("b4", "2026-03-01", 3, "2.00")],
        ),
    ])
