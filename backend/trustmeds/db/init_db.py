"""Create all tables and, in development, seed the demo catalog. Run on app startup."""
import logging
from datetime import date
from decimal import Decimal

from trustmeds.core.config import settings
from trustmeds.db.base import Base
from trustmeds.db.session import engine, SessionLocal
from trustmeds.models import medicine, invoice, return_log  # noqa: F401 - register models
from trustmeds.models.medicine import MedicineRow
from trustmeds.services.persistence_service import save_medicine
from trustmeds.store.entities import Batch, Category, Department, Medicine

logger = logging.getLogger(__name__)


def demo_catalog():
    return [
        Medicine(
            id="1",
            name="Amoxicillin",
            generic_name="Amoxicillin 500mg",
            brand="Novamox",
            manufacturer="PharmaCorp",
            department=Department.PHARMACY,
            category=Category.CAPSULE,
            price=Decimal("150.00"),
            min_threshold=20,
            barcode="123456789",
            description="Amoxicillin Trihydrate",
            batches=[
                Batch(id="b1", batch_number="AMX-202", expiry_date=date(2025, 5, 1),
                      stock=100, purchase_price=Decimal("110.00")),
            ],
        ),
        Medicine(
            id="2",
            name="Dettol Antiseptic",
            generic_name="Chloroxylenol",
            brand="Dettol",
            manufacturer="Reckitt",
            department=Department.FMCG,
            category=Category.GENERAL,
            price=Decimal("85.00"),
            min_threshold=10,
            batches=[
                Batch(id="b3", batch_number="DET-99", expiry_date=date(2026, 12, 15),
                      stock=50, purchase_price=Decimal("60.00")),
            ],
        ),
    ]


def init_db(bind=None, session_factory=None, seed=None):
    bind = bind or engine
    session_factory = session_factory or SessionLocal
    seed = settings.SEED_DEMO_CATALOG if seed is None else seed

    Base.metadata.create_all(bind=bind)

    if not seed:
        return
    db = session_factory()
    try:
        if db.query(MedicineRow).count() == 0:
            for med in demo_catalog():
                save_medicine(db, med)
            db.commit()
            logger.info("Seeded demo catalog (2 medicines)")
    finally:
        db.close()
