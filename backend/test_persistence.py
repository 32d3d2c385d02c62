"""SQL persistence: the store survives a reload from the database."""
import threading
import time
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from conftest import cart, make_batch, make_medicine, stocks
from trustmeds.db.init_db import demo_catalog, init_db
from trustmeds.db.session import make_engine
from trustmeds.models import BatchRow, MedicineRow
from trustmeds.schemas.catalog import BatchCreate
from trustmeds.schemas.stock import AdjustmentRequest, ReturnRequest
from trustmeds.services import inventory_service, persistence_service, return_service, transaction_service
from trustmeds.services.persistence_service import DatabaseListener
from trustmeds.store.catalog import InventoryStore


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_db(bind=engine, session_factory=factory, seed=False)
    yield factory
    engine.dispose()


@pytest.fixture
def persisted_store(session_factory):
    medicines = [
        make_medicine("1", "Amoxicillin", "150.00", min_threshold=20, barcode="123456789",
                      batches=[make_batch("b1", "2025-05-01", 100, "110.00", number="AMX-202")]),
        make_medicine("2", "Paracetamol 500mg", "2.50", batches=[
            make_batch("b2", "2025-01-01", 5, "1.50"),
            make_batch("b3", "2025-06-01", 10, "1.20"),
        ]),
    ]
    db = session_factory()
    for med in medicines:
        persistence_service.save_medicine(db, med)
    db.commit()
    db.close()

    store = InventoryStore(medicines)
    store.add_listener(DatabaseListener(store, session_factory))
    return store


def reload(session_factory):
    db = session_factory()
    try:
        return persistence_service.load_store(db)
    finally:
        db.close()


def test_sale_is_written_through(persisted_store, session_factory):
    invoice = transaction_service.checkout(
        persisted_store, cart(("2", 8), is_chronic=True), now=datetime(2025, 1, 1, 11, 0)
    )

    reloaded = reload(session_factory)

    assert stocks(reloaded, "2") == {"b2": 0, "b3": 7}
    (saved,) = reloaded.invoices()
    assert saved.id == invoice.id
    assert saved.total_amount == Decimal("20.00")
    assert saved.treatment_duration == 30
    (line,) = saved.items
    assert [(a.batch_id, a.quantity, a.expiry_date) for a in line.allocations] == [
        ("b2", 5, date(2025, 1, 1)),
        ("b3", 3, date(2025, 6, 1)),
    ]
    assert line.cost == Decimal("11.10")


def test_returns_and_adjustments_are_written_through(persisted_store, session_factory):
    log = return_service.process_return(
        persisted_store, ReturnRequest(medicine_id="1", batch_id="b1", quantity=4, reason="Expired")
    )
    return_service.adjust_stock(
        persisted_store, AdjustmentRequest(medicine_id="2", batch_id="b2", delta=-9, reason="shelf count")
    )

    reloaded = reload(session_factory)

    assert stocks(reloaded, "1") == {"b1": 96}
    assert [r.rma_number for r in reloaded.returns()] == [log.rma_number]
    (adjustment,) = reloaded.get_copy("2").batch("b2").adjustments
    assert (adjustment.requested_delta, adjustment.applied_delta, adjustment.new_total) == (-9, -5, 0)


def test_catalog_changes_are_written_through(persisted_store, session_factory):
    batch = inventory_service.add_batch(
        persisted_store, "1",
        BatchCreate(batch_number="AMX-310", expiry_date=date(2026, 2, 1), stock=40, purchase_price=Decimal("105")),
    )
    inventory_service.remove_batch(persisted_store, "2", "b2")

    db = session_factory()
    try:
        assert db.get(BatchRow, batch.id).stock == 40
        assert db.get(BatchRow, "b2") is None
    finally:
        db.close()

    inventory_service.delete_medicine(persisted_store, "2")
    db = session_factory()
    try:
        assert db.get(MedicineRow, "2") is None
        assert db.query(BatchRow).filter(BatchRow.medicine_id == "2").count() == 0
    finally:
        db.close()


def test_invoice_survives_medicine_deletion(persisted_store, session_factory):
    transaction_service.checkout(persisted_store, cart(("1", 2)))
    inventory_service.delete_medicine(persisted_store, "1")

    reloaded = reload(session_factory)

    assert reloaded.medicine_ids() == ["2"]
    (saved,) = reloaded.invoices()
    assert saved.items[0].name == "Amoxicillin"
    assert saved.items[0].unit_price == Decimal("150.00")


def test_reloaded_store_continues_id_sequences(persisted_store, session_factory):
    reloaded = reload(session_factory)
    assert reloaded.next_medicine_id() == "3"
    assert reloaded.next_batch_id() == "b4"


def test_database_failure_does_not_undo_sale(persisted_store, session_factory, caplog):
    def broken_factory():
        raise_on_commit = session_factory()

        def fail():
            raise RuntimeError("disk full")

        raise_on_commit.commit = fail
        return raise_on_commit

    persisted_store.close()
    persisted_store.add_listener(DatabaseListener(persisted_store, broken_factory))

    invoice = transaction_service.checkout(persisted_store, cart(("1", 1)))

    assert stocks(persisted_store, "1") == {"b1": 99}
    assert persisted_store.invoices() == [invoice]
    assert "Failed to persist sale event" in caplog.text


def test_init_db_seeds_demo_catalog_once():
    engine = make_engine("sqlite://")
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    init_db(bind=engine, session_factory=factory, seed=True)
    init_db(bind=engine, session_factory=factory, seed=True)

    store = reload(factory)
    assert store.medicine_ids() == [m.id for m in demo_catalog()]
    amoxicillin = store.get_copy("1")
    assert amoxicillin.barcode == "123456789"
    assert stocks(store, "1") == {"b1": 100}
    engine.dispose()


def test_overlapping_sales_persist_latest_stock(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_db(bind=engine, session_factory=factory, seed=False)

    medicine = make_medicine("1", "Amoxicillin", "150.00", batches=[make_batch("b1", "2025-05-01", 100)])
    db = factory()
    persistence_service.save_medicine(db, medicine)
    db.commit()
    db.close()
    store = InventoryStore([medicine])

    first_committing = threading.Event()
    release_first = threading.Event()
    opened = []

    def slow_first_commit():
        session = factory()
        opened.append(session)
        if len(opened) == 1:
            commit = session.commit

            def held_commit():
                first_committing.set()
                release_first.wait(timeout=5)
                commit()

            session.commit = held_commit
        return session

    store.add_listener(DatabaseListener(store, slow_first_commit))

    first = threading.Thread(target=transaction_service.checkout, args=(store, cart(("1", 3))))
    first.start()
    assert first_committing.wait(timeout=5)

    second = threading.Thread(target=transaction_service.checkout, args=(store, cart(("1", 3))))
    second.start()
    deadline = time.monotonic() + 5
    while stocks(store, "1") != {"b1": 94} and time.monotonic() < deadline:
        time.sleep(0.01)
    release_first.set()
    first.join(timeout=5)
    second.join(timeout=5)

    reloaded = reload(factory)
    assert stocks(store, "1") == {"b1": 94}
    assert stocks(reloaded, "1") == {"b1": 94}
    assert len(reloaded.invoices()) == 2
    engine.dispose()
