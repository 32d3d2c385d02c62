"""Concurrent sales, returns and adjustments against one store."""
import threading

from conftest import cart, make_batch, make_medicine, stocks
from trustmeds.core.exceptions import TransactionAborted
from trustmeds.schemas.stock import AdjustmentRequest
from trustmeds.services import aggregation_service, return_service, transaction_service
from trustmeds.store.catalog import InventoryStore


def test_concurrent_sales_never_oversell():
    store = InventoryStore([
        make_medicine("1", "Paracetamol 500mg", "2.50", batches=[
            make_batch("b1", "2025-01-01", 30),
            make_batch("b2", "2025-06-01", 20),
        ]),
    ])
    start = threading.Barrier(20)
    sold = []
    aborted = []

    def sell():
        start.wait()
        try:
            sold.append(transaction_service.checkout(store, cart(("1", 3))))
        except TransactionAborted as e:
            aborted.append(e)

    threads = [threading.Thread(target=sell) for _ in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    # 50 units, 3 per cart: 16 carts fit
    assert len(sold) == 16
    assert len(aborted) == 4
    assert stocks(store, "1") == {"b1": 0, "b2": 2}
    assert len(store.invoices()) == 16
    assert sum(a.quantity for inv in sold for a in inv.items[0].allocations) == 48


def test_opposite_order_carts_do_not_deadlock():
    store = InventoryStore([
        make_medicine("1", "Amoxicillin", "150", batches=[make_batch("b1", "2026-01-01", 1000)]),
        make_medicine("2", "Cetirizine", "4", batches=[make_batch("b2", "2026-01-01", 1000)]),
    ])

    def forward():
        for _ in range(100):
            transaction_service.checkout(store, cart(("1", 1), ("2", 1)))

    def backward():
        for _ in range(100):
            transaction_service.checkout(store, cart(("2", 1), ("1", 1)))

    threads = [threading.Thread(target=fn) for fn in (forward, backward, forward, backward)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert not any(t.is_alive() for t in threads)
    assert stocks(store, "1") == {"b1": 600}
    assert stocks(store, "2") == {"b2": 600}


def test_adjustments_and_sales_conserve_stock():
    store = InventoryStore([
        make_medicine("1", "ORS", "20", batches=[make_batch("b1", "2026-01-01", 500)]),
    ])

    def restock():
        for _ in range(50):
            return_service.adjust_stock(store, AdjustmentRequest(medicine_id="1", batch_id="b1", delta=2))

    def sell():
        for _ in range(50):
            transaction_service.checkout(store, cart(("1", 1)))

    threads = [threading.Thread(target=fn) for fn in (restock, sell, restock, sell)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    med = store.get_copy("1")
    # 500 + 2 x 100 - 100
    assert aggregation_service.total_stock(med) == 600
    assert len(med.batch("b1").adjustments) == 100
    assert len(store.invoices()) == 100


def test_snapshot_during_sales_is_consistent():
    store = InventoryStore([
        make_medicine("1", "Amoxicillin", "150", batches=[make_batch("b1", "2026-01-01", 400)]),
        make_medicine("2", "Cetirizine", "4", batches=[make_batch("b2", "2026-01-01", 400)]),
    ])
    done = threading.Event()
    seen = []

    def sell():
        for _ in range(200):
            transaction_service.checkout(store, cart(("1", 1), ("2", 1)))
        done.set()

    seller = threading.Thread(target=sell)
    seller.start()
    while not done.is_set():
        snap = store.snapshot()
        seen.append(tuple(aggregation_service.total_stock(m) for m in snap))
    seller.join()

    # both lines of a cart commit under the same locks
    assert all(a == b for a, b in seen)
