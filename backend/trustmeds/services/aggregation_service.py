"""Stock aggregates derived from the batch ledger.

Pure functions, recomputed on every call. Nothing here is cached, so the
results always agree with the batches they are given.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List

from trustmeds.store.entities import Batch, Medicine


def total_stock(medicine: Medicine) -> int:
    return sum(b.stock for b in medicine.batches)


def is_low_stock(medicine: Medicine) -> bool:
    return total_stock(medicine) <= medicine.min_threshold


def is_out_of_stock(medicine: Medicine) -> bool:
    return total_stock(medicine) == 0


def stock_value(medicine: Medicine) -> Decimal:
    """Valuation at sale price."""
    return medicine.price * total_stock(medicine)


def expiring_within(medicine: Medicine, window_days: int, as_of: date) -> List[Batch]:
    """Batches expiring after `as_of` and on or before `as_of + window_days`."""
    horizon = as_of + timedelta(days=window_days)
    return [b for b in medicine.batches if as_of < b.expiry_date <= horizon]


def expired(medicine: Medicine, as_of: date) -> List[Batch]:
    return [b for b in medicine.batches if b.expiry_date < as_of]


def count_expiring(medicines: Iterable[Medicine], window_days: int, as_of: date) -> int:
    # every batch counts on its own, across all medicines
    return sum(len(expiring_within(m, window_days, as_of)) for m in medicines)


def count_expired(medicines: Iterable[Medicine], as_of: date) -> int:
    return sum(len(expired(m, as_of)) for m in medicines)


def low_stock_medicines(medicines: Iterable[Medicine]) -> List[Medicine]:
    return [m for m in medicines if is_low_stock(m)]
