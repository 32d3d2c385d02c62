"""
Inventory store: the single source of truth for stock.

One store is built at process start (see `trustmeds.main`) and handed to the
services that need it; there is no module-level singleton.

CONCURRENCY MODEL:
- Each medicine has its own lock. Operations on different medicines run in
  parallel; every mutation of one medicine's batches is serialized.
- Multi-medicine operations acquire locks in sorted id order (no deadlock).
- The catalog lock only guards the medicine/barcode indexes and is never held
  while waiting on a medicine lock.
- Listeners (persistence) are notified after locks are released.
"""
import itertools
import logging
import random
import re
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from trustmeds.core.exceptions import DuplicateBarcode, UnknownMedicine
from trustmeds.store.entities import Invoice, Medicine, ReturnLog

logger = logging.getLogger(__name__)

_TRAILING_DIGITS = re.compile(r"(\d+)$")


class EventKind(str, Enum):
    SALE = "sale"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    CATALOG = "catalog"


@dataclass(frozen=True)
class LedgerEvent:
    """Emitted after a committed mutation, outside any medicine lock."""
    kind: EventKind
    medicine_ids: Tuple[str, ...]
    record: Optional[Union[Invoice, ReturnLog]] = None
    deleted: bool = False


Listener = Callable[[LedgerEvent], None]


def _max_suffix(ids: Iterable[str]) -> int:
    highest = 0
    for value in ids:
        match = _TRAILING_DIGITS.search(value)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


class InventoryStore:
    """Catalog of medicines plus the append-only sales and return history."""

    def __init__(
        self,
        medicines: Iterable[Medicine] = (),
        invoices: Iterable[Invoice] = (),
        returns: Iterable[ReturnLog] = (),
    ):
        self._catalog_lock = threading.Lock()
        self._history_lock = threading.Lock()
        self._medicines: Dict[str, Medicine] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._barcodes: Dict[str, str] = {}
        self._invoices: List[Invoice] = list(invoices)
        self._returns: List[ReturnLog] = list(returns)
        self._rma_numbers = {r.rma_number for r in self._returns}
        self._listeners: List[Listener] = []

        for med in medicines:
            self._index(med)

        batch_ids = [b.id for m in self._medicines.values() for b in m.batches]
        self._medicine_seq = itertools.count(_max_suffix(self._medicines) + 1)
        self._batch_seq = itertools.count(_max_suffix(batch_ids) + 1)
        logger.info(
            f"Inventory store ready: {len(self._medicines)} medicines, "
            f"{len(batch_ids)} batches, {len(self._invoices)} invoices"
        )

    def _index(self, med: Medicine) -> None:
        if med.id in self._medicines:
            raise ValueError(f"Duplicate medicine id {med.id}")
        if med.barcode:
            owner = self._barcodes.get(med.barcode)
            if owner is not None:
                raise DuplicateBarcode(med.barcode, owner)
            self._barcodes[med.barcode] = med.id
        self._medicines[med.id] = med
        self._locks[med.id] = threading.Lock()

    # ------------------------------------------------------------------
    # Identifiers
    # ------------------------------------------------------------------

    def next_medicine_id(self) -> str:
        with self._catalog_lock:
            while True:
                candidate = str(next(self._medicine_seq))
                if candidate not in self._medicines:
                    return candidate

    def next_batch_id(self) -> str:
        # Monotonic, so id order is registration order among equal expiries
        with self._catalog_lock:
            return f"b{next(self._batch_seq)}"

    def next_invoice_id(self) -> str:
        return f"INV-{uuid.uuid4().hex[:12].upper()}"

    def next_rma_number(self) -> str:
        with self._history_lock:
            while True:
                candidate = f"RMA-{random.randint(100000, 999999)}"
                if candidate not in self._rma_numbers:
                    self._rma_numbers.add(candidate)
                    return candidate

    # ------------------------------------------------------------------
    # Catalog structure
    # ------------------------------------------------------------------

    def add_medicine(self, med: Medicine) -> None:
        with self._catalog_lock:
            self._index(med)

    def remove_medicine(self, medicine_id: str) -> Medicine:
        """Drop a medicine. Caller must hold its lock (see `locked`)."""
        with self._catalog_lock:
            med = self._medicines.pop(medicine_id, None)
            if med is None:
                raise UnknownMedicine(medicine_id)
            self._locks.pop(medicine_id, None)
            if med.barcode and self._barcodes.get(med.barcode) == medicine_id:
                del self._barcodes[med.barcode]
        return med

    def reassign_barcode(self, medicine_id: str, old: Optional[str], new: Optional[str]) -> None:
        """Move a medicine's barcode in the index. Caller must hold its lock."""
        with self._catalog_lock:
            if new:
                owner = self._barcodes.get(new)
                if owner is not None and owner != medicine_id:
                    raise DuplicateBarcode(new, owner)
            if old and self._barcodes.get(old) == medicine_id:
                del self._barcodes[old]
            if new:
                self._barcodes[new] = medicine_id

    def medicine_ids(self) -> List[str]:
        with self._catalog_lock:
            return sorted(self._medicines)

    def barcode_owner(self, barcode: str) -> Optional[str]:
        with self._catalog_lock:
            return self._barcodes.get(barcode)

    @contextmanager
    def locked(self, *medicine_ids: str) -> Iterator[Dict[str, Medicine]]:
        """
        Hold the per-medicine locks for `medicine_ids` and yield the live
        Medicine objects. Locks are taken in sorted order and released in
        reverse, so concurrent carts never deadlock.
        """
        ids = sorted(set(medicine_ids))
        with self._catalog_lock:
            missing = [mid for mid in ids if mid not in self._locks]
            if missing:
                raise UnknownMedicine(missing[0])
            locks = [self._locks[mid] for mid in ids]

        acquired: List[threading.Lock] = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            live = {}
            for mid in ids:
                med = self._medicines.get(mid)
                if med is None:
                    # removed while we waited for its lock
                    raise UnknownMedicine(mid)
                live[mid] = med
            yield live
        finally:
            for lock in reversed(acquired):
                lock.release()

    def get_copy(self, medicine_id: str) -> Medicine:
        with self.locked(medicine_id) as meds:
            return meds[medicine_id].copy()

    def snapshot(self) -> List[Medicine]:
        """Consistent detached copy of the whole catalog, ordered by id."""
        ids = self.medicine_ids()
        while True:
            try:
                with self.locked(*ids) as meds:
                    return [meds[mid].copy() for mid in ids]
            except UnknownMedicine:
                # a medicine was deleted between listing and locking
                ids = self.medicine_ids()

    # ------------------------------------------------------------------
    # History (append-only)
    # ------------------------------------------------------------------

    def append_invoice(self, invoice: Invoice) -> None:
        with self._history_lock:
            self._invoices.append(invoice)

    def append_return(self, log: ReturnLog) -> None:
        with self._history_lock:
            self._returns.append(log)
            self._rma_numbers.add(log.rma_number)

    def invoices(self) -> List[Invoice]:
        with self._history_lock:
            return list(self._invoices)

    def returns(self) -> List[ReturnLog]:
        with self._history_lock:
            return list(self._returns)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def notify(self, event: LedgerEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def close(self) -> None:
        self._listeners.clear()
        logger.info("Inventory store closed")
