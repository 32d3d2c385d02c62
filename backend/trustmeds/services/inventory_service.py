"""Catalog maintenance: medicines and their batches.

Returned medicines are detached copies; the live objects stay in the store.
"""
import logging
from typing import List, Optional

from trustmeds.core.audit import AuditLog
from trustmeds.core.exceptions import UnknownMedicine
from trustmeds.schemas.catalog import BatchCreate, MedicineCreate, MedicineUpdate
from trustmeds.services import ledger_service
from trustmeds.store.catalog import EventKind, InventoryStore, LedgerEvent
from trustmeds.store.entities import Batch, Medicine

logger = logging.getLogger(__name__)


def _new_batch(store: InventoryStore, data: BatchCreate) -> Batch:
    batch = Batch(
        id=store.next_batch_id(),
        batch_number=data.batch_number,
        expiry_date=data.expiry_date,
        stock=0,
        purchase_price=data.purchase_price,
    )
    ledger_service.set_batch_quantity(batch, data.stock)
    return batch


def register_medicine(store: InventoryStore, data: MedicineCreate) -> Medicine:
    med = Medicine(
        id=store.next_medicine_id(),
        name=data.name.strip(),
        generic_name=data.generic_name,
        brand=data.brand,
        manufacturer=data.manufacturer,
        department=data.department,
        category=data.category,
        price=data.price,
        min_threshold=data.min_threshold,
        barcode=data.barcode,
        description=data.description,
    )
    if data.initial_batch is not None:
        med.batches.append(_new_batch(store, data.initial_batch))

    store.add_medicine(med)
    AuditLog.log_catalog_change("create", med.id, {"name": med.name, "batches": len(med.batches)})
    logger.info(f"Registered medicine {med.id} ({med.name})")
    store.notify(LedgerEvent(EventKind.CATALOG, (med.id,)))
    return store.get_copy(med.id)


def add_batch(store: InventoryStore, medicine_id: str, data: BatchCreate) -> Batch:
    batch = _new_batch(store, data)
    with store.locked(medicine_id) as meds:
        meds[medicine_id].batches.append(batch)
    AuditLog.log_catalog_change(
        "add_batch", medicine_id, {"batch_id": batch.id, "batch_number": batch.batch_number, "stock": batch.stock}
    )
    store.notify(LedgerEvent(EventKind.CATALOG, (medicine_id,)))
    return batch


def remove_batch(store: InventoryStore, medicine_id: str, batch_id: str) -> Batch:
    """Explicitly drop a batch. Batches at zero stock are otherwise kept as history."""
    with store.locked(medicine_id) as meds:
        med = meds[medicine_id]
        batch = ledger_service.get_batch(med, batch_id)
        med.batches.remove(batch)
    AuditLog.log_catalog_change("remove_batch", medicine_id, {"batch_id": batch_id, "stock": batch.stock})
    store.notify(LedgerEvent(EventKind.CATALOG, (medicine_id,)))
    return batch


def update_medicine(store: InventoryStore, medicine_id: str, data: MedicineUpdate) -> Medicine:
    """Edit catalog details. Price changes affect future sales only."""
    changes = data.model_dump(exclude_unset=True)
    with store.locked(medicine_id) as meds:
        med = meds[medicine_id]
        if "barcode" in changes:
            new_barcode = (changes["barcode"] or "").strip() or None
            store.reassign_barcode(medicine_id, med.barcode, new_barcode)
            changes["barcode"] = new_barcode
        for field_name, value in changes.items():
            if value is None and field_name not in ("barcode", "description"):
                continue
            setattr(med, field_name, value.strip() if field_name == "name" else value)
        updated = med.copy()
    AuditLog.log_catalog_change("update", medicine_id, {k: str(v) for k, v in changes.items()})
    store.notify(LedgerEvent(EventKind.CATALOG, (medicine_id,)))
    return updated


def delete_medicine(store: InventoryStore, medicine_id: str) -> Medicine:
    """Remove from the catalog. Invoices and return logs keep their snapshots."""
    with store.locked(medicine_id):
        med = store.remove_medicine(medicine_id)
    AuditLog.log_catalog_change("delete", medicine_id, {"name": med.name})
    store.notify(LedgerEvent(EventKind.CATALOG, (medicine_id,), deleted=True))
    return med


def get_medicine(store: InventoryStore, medicine_id: str) -> Medicine:
    return store.get_copy(medicine_id)


def find_by_barcode(store: InventoryStore, barcode: str) -> Optional[Medicine]:
    owner = store.barcode_owner(barcode.strip())
    if owner is None:
        return None
    try:
        return store.get_copy(owner)
    except UnknownMedicine:
        return None


def search_medicines(store: InventoryStore, term: Optional[str] = None) -> List[Medicine]:
    """Case-insensitive match on name, generic name, brand or barcode."""
    medicines = store.snapshot()
    if not term:
        return medicines
    needle = term.strip().lower()
    return [
        m for m in medicines
        if needle in m.name.lower()
        or needle in m.generic_name.lower()
        or needle in m.brand.lower()
        or (m.barcode and needle in m.barcode.lower())
    ]
