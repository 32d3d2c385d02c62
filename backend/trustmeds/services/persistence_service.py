"""Persistence collaborator: mirrors the in-memory store into SQL.

The store is authoritative while the process runs. This module loads it at
startup and writes committed changes afterwards, outside the ledger locks.
"""
import logging
import threading
from datetime import date
from decimal import Decimal
from typing import Callable, List

from sqlalchemy.orm import Session

from trustmeds.core.exceptions import UnknownMedicine
from trustmeds.models.invoice import InvoiceItemRow, InvoiceRow
from trustmeds.models.medicine import BatchRow, MedicineRow, StockAdjustmentRow
from trustmeds.models.return_log import ReturnLogRow
from trustmeds.store.catalog import InventoryStore, LedgerEvent
from trustmeds.store.entities import (
    Allocation,
    Batch,
    Category,
    Department,
    Invoice,
    InvoiceLineItem,
    Medicine,
    PaymentMethod,
    ReturnLog,
    StockAdjustment,
)

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Row <-> entity
# ----------------------------------------------------------------------

def medicine_from_row(row: MedicineRow) -> Medicine:
    return Medicine(
        id=row.id,
        name=row.name,
        generic_name=row.generic_name or "",
        brand=row.brand or "",
        manufacturer=row.manufacturer or "",
        department=Department(row.department),
        category=Category(row.category),
        price=Decimal(str(row.price)),
        min_threshold=row.min_threshold,
        barcode=row.barcode,
        description=row.description,
        batches=[
            Batch(
                id=b.id,
                batch_number=b.batch_number,
                expiry_date=b.expiry_date,
                stock=b.stock,
                purchase_price=Decimal(str(b.purchase_price)),
                adjustments=[
                    StockAdjustment(
                        id=a.id,
                        timestamp=a.timestamp,
                        requested_delta=a.requested_delta,
                        applied_delta=a.applied_delta,
                        new_total=a.new_total,
                        reason=a.reason,
                        user=a.user,
                    )
                    for a in b.adjustments
                ],
            )
            for b in row.batches
        ],
    )


def medicine_to_row(med: Medicine) -> MedicineRow:
    return MedicineRow(
        id=med.id,
        name=med.name,
        generic_name=med.generic_name,
        brand=med.brand,
        manufacturer=med.manufacturer,
        department=med.department.value,
        category=med.category.value,
        price=med.price,
        min_threshold=med.min_threshold,
        barcode=med.barcode,
        description=med.description,
        batches=[
            BatchRow(
                id=b.id,
                medicine_id=med.id,
                batch_number=b.batch_number,
                expiry_date=b.expiry_date,
                stock=b.stock,
                purchase_price=b.purchase_price,
                adjustments=[
                    StockAdjustmentRow(
                        id=a.id,
                        batch_id=b.id,
                        timestamp=a.timestamp,
                        requested_delta=a.requested_delta,
                        applied_delta=a.applied_delta,
                        new_total=a.new_total,
                        reason=a.reason,
                        user=a.user,
                    )
                    for a in b.adjustments
                ],
            )
            for b in med.batches
        ],
    )


def invoice_from_row(row: InvoiceRow) -> Invoice:
    items = tuple(
        InvoiceLineItem(
            medicine_id=i.medicine_id,
            name=i.name,
            quantity=i.quantity,
            unit_price=Decimal(str(i.unit_price)),
            total=Decimal(str(i.total)),
            gst_rate=Decimal(str(i.gst_rate)),
            allocations=tuple(
                Allocation(
                    batch_id=a["batch_id"],
                    batch_number=a["batch_number"],
                    expiry_date=date.fromisoformat(a["expiry_date"]),
                    quantity=a["quantity"],
                    purchase_price=Decimal(a["purchase_price"]),
                )
                for a in (i.allocations or [])
            ),
        )
        for i in row.items
    )
    return Invoice(
        id=row.id,
        customer_name=row.customer_name,
        customer_phone=row.customer_phone,
        health_id=row.health_id,
        created_at=row.created_at,
        items=items,
        total_amount=Decimal(str(row.total_amount)),
        gst_total=Decimal(str(row.gst_total)),
        payment_method=PaymentMethod(row.payment_method),
        refill_reminder=bool(row.refill_reminder),
        is_chronic=bool(row.is_chronic),
        treatment_duration=row.treatment_duration,
        safety_override=row.safety_override,
    )


def invoice_to_row(invoice: Invoice) -> InvoiceRow:
    return InvoiceRow(
        id=invoice.id,
        customer_name=invoice.customer_name,
        customer_phone=invoice.customer_phone,
        health_id=invoice.health_id,
        created_at=invoice.created_at,
        total_amount=invoice.total_amount,
        gst_total=invoice.gst_total,
        payment_method=invoice.payment_method.value,
        refill_reminder=invoice.refill_reminder,
        is_chronic=invoice.is_chronic,
        treatment_duration=invoice.treatment_duration,
        safety_override=invoice.safety_override,
        items=[
            InvoiceItemRow(
                medicine_id=i.medicine_id,
                name=i.name,
                quantity=i.quantity,
                unit_price=i.unit_price,
                total=i.total,
                gst_rate=i.gst_rate,
                allocations=[
                    {
                        "batch_id": a.batch_id,
                        "batch_number": a.batch_number,
                        "expiry_date": a.expiry_date.isoformat(),
                        "quantity": a.quantity,
                        "purchase_price": str(a.purchase_price),
                    }
                    for a in i.allocations
                ],
            )
            for i in invoice.items
        ],
    )


def return_from_row(row: ReturnLogRow) -> ReturnLog:
    return ReturnLog(
        id=row.id,
        rma_number=row.rma_number,
        medicine_id=row.medicine_id,
        medicine_name=row.medicine_name,
        batch_id=row.batch_id,
        batch_number=row.batch_number,
        quantity=row.quantity,
        reason=row.reason,
        created_at=row.created_at,
        manufacturer=row.manufacturer or "",
    )


def return_to_row(log: ReturnLog) -> ReturnLogRow:
    return ReturnLogRow(
        id=log.id,
        rma_number=log.rma_number,
        medicine_id=log.medicine_id,
        medicine_name=log.medicine_name,
        batch_id=log.batch_id,
        batch_number=log.batch_number,
        quantity=log.quantity,
        reason=log.reason,
        created_at=log.created_at,
        manufacturer=log.manufacturer,
    )


# ----------------------------------------------------------------------
# Reads
# ----------------------------------------------------------------------

def load_catalog(db: Session) -> List[Medicine]:
    return [medicine_from_row(r) for r in db.query(MedicineRow).order_by(MedicineRow.id).all()]


def load_invoices(db: Session) -> List[Invoice]:
    return [invoice_from_row(r) for r in db.query(InvoiceRow).order_by(InvoiceRow.created_at).all()]


def load_returns(db: Session) -> List[ReturnLog]:
    return [return_from_row(r) for r in db.query(ReturnLogRow).order_by(ReturnLogRow.created_at).all()]


def load_store(db: Session) -> InventoryStore:
    return InventoryStore(load_catalog(db), load_invoices(db), load_returns(db))


# ----------------------------------------------------------------------
# Writes
# ----------------------------------------------------------------------

def save_medicine(db: Session, med: Medicine) -> None:
    """Upsert a medicine with its full batch set; batches no longer present are deleted."""
    db.merge(medicine_to_row(med))


def delete_medicine(db: Session, medicine_id: str) -> None:
    row = db.get(MedicineRow, medicine_id)
    if row is not None:
        db.delete(row)


def record_invoice(db: Session, invoice: Invoice) -> None:
    db.add(invoice_to_row(invoice))


def record_return(db: Session, log: ReturnLog) -> None:
    db.add(return_to_row(log))


class DatabaseListener:
    """Store listener that writes each committed change in its own DB transaction.

    The in-memory commit has already happened when this runs; a database
    failure is logged and does not undo it. Writes are serialized: the
    medicine is copied inside the lock, so the last commit always carries
    the newest stock.
    """

    def __init__(self, store: InventoryStore, session_factory: Callable[[], Session]):
        self.store = store
        self.session_factory = session_factory
        self._lock = threading.Lock()

    def __call__(self, event: LedgerEvent) -> None:
        with self._lock:
            self._write(event)

    def _write(self, event: LedgerEvent) -> None:
        db = self.session_factory()
        try:
            for medicine_id in event.medicine_ids:
                if event.deleted:
                    delete_medicine(db, medicine_id)
                    continue
                try:
                    save_medicine(db, self.store.get_copy(medicine_id))
                except UnknownMedicine:
                    delete_medicine(db, medicine_id)
            if isinstance(event.record, Invoice):
                record_invoice(db, event.record)
            elif isinstance(event.record, ReturnLog):
                record_return(db, event.record)
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Failed to persist {event.kind.value} event for {event.medicine_ids}: {e}", exc_info=True)
        finally:
            db.close()
