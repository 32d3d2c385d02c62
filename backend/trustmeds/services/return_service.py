"""
Compensating stock operations: RMA returns and manual adjustments.

Both target one named batch and write through the ledger, so aggregates
stay correct on the next read.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from trustmeds.core.audit import AuditLog
from trustmeds.core.exceptions import InvalidQuantity
from trustmeds.schemas.stock import AdjustmentRequest, ReturnRequest
from trustmeds.services import ledger_service
from trustmeds.store.catalog import EventKind, InventoryStore, LedgerEvent
from trustmeds.store.entities import Batch, ReturnLog, StockAdjustment

logger = logging.getLogger(__name__)


def process_return(store: InventoryStore, request: ReturnRequest, now: Optional[datetime] = None) -> ReturnLog:
    """
    Remove `quantity` units from the exact batch named and log an RMA.

    Raises:
        UnknownMedicine / UnknownBatch: ids not in the catalog
        InvalidQuantity: quantity exceeds the batch's current stock
    """
    with store.locked(request.medicine_id) as meds:
        medicine = meds[request.medicine_id]
        batch = ledger_service.get_batch(medicine, request.batch_id)
        if request.quantity > batch.stock:
            raise InvalidQuantity(
                f"Cannot return {request.quantity} units from batch {batch.batch_number}: "
                f"only {batch.stock} in stock",
                batch_id=batch.id,
            )
        ledger_service.adjust_batch_quantity(batch, -request.quantity)

        log = ReturnLog(
            id=f"RET-{uuid.uuid4().hex[:12].upper()}",
            rma_number=store.next_rma_number(),
            medicine_id=medicine.id,
            medicine_name=medicine.name,
            batch_id=batch.id,
            batch_number=batch.batch_number,
            quantity=request.quantity,
            reason=request.reason_text,
            created_at=now or datetime.now(),
            manufacturer=medicine.manufacturer,
        )
        store.append_return(log)

    AuditLog.log_return(log.rma_number, log.medicine_id, log.batch_id, log.quantity, log.reason)
    logger.info(f"{log.rma_number}: returned {log.quantity} x {log.medicine_name} ({log.batch_number})")
    store.notify(LedgerEvent(EventKind.RETURN, (log.medicine_id,), log))
    return log


def adjust_stock(store: InventoryStore, request: AdjustmentRequest, now: Optional[datetime] = None) -> Batch:
    """
    Apply a manual +/- correction to one batch and return a copy of it.

    A decrease larger than the batch's stock is clamped to zero rather than
    rejected. The clamp is recorded on the adjustment entry and logged.
    """
    with store.locked(request.medicine_id) as meds:
        medicine = meds[request.medicine_id]
        batch = ledger_service.get_batch(medicine, request.batch_id)
        applied = max(request.delta, -batch.stock)
        ledger_service.adjust_batch_quantity(batch, applied)
        batch.adjustments.append(
            StockAdjustment(
                id=f"ADJ-{uuid.uuid4().hex[:12].upper()}",
                timestamp=now or datetime.now(),
                requested_delta=request.delta,
                applied_delta=applied,
                new_total=batch.stock,
                reason=request.reason,
                user=request.user,
            )
        )
        result = Batch(
            id=batch.id,
            batch_number=batch.batch_number,
            expiry_date=batch.expiry_date,
            stock=batch.stock,
            purchase_price=batch.purchase_price,
            adjustments=list(batch.adjustments),
        )

    if applied != request.delta:
        logger.warning(
            f"Adjustment on batch {result.batch_number} clamped: requested {request.delta}, applied {applied}"
        )
    AuditLog.log_adjustment(
        request.medicine_id, result.id, request.delta, applied, result.stock, user=request.user
    )
    store.notify(LedgerEvent(EventKind.ADJUSTMENT, (request.medicine_id,)))
    return result
