"""
Checkout: turn a finished cart into stock deductions and an invoice.

The whole cart is planned against current stock first, with every affected
medicine locked. Only when every line has a full FEFO plan are the plans
committed; otherwise nothing changes and TransactionAborted names the
offending medicines. Line prices are frozen onto the invoice at checkout.
"""
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from trustmeds.core.audit import AuditLog
from trustmeds.core.config import settings
from trustmeds.core.exceptions import InsufficientStock, SafetyHoldActive, TransactionAborted
from trustmeds.schemas.sales import CartLine, CheckoutRequest
from trustmeds.services import allocation_service
from trustmeds.services.allocation_service import DeductionPlan
from trustmeds.store.catalog import EventKind, InventoryStore, LedgerEvent
from trustmeds.store.entities import Invoice, InvoiceLineItem, Medicine

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def merge_cart_lines(lines: List[CartLine]) -> Dict[str, int]:
    """Collapse repeated medicines into one quantity, keeping first-seen order.

    Two lines for the same medicine must be planned together; planning them
    separately against the same stock would over-commit.
    """
    merged: Dict[str, int] = OrderedDict()
    for line in lines:
        merged[line.medicine_id] = merged.get(line.medicine_id, 0) + line.quantity
    return merged


def calculate_gst(base_amount: Decimal, gst_rate: Decimal) -> Decimal:
    """GST on a line, rounded to paise. Informational; not added to the total."""
    return (base_amount * gst_rate / Decimal("100")).quantize(CENT, rounding=ROUND_HALF_UP)


def build_line_item(medicine: Medicine, plan: DeductionPlan, gst_rate: Decimal) -> InvoiceLineItem:
    return InvoiceLineItem(
        medicine_id=medicine.id,
        name=medicine.name,
        quantity=plan.requested,
        unit_price=medicine.price,
        total=medicine.price * plan.requested,
        gst_rate=gst_rate,
        allocations=plan.allocations,
    )


def checkout(
    store: InventoryStore,
    request: CheckoutRequest,
    advisory: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Invoice:
    """
    Commit a sale atomically and return its invoice.

    Args:
        advisory: interaction warning from the external advisor, if any.
            While present it blocks checkout unless the request sets
            override_safety_hold.
        now: invoice timestamp (defaults to the current local time)

    Raises:
        SafetyHoldActive: advisory present and not overridden
        UnknownMedicine: a cart line references a medicine not in the catalog
        TransactionAborted: one or more lines cannot be fully allocated
    """
    quantities = merge_cart_lines(request.lines)
    if advisory and not request.override_safety_hold:
        raise SafetyHoldActive(advisory)

    gst_rate = Decimal(str(settings.DEFAULT_GST_RATE))
    created_at = now or datetime.now()

    with store.locked(*quantities) as medicines:
        plans: Dict[str, DeductionPlan] = {}
        failures: Dict[str, str] = {}
        for medicine_id, quantity in quantities.items():
            try:
                plans[medicine_id] = allocation_service.plan_deduction(medicines[medicine_id], quantity)
            except InsufficientStock as e:
                failures[medicine_id] = str(e)

        if failures:
            AuditLog.log_sale_aborted(failures)
            raise TransactionAborted(failures)

        for medicine_id, plan in plans.items():
            allocation_service.apply_plan(medicines[medicine_id], plan)

        items = tuple(build_line_item(medicines[mid], plans[mid], gst_rate) for mid in quantities)
        invoice = Invoice(
            id=store.next_invoice_id(),
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            health_id=request.health_id,
            created_at=created_at,
            items=items,
            total_amount=sum((i.total for i in items), Decimal("0")),
            gst_total=sum((calculate_gst(i.total, i.gst_rate) for i in items), Decimal("0")),
            payment_method=request.payment_method,
            refill_reminder=request.refill_reminder,
            is_chronic=request.is_chronic,
            treatment_duration=request.treatment_duration,
            safety_override=advisory if advisory else None,
        )
        store.append_invoice(invoice)

    if advisory:
        AuditLog.log_safety_override(list(quantities), advisory)
    AuditLog.log_sale(
        invoice.id,
        float(invoice.total_amount),
        [
            {
                "medicine_id": item.medicine_id,
                "quantity": item.quantity,
                "allocations": [{"batch_id": a.batch_id, "quantity": a.quantity} for a in item.allocations],
            }
            for item in invoice.items
        ],
        safety_override=bool(advisory),
    )
    logger.info(f"Invoice {invoice.id} committed: {len(items)} line(s), total {invoice.total_amount}")

    store.notify(LedgerEvent(EventKind.SALE, tuple(quantities), invoice))
    return invoice
