"""Checkout (Billing/POS) and sales history."""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from datetime import date

from trustmeds.api.deps import get_advisor, get_store
from trustmeds.core.exceptions import UnknownMedicine
from trustmeds.schemas.records import InvoiceRecord
from trustmeds.schemas.sales import CheckoutRequest
from trustmeds.services import transaction_service
from trustmeds.services.advisory_service import InteractionAdvisor
from trustmeds.store.catalog import InventoryStore

router = APIRouter()


@router.post("/checkout", response_model=InvoiceRecord, status_code=201)
def checkout(
    payload: CheckoutRequest,
    store: InventoryStore = Depends(get_store),
    advisor: InteractionAdvisor = Depends(get_advisor),
):
    """
    Commit the cart. Returns 423 while an interaction advisory is pending;
    resubmit with override_safety_hold=true to proceed past it.
    """
    names = []
    for medicine_id in transaction_service.merge_cart_lines(payload.lines):
        try:
            names.append(store.get_copy(medicine_id).name)
        except UnknownMedicine:
            continue  # reported by checkout itself
    advisory = advisor.check(names)
    invoice = transaction_service.checkout(store, payload, advisory=advisory)
    return InvoiceRecord.model_validate(invoice)


@router.get("/invoices", response_model=List[InvoiceRecord])
def list_invoices(
    search: Optional[str] = Query(None, description="Customer name or phone"),
    on: Optional[date] = Query(None, description="Only invoices from this day"),
    store: InventoryStore = Depends(get_store),
):
    """Newest first."""
    invoices = store.invoices()
    if on is not None:
        invoices = [inv for inv in invoices if inv.created_at.date() == on]
    if search:
        needle = search.strip().lower()
        invoices = [
            inv for inv in invoices
            if needle in inv.customer_name.lower() or needle in inv.customer_phone
        ]
    invoices.sort(key=lambda inv: inv.created_at, reverse=True)
    return [InvoiceRecord.model_validate(inv) for inv in invoices]
