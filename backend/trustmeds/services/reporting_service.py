"""
Dashboard / reporting projections.

Everything here is a pure function of (catalog snapshot, sales history,
as-of date). Nothing is stored or patched incrementally; callers pass in
`InventoryStore.snapshot()` and `InventoryStore.invoices()` each time.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from trustmeds.core.config import settings
from trustmeds.services import aggregation_service
from trustmeds.store.entities import DashboardStats, Invoice, Medicine


@dataclass(frozen=True)
class ExpiryEntry:
    medicine_id: str
    medicine_name: str
    manufacturer: str
    batch_id: str
    batch_number: str
    expiry_date: date
    stock: int
    days_remaining: int
    status: str  # "expired" or "expiring"


@dataclass(frozen=True)
class ProcurementLine:
    medicine_id: str
    name: str
    manufacturer: str
    current_stock: int
    min_threshold: int
    suggested_order: int


@dataclass(frozen=True)
class RefillDue:
    invoice_id: str
    customer_name: str
    customer_phone: str
    refill_date: date
    days_until: int  # negative when overdue
    medicines: List[str]


def sales_on(invoices: Iterable[Invoice], day: date) -> List[Invoice]:
    return [inv for inv in invoices if inv.created_at.date() == day]


def gross_margin(invoices: Iterable[Invoice]) -> Decimal:
    """Revenue minus the purchase cost of the batches that fulfilled it."""
    margin = Decimal("0")
    for inv in invoices:
        for item in inv.items:
            margin += item.total - item.cost
    return margin


def dashboard_stats(
    medicines: Sequence[Medicine],
    invoices: Sequence[Invoice],
    as_of: date,
    near_days: Optional[int] = None,
    far_days: Optional[int] = None,
) -> DashboardStats:
    near_days = settings.NEAR_EXPIRY_DAYS if near_days is None else near_days
    far_days = settings.FAR_EXPIRY_DAYS if far_days is None else far_days

    todays = sales_on(invoices, as_of)
    return DashboardStats(
        as_of=as_of,
        total_stock_value=sum((aggregation_service.stock_value(m) for m in medicines), Decimal("0")),
        low_stock_count=sum(1 for m in medicines if aggregation_service.is_low_stock(m)),
        out_of_stock_count=sum(1 for m in medicines if aggregation_service.is_out_of_stock(m)),
        expiring_near_count=aggregation_service.count_expiring(medicines, near_days, as_of),
        expiring_far_count=aggregation_service.count_expiring(medicines, far_days, as_of),
        expired_batch_count=aggregation_service.count_expired(medicines, as_of),
        today_sales=sum((inv.total_amount for inv in todays), Decimal("0")),
        estimated_profit=gross_margin(todays),
    )


def expiry_report(medicines: Sequence[Medicine], as_of: date, window_days: Optional[int] = None) -> List[ExpiryEntry]:
    """Expired batches first, then batches expiring within the window, soonest first."""
    window_days = settings.FAR_EXPIRY_DAYS if window_days is None else window_days
    entries = []
    for med in medicines:
        flagged = [(b, "expired") for b in aggregation_service.expired(med, as_of)]
        flagged += [(b, "expiring") for b in aggregation_service.expiring_within(med, window_days, as_of)]
        for batch, status in flagged:
            entries.append(
                ExpiryEntry(
                    medicine_id=med.id,
                    medicine_name=med.name,
                    manufacturer=med.manufacturer,
                    batch_id=batch.id,
                    batch_number=batch.batch_number,
                    expiry_date=batch.expiry_date,
                    stock=batch.stock,
                    days_remaining=(batch.expiry_date - as_of).days,
                    status=status,
                )
            )
    entries.sort(key=lambda e: (e.status != "expired", e.expiry_date, e.medicine_id, e.batch_id))
    return entries


def procurement_suggestions(medicines: Sequence[Medicine], multiplier: Optional[int] = None) -> List[ProcurementLine]:
    multiplier = settings.PROCUREMENT_MULTIPLIER if multiplier is None else multiplier
    lines = []
    for med in aggregation_service.low_stock_medicines(medicines):
        stock = aggregation_service.total_stock(med)
        lines.append(
            ProcurementLine(
                medicine_id=med.id,
                name=med.name,
                manufacturer=med.manufacturer,
                current_stock=stock,
                min_threshold=med.min_threshold,
                suggested_order=max(0, med.min_threshold * multiplier - stock),
            )
        )
    return lines


def refill_pipeline(invoices: Sequence[Invoice], as_of: date, alert_days: Optional[int] = None) -> List[RefillDue]:
    """Chronic-care customers whose supply runs out within `alert_days` (or already has)."""
    alert_days = settings.REFILL_ALERT_DAYS if alert_days is None else alert_days
    due = []
    for inv in invoices:
        if not inv.is_chronic or not inv.treatment_duration:
            continue
        refill_date = inv.created_at.date() + timedelta(days=inv.treatment_duration)
        days_until = (refill_date - as_of).days
        if days_until <= alert_days:
            due.append(
                RefillDue(
                    invoice_id=inv.id,
                    customer_name=inv.customer_name,
                    customer_phone=inv.customer_phone,
                    refill_date=refill_date,
                    days_until=days_until,
                    medicines=[item.name for item in inv.items],
                )
            )
    due.sort(key=lambda r: (r.days_until, r.invoice_id))
    return due
