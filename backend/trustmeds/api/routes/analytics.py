"""
Analytics API: dashboard data.

Provides:
- Stat cards (stock value, low stock, expiry windows, today's sales, profit)
- Expiry tracker (expired + expiring batches)
- Procurement suggestions for low-stock medicines
- Chronic-care refill pipeline

Every response is recomputed from the current store; nothing is cached.
"""
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from trustmeds.api.deps import get_store
from trustmeds.schemas.records import DashboardStatsRecord
from trustmeds.services import reporting_service
from trustmeds.store.catalog import InventoryStore

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsRecord)
def get_stats(
    as_of: Optional[date] = Query(None, description="Defaults to today"),
    store: InventoryStore = Depends(get_store),
):
    stats = reporting_service.dashboard_stats(store.snapshot(), store.invoices(), as_of or date.today())
    return DashboardStatsRecord.model_validate(stats)


@router.get("/expiry")
def get_expiry_report(
    as_of: Optional[date] = Query(None),
    days: Optional[int] = Query(None, ge=1, description="Expiring window in days"),
    store: InventoryStore = Depends(get_store),
):
    entries = reporting_service.expiry_report(store.snapshot(), as_of or date.today(), days)
    return [asdict(e) for e in entries]


@router.get("/procurement")
def get_procurement(store: InventoryStore = Depends(get_store)):
    """Low-stock medicines with a suggested order quantity."""
    return [asdict(line) for line in reporting_service.procurement_suggestions(store.snapshot())]


@router.get("/refills")
def get_refills(
    as_of: Optional[date] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    due = reporting_service.refill_pipeline(store.invoices(), as_of or date.today())
    return [asdict(r) for r in due]
