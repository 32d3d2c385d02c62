from trustmeds.store.catalog import EventKind, InventoryStore, LedgerEvent
from trustmeds.store.entities import (
    Allocation,
    Batch,
    Category,
    DashboardStats,
    Department,
    Invoice,
    InvoiceLineItem,
    Medicine,
    PaymentMethod,
    ReturnLog,
    ReturnReason,
    StockAdjustment,
)

__all__ = [
    "EventKind", "InventoryStore", "LedgerEvent", "Allocation", "Batch", "Category", "DashboardStats",
    "Department", "Invoice", "InvoiceLineItem", "Medicine", "PaymentMethod", "ReturnLog",
    "ReturnReason", "StockAdjustment",
]
