"""
In-memory ledger entities.

Medicine and Batch are live, mutable catalog state owned by the store.
Invoice, InvoiceLineItem, ReturnLog and StockAdjustment are immutable facts:
once built they are appended to history and never edited.

Batch.stock is changed only through `services.ledger_service`.
"""
import copy
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from trustmeds.core.exceptions import InvalidQuantity


class Department(str, Enum):
    PHARMACY = "Pharmacy"
    SURGICAL = "Surgical"
    FMCG = "FMCG"


class Category(str, Enum):
    TABLET = "Tablet"
    CAPSULE = "Capsule"
    SYRUP = "Syrup"
    INJECTION = "Injection"
    CREAM = "Cream"
    SURGICAL = "Surgical"
    COSMETIC = "Cosmetic"
    GENERAL = "General"


class PaymentMethod(str, Enum):
    CASH = "Cash"
    CARD = "Card"
    UPI = "UPI"


class ReturnReason(str, Enum):
    EXPIRED = "Expired"
    NEAR_EXPIRY = "Near Expiry"
    DAMAGED = "Damaged"
    DEFECTIVE = "Defective"
    OVERSTOCK = "Overstock"
    OTHER = "Other"


@dataclass(frozen=True)
class StockAdjustment:
    id: str
    timestamp: datetime
    requested_delta: int
    applied_delta: int
    new_total: int
    reason: Optional[str] = None
    user: Optional[str] = None

    @property
    def clamped(self) -> bool:
        return self.requested_delta != self.applied_delta


@dataclass
class Batch:
    id: str
    batch_number: str
    expiry_date: date
    stock: int
    purchase_price: Decimal
    adjustments: List[StockAdjustment] = field(default_factory=list)

    def __post_init__(self):
        if self.stock < 0:
            raise InvalidQuantity(f"Batch {self.id} cannot hold negative stock", batch_id=self.id)
        if self.purchase_price < 0:
            raise ValueError("Purchase price must be >= 0")


@dataclass
class Medicine:
    id: str
    name: str
    generic_name: str
    brand: str
    manufacturer: str
    department: Department
    category: Category
    price: Decimal
    min_threshold: int
    barcode: Optional[str] = None
    description: Optional[str] = None
    batches: List[Batch] = field(default_factory=list)

    def __post_init__(self):
        if self.price < 0:
            raise ValueError("Price must be >= 0")
        if self.min_threshold < 0:
            raise ValueError("Minimum stock threshold must be >= 0")

    def batch(self, batch_id: str) -> Optional[Batch]:
        for b in self.batches:
            if b.id == batch_id:
                return b
        return None

    def copy(self) -> "Medicine":
        """Detached deep copy, safe to hand out of the store."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class Allocation:
    """Units of one batch that fulfilled (part of) an invoice line."""
    batch_id: str
    batch_number: str
    expiry_date: date
    quantity: int
    purchase_price: Decimal

    @property
    def cost(self) -> Decimal:
        return self.purchase_price * self.quantity


@dataclass(frozen=True)
class InvoiceLineItem:
    medicine_id: str
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    gst_rate: Decimal
    allocations: Tuple[Allocation, ...] = ()

    @property
    def cost(self) -> Decimal:
        return sum((a.cost for a in self.allocations), Decimal("0"))


@dataclass(frozen=True)
class Invoice:
    id: str
    customer_name: str
    customer_phone: str
    created_at: datetime
    items: Tuple[InvoiceLineItem, ...]
    total_amount: Decimal
    gst_total: Decimal
    payment_method: PaymentMethod
    health_id: Optional[str] = None
    refill_reminder: bool = False
    is_chronic: bool = False
    treatment_duration: Optional[int] = None  # days of supply
    safety_override: Optional[str] = None  # advisory text the cashier proceeded past


@dataclass(frozen=True)
class ReturnLog:
    id: str
    rma_number: str
    medicine_id: str
    medicine_name: str
    batch_id: str
    batch_number: str
    quantity: int
    reason: str
    created_at: datetime
    manufacturer: str


@dataclass(frozen=True)
class DashboardStats:
    as_of: date
    total_stock_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    expiring_near_count: int
    expiring_far_count: int
    expired_batch_count: int
    today_sales: Decimal
    estimated_profit: Decimal
