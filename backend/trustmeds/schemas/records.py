from pydantic import BaseModel
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal

from trustmeds.services import aggregation_service
from trustmeds.store.entities import Category, Department, Medicine, PaymentMethod


class StockAdjustmentRecord(BaseModel):
    id: str
    timestamp: datetime
    requested_delta: int
    applied_delta: int
    new_total: int
    reason: Optional[str] = None
    user: Optional[str] = None

    class Config:
        from_attributes = True


class BatchRecord(BaseModel):
    id: str
    batch_number: str
    expiry_date: date
    stock: int
    purchase_price: Decimal
    adjustments: List[StockAdjustmentRecord] = []

    class Config:
        from_attributes = True


class MedicineRecord(BaseModel):
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
    batches: List[BatchRecord] = []
    total_stock: int = 0
    is_low_stock: bool = False

    class Config:
        from_attributes = True

    @classmethod
    def from_medicine(cls, med: Medicine) -> "MedicineRecord":
        record = cls.model_validate(med)
        record.total_stock = aggregation_service.total_stock(med)
        record.is_low_stock = aggregation_service.is_low_stock(med)
        return record


class AllocationRecord(BaseModel):
    batch_id: str
    batch_number: str
    expiry_date: date
    quantity: int
    purchase_price: Decimal

    class Config:
        from_attributes = True


class InvoiceLineRecord(BaseModel):
    medicine_id: str
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal
    gst_rate: Decimal
    allocations: List[AllocationRecord] = []

    class Config:
        from_attributes = True


class InvoiceRecord(BaseModel):
    id: str
    customer_name: str
    customer_phone: str
    health_id: Optional[str] = None
    created_at: datetime
    items: List[InvoiceLineRecord]
    total_amount: Decimal
    gst_total: Decimal
    payment_method: PaymentMethod
    refill_reminder: bool = False
    is_chronic: bool = False
    treatment_duration: Optional[int] = None
    safety_override: Optional[str] = None

    class Config:
        from_attributes = True


class ReturnLogRecord(BaseModel):
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

    class Config:
        from_attributes = True


class DashboardStatsRecord(BaseModel):
    as_of: date
    total_stock_value: Decimal
    low_stock_count: int
    out_of_stock_count: int
    expiring_near_count: int
    expiring_far_count: int
    expired_batch_count: int
    today_sales: Decimal
    estimated_profit: Decimal

    class Config:
        from_attributes = True
