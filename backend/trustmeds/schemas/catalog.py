from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import date
from decimal import Decimal

from trustmeds.store.entities import Category, Department


class BatchCreate(BaseModel):
    batch_number: str = Field(min_length=1, max_length=64)
    expiry_date: date
    stock: int = Field(0, ge=0)
    purchase_price: Decimal = Field(Decimal("0"), ge=0)

    @field_validator("batch_number")
    @classmethod
    def strip_batch_number(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Batch number cannot be blank")
        return v


class MedicineCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    generic_name: str = ""
    brand: str = ""
    manufacturer: str = ""
    department: Department = Department.PHARMACY
    category: Category = Category.GENERAL
    price: Decimal = Field(ge=0)
    min_threshold: int = Field(0, ge=0)
    barcode: Optional[str] = None
    description: Optional[str] = None
    initial_batch: Optional[BatchCreate] = None

    @field_validator("barcode")
    @classmethod
    def blank_barcode_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None


class MedicineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    generic_name: Optional[str] = None
    brand: Optional[str] = None
    manufacturer: Optional[str] = None
    department: Optional[Department] = None
    category: Optional[Category] = None
    price: Optional[Decimal] = Field(None, ge=0)
    min_threshold: Optional[int] = Field(None, ge=0)
    barcode: Optional[str] = None
    description: Optional[str] = None
