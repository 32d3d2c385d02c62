import re
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional

from trustmeds.store.entities import PaymentMethod

DEFAULT_TREATMENT_DAYS = 30


def sanitize_customer_name(name: str) -> str:
    """Sanitize customer name before it is frozen onto an invoice.

    - Strip and collapse whitespace
    - Keep only letters, numbers, spaces, hyphens, apostrophes, dots
    - Limit length to 100 characters
    """
    if not name:
        raise ValueError("Customer name cannot be empty")

    name = " ".join(name.strip().split())
    name = re.sub(r"[^\w\s\-'.]", "", name)
    name = name[:100]

    if len(name.strip()) < 2:
        raise ValueError("Customer name must be at least 2 characters after sanitization")

    return name.strip()


class CartLine(BaseModel):
    medicine_id: str = Field(min_length=1)
    quantity: int = Field(gt=0, le=100000)


class CheckoutRequest(BaseModel):
    """A finished cart. Nothing is reserved until this is submitted."""
    lines: List[CartLine] = Field(min_length=1)
    customer_name: str
    customer_phone: str = Field(pattern=r"^\d{10}$")
    health_id: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.UPI
    refill_reminder: bool = False
    is_chronic: bool = False
    treatment_duration: Optional[int] = Field(None, gt=0, le=365)
    override_safety_hold: bool = False

    @field_validator("customer_name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        return sanitize_customer_name(v)

    @field_validator("health_id")
    @classmethod
    def blank_health_id_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None

    @model_validator(mode="after")
    def align_treatment_duration(self):
        """Duration only means something for chronic-care sales."""
        if not self.is_chronic:
            self.treatment_duration = None
        elif self.treatment_duration is None:
            self.treatment_duration = DEFAULT_TREATMENT_DAYS
        return self
