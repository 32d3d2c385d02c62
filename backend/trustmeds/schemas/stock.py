from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional

from trustmeds.store.entities import ReturnReason


class ReturnRequest(BaseModel):
    """Return a specific physical lot (RMA). Bypasses FEFO."""
    medicine_id: str = Field(min_length=1)
    batch_id: str = Field(min_length=1)
    quantity: int = Field(gt=0)
    reason: ReturnReason = ReturnReason.EXPIRED
    reason_detail: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def require_detail_for_other(self):
        if self.reason == ReturnReason.OTHER and not (self.reason_detail or "").strip():
            raise ValueError("reason_detail is required when reason is Other")
        return self

    @property
    def reason_text(self) -> str:
        if self.reason == ReturnReason.OTHER:
            return self.reason_detail.strip()
        return self.reason.value


class AdjustmentRequest(BaseModel):
    medicine_id: str = Field(min_length=1)
    batch_id: str = Field(min_length=1)
    delta: int
    reason: Optional[str] = Field(None, max_length=255)
    user: Optional[str] = Field(None, max_length=100)

    @field_validator("delta")
    @classmethod
    def non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("Adjustment delta must be non-zero")
        return v
