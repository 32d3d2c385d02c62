"""Returns (RMA) and manual stock adjustments."""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from trustmeds.api.deps import get_store
from trustmeds.schemas.records import BatchRecord, ReturnLogRecord
from trustmeds.schemas.stock import AdjustmentRequest, ReturnRequest
from trustmeds.services import return_service
from trustmeds.store.catalog import InventoryStore

router = APIRouter()


@router.post("/returns", response_model=ReturnLogRecord, status_code=201)
def create_return(payload: ReturnRequest, store: InventoryStore = Depends(get_store)):
    return ReturnLogRecord.model_validate(return_service.process_return(store, payload))


@router.get("/returns", response_model=List[ReturnLogRecord])
def list_returns(
    medicine_id: Optional[str] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    """RMA history, newest first."""
    logs = store.returns()
    if medicine_id:
        logs = [log for log in logs if log.medicine_id == medicine_id]
    logs.sort(key=lambda log: log.created_at, reverse=True)
    return [ReturnLogRecord.model_validate(log) for log in logs]


@router.post("/adjustments", response_model=BatchRecord)
def create_adjustment(payload: AdjustmentRequest, store: InventoryStore = Depends(get_store)):
    """Decreases past zero are clamped to zero; see the adjustment's applied_delta."""
    return BatchRecord.model_validate(return_service.adjust_stock(store, payload))
