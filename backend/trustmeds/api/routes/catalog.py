"""Catalog: medicines and batches (Inventory master)."""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from trustmeds.api.deps import get_store
from trustmeds.core.exceptions import BusinessError
from trustmeds.schemas.catalog import BatchCreate, MedicineCreate, MedicineUpdate
from trustmeds.schemas.records import BatchRecord, MedicineRecord
from trustmeds.services import inventory_service
from trustmeds.store.catalog import InventoryStore

router = APIRouter()


@router.get("/medicines", response_model=List[MedicineRecord])
def list_medicines(
    search: Optional[str] = Query(None),
    store: InventoryStore = Depends(get_store),
):
    """Catalog with live totals. Search matches name, generic name, brand or barcode."""
    return [MedicineRecord.from_medicine(m) for m in inventory_service.search_medicines(store, search)]


@router.post("/medicines", response_model=MedicineRecord, status_code=201)
def create_medicine(payload: MedicineCreate, store: InventoryStore = Depends(get_store)):
    return MedicineRecord.from_medicine(inventory_service.register_medicine(store, payload))


@router.get("/medicines/{medicine_id}", response_model=MedicineRecord)
def get_medicine(medicine_id: str, store: InventoryStore = Depends(get_store)):
    return MedicineRecord.from_medicine(inventory_service.get_medicine(store, medicine_id))


@router.patch("/medicines/{medicine_id}", response_model=MedicineRecord)
def update_medicine(medicine_id: str, payload: MedicineUpdate, store: InventoryStore = Depends(get_store)):
    return MedicineRecord.from_medicine(inventory_service.update_medicine(store, medicine_id, payload))


@router.delete("/medicines/{medicine_id}")
def delete_medicine(medicine_id: str, store: InventoryStore = Depends(get_store)):
    med = inventory_service.delete_medicine(store, medicine_id)
    return {"deleted": med.id, "name": med.name}


@router.post("/medicines/{medicine_id}/batches", response_model=BatchRecord, status_code=201)
def add_batch(medicine_id: str, payload: BatchCreate, store: InventoryStore = Depends(get_store)):
    return BatchRecord.model_validate(inventory_service.add_batch(store, medicine_id, payload))


@router.delete("/medicines/{medicine_id}/batches/{batch_id}")
def remove_batch(medicine_id: str, batch_id: str, store: InventoryStore = Depends(get_store)):
    batch = inventory_service.remove_batch(store, medicine_id, batch_id)
    return {"deleted": batch.id, "batch_number": batch.batch_number, "stock": batch.stock}


@router.get("/barcode/{barcode}", response_model=MedicineRecord)
def lookup_barcode(barcode: str, store: InventoryStore = Depends(get_store)):
    med = inventory_service.find_by_barcode(store, barcode)
    if med is None:
        raise BusinessError.not_found("Medicine", f"barcode {barcode}")
    return MedicineRecord.from_medicine(med)
