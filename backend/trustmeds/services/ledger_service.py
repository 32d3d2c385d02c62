"""Batch ledger. The only place a batch's stock quantity is written.

Callers must hold the owning medicine's lock (`InventoryStore.locked`).
"""
from trustmeds.core.exceptions import InvalidQuantity, UnknownBatch
from trustmeds.store.entities import Batch, Medicine


def get_batch(medicine: Medicine, batch_id: str) -> Batch:
    batch = medicine.batch(batch_id)
    if batch is None:
        raise UnknownBatch(medicine.id, batch_id)
    return batch


def set_batch_quantity(batch: Batch, quantity: int) -> Batch:
    if quantity < 0:
        raise InvalidQuantity(
            f"Batch {batch.batch_number} cannot be set to {quantity}", batch_id=batch.id
        )
    batch.stock = int(quantity)
    return batch


def adjust_batch_quantity(batch: Batch, delta: int) -> Batch:
    """Apply `delta` to the batch; rejects any result below zero."""
    result = batch.stock + delta
    if result < 0:
        raise InvalidQuantity(
            f"Batch {batch.batch_number} has {batch.stock} units; cannot apply {delta}",
            batch_id=batch.id,
        )
    return set_batch_quantity(batch, result)
