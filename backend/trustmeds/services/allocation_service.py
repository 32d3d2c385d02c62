"""
FEFO allocation: which batches fulfil a sale.

Batches are consumed in ascending expiry order. Among equal expiries the
earlier-registered batch (lower id) goes first. Planning is read-only; a plan
is committed with `apply_plan` only once it covers the full quantity, so a
stockout never leaves a partial deduction behind.
"""
import logging
from dataclasses import dataclass
from typing import List, Tuple

from trustmeds.core.exceptions import InsufficientStock, InvalidQuantity
from trustmeds.services import ledger_service
from trustmeds.store.entities import Allocation, Batch, Medicine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeductionPlan:
    medicine_id: str
    requested: int
    allocations: Tuple[Allocation, ...]

    @property
    def deductions(self) -> List[Tuple[str, int]]:
        """(batch id, amount) pairs; amounts sum to `requested`."""
        return [(a.batch_id, a.quantity) for a in self.allocations]


def fefo_key(batch: Batch):
    # "b2" sorts before "b10": shorter generated ids were registered first
    return (batch.expiry_date, len(batch.id), batch.id)


def fefo_order(batches: List[Batch]) -> List[Batch]:
    return sorted(batches, key=fefo_key)


def plan_deduction(medicine: Medicine, quantity: int) -> DeductionPlan:
    """
    Build a deduction plan for `quantity` units of `medicine`.

    Raises:
        InvalidQuantity: quantity is not positive
        InsufficientStock: all batches together hold fewer than `quantity` units
    """
    if quantity <= 0:
        raise InvalidQuantity(f"Sale quantity must be positive, got {quantity}")

    remaining = quantity
    allocations: List[Allocation] = []
    for batch in fefo_order(medicine.batches):
        if remaining == 0:
            break
        take = min(remaining, batch.stock)
        if take == 0:
            continue
        allocations.append(
            Allocation(
                batch_id=batch.id,
                batch_number=batch.batch_number,
                expiry_date=batch.expiry_date,
                quantity=take,
                purchase_price=batch.purchase_price,
            )
        )
        remaining -= take

    if remaining > 0:
        available = quantity - remaining
        logger.info(f"Stockout planning {quantity} x {medicine.name}: only {available} available")
        raise InsufficientStock(medicine.id, quantity, available)

    return DeductionPlan(medicine_id=medicine.id, requested=quantity, allocations=tuple(allocations))


def apply_plan(medicine: Medicine, plan: DeductionPlan) -> None:
    """Commit a plan through the ledger. Caller holds the medicine lock."""
    if plan.medicine_id != medicine.id:
        raise ValueError(f"Plan for {plan.medicine_id} applied to {medicine.id}")
    for batch_id, amount in plan.deductions:
        batch = ledger_service.get_batch(medicine, batch_id)
        ledger_service.adjust_batch_quantity(batch, -amount)
