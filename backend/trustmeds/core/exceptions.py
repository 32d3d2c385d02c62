"""
Inventory error taxonomy and its HTTP mapping.

Services raise the domain exceptions below and never know about HTTP.
The API layer turns them into responses through `BusinessError`, which
logs the detail internally and returns a safe, specific message.
"""
from typing import Dict, List, Optional

from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class InventoryError(Exception):
    """Base class for every deterministic, local ledger failure."""


class InvalidQuantity(InventoryError):
    """A quantity would drive a batch negative, or is not a positive amount."""

    def __init__(self, message: str, batch_id: Optional[str] = None):
        self.batch_id = batch_id
        super().__init__(message)


class InsufficientStock(InventoryError):
    """Total stock across all batches cannot cover the requested quantity."""

    def __init__(self, medicine_id: str, requested: int, available: int):
        self.medicine_id = medicine_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for medicine {medicine_id}: need {requested}, have {available}"
        )


class TransactionAborted(InventoryError):
    """One or more cart lines failed; nothing was committed."""

    def __init__(self, failures: Dict[str, str]):
        # medicine id -> reason
        self.failures = dict(failures)
        super().__init__(
            "Transaction aborted for medicine(s): " + ", ".join(sorted(self.failures))
        )

    @property
    def medicine_ids(self) -> List[str]:
        return sorted(self.failures)


class UnknownMedicine(InventoryError):
    def __init__(self, medicine_id: str):
        self.medicine_id = medicine_id
        super().__init__(f"Unknown medicine: {medicine_id}")


class UnknownBatch(InventoryError):
    def __init__(self, medicine_id: str, batch_id: str):
        self.medicine_id = medicine_id
        self.batch_id = batch_id
        super().__init__(f"Unknown batch {batch_id} for medicine {medicine_id}")


class SafetyHoldActive(InventoryError):
    """An interaction advisory is pending and the caller did not override it."""

    def __init__(self, advisory: str):
        self.advisory = advisory
        super().__init__(f"Checkout held by interaction advisory: {advisory}")


class DuplicateBarcode(InventoryError):
    def __init__(self, barcode: str, owner_id: str):
        self.barcode = barcode
        self.owner_id = owner_id
        super().__init__(f"Barcode {barcode} already assigned to medicine {owner_id}")


class BusinessError:
    """HTTP exceptions for the ledger's failure modes."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        """
        404 for an unknown medicine or batch id.

        Ids are not secrets here, so the detail names what was missing.
        """
        if reason:
            logger.warning(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation / business logic errors.

        OK to include specific details here since user caused the issue.
        Examples: "Return quantity exceeds batch stock", "Quantity must be positive"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str, medicine_ids: Optional[List[str]] = None) -> HTTPException:
        """
        409 when current stock state rejects the request.
        Example: a cart line that exceeds available stock.
        """
        logger.info(f"Conflict: {detail}")
        body = {"message": detail}
        if medicine_ids is not None:
            body["medicine_ids"] = medicine_ids
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=body,
        )

    @staticmethod
    def locked(advisory: str) -> HTTPException:
        """
        423 while a drug-interaction hold blocks checkout.
        The caller resubmits with override_safety_hold=true to proceed.
        """
        logger.warning(f"Checkout held: {advisory}")
        return HTTPException(
            status_code=status.HTTP_423_LOCKED,
            detail={"message": "Interaction advisory requires override", "advisory": advisory},
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """
        Generic 500 - logs actual error internally, hides from user.
        """
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=True
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )


def to_http_exception(exc: InventoryError) -> HTTPException:
    """Map a domain failure onto the HTTP error it should surface as."""
    if isinstance(exc, UnknownMedicine):
        return BusinessError.not_found("Medicine", str(exc))
    if isinstance(exc, UnknownBatch):
        return BusinessError.not_found("Batch", str(exc))
    if isinstance(exc, InvalidQuantity):
        return BusinessError.bad_request(str(exc))
    if isinstance(exc, TransactionAborted):
        return BusinessError.conflict(str(exc), medicine_ids=exc.medicine_ids)
    if isinstance(exc, InsufficientStock):
        return BusinessError.conflict(str(exc), medicine_ids=[exc.medicine_id])
    if isinstance(exc, DuplicateBarcode):
        return BusinessError.conflict(str(exc), medicine_ids=[exc.owner_id])
    if isinstance(exc, SafetyHoldActive):
        return BusinessError.locked(exc.advisory)
    return BusinessError.server_error(exc)
