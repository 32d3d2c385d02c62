"""
Audit logging for stock-affecting operations.

Every committed sale, return, adjustment and catalog change is written as a
single JSON line to the "audit" logger so the ledger's history can be
reconstructed and shipped to centralized logging.
"""
import logging
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")


def _emit(event_type: str, level: int = logging.INFO, **fields: Any) -> None:
    log_entry = {
        "timestamp": datetime.utcnow().isoformat(),
        "event_type": event_type,
    }
    log_entry.update({k: v for k, v in fields.items() if v is not None})
    audit_logger.log(level, json.dumps(log_entry, default=str))


class AuditLog:
    """Central audit logging for ledger events."""

    @staticmethod
    def log_sale(
        invoice_id: str,
        total_amount: float,
        lines: List[Dict[str, Any]],
        safety_override: bool = False,
    ):
        """
        Log a committed sale.

        Each line carries the batch deductions that fulfilled it, so the
        audit trail alone is enough to replay stock movement.

        Usage:
            AuditLog.log_sale("INV-1A2B", 4500.0, [{"medicine_id": "1", "allocations": [...]}])
        """
        _emit(
            "sale.committed",
            invoice_id=invoice_id,
            total_amount=total_amount,
            lines=lines,
            safety_override=safety_override or None,
        )

    @staticmethod
    def log_sale_aborted(failures: Dict[str, str]):
        _emit("sale.aborted", logging.WARNING, failures=failures)

    @staticmethod
    def log_safety_override(medicine_ids: List[str], advisory: str):
        """
        Log a checkout that proceeded past an interaction advisory.

        Usage:
            AuditLog.log_safety_override(["1", "2"], "Warfarin + Aspirin raises bleeding risk.")
        """
        _emit("sale.safety_override", logging.WARNING, medicine_ids=medicine_ids, advisory=advisory)

    @staticmethod
    def log_return(rma_number: str, medicine_id: str, batch_id: str, quantity: int, reason: str):
        _emit(
            "stock.return",
            rma_number=rma_number,
            medicine_id=medicine_id,
            batch_id=batch_id,
            quantity=quantity,
            reason=reason,
        )

    @staticmethod
    def log_adjustment(
        medicine_id: str,
        batch_id: str,
        requested_delta: int,
        applied_delta: int,
        new_total: int,
        user: Optional[str] = None,
    ):
        """
        Log a manual stock adjustment.

        `clamped` is true when the requested decrease exceeded the batch stock
        and the result was floored at zero.
        """
        clamped = requested_delta != applied_delta
        _emit(
            "stock.adjustment",
            logging.WARNING if clamped else logging.INFO,
            medicine_id=medicine_id,
            batch_id=batch_id,
            requested_delta=requested_delta,
            applied_delta=applied_delta,
            new_total=new_total,
            clamped=clamped,
            user=user,
        )

    @staticmethod
    def log_catalog_change(
        action: str,  # "create", "update", "delete", "add_batch", "remove_batch"
        medicine_id: str,
        changes: Optional[Dict[str, Any]] = None,
    ):
        """
        Log catalog maintenance.

        Usage:
            AuditLog.log_catalog_change("delete", "2")
            AuditLog.log_catalog_change("update", "1", changes={"price": 160.0})
        """
        _emit(f"catalog.{action}", medicine_id=medicine_id, changes=changes)
