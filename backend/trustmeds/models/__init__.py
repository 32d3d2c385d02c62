from trustmeds.models.medicine import MedicineRow, BatchRow, StockAdjustmentRow
from trustmeds.models.invoice import InvoiceRow, InvoiceItemRow
from trustmeds.models.return_log import ReturnLogRow

__all__ = ["MedicineRow", "BatchRow", "StockAdjustmentRow", "InvoiceRow", "InvoiceItemRow", "ReturnLogRow"]
