from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, DateTime, Boolean, JSON
from sqlalchemy.orm import relationship
from trustmeds.db.base import Base


class InvoiceRow(Base):
    __tablename__ = "invoices"

    id = Column(String(32), primary_key=True)
    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(16), nullable=False)
    health_id = Column(String(64), nullable=True)  # ABHA id
    created_at = Column(DateTime, nullable=False, index=True)
    total_amount = Column(Numeric(12, 2), nullable=False)
    gst_total = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(8), nullable=False)
    refill_reminder = Column(Boolean, default=False)
    is_chronic = Column(Boolean, default=False)
    treatment_duration = Column(Integer, nullable=True)  # days of supply
    safety_override = Column(String(1000), nullable=True)

    items = relationship(
        "InvoiceItemRow", back_populates="invoice", cascade="all, delete-orphan", order_by="InvoiceItemRow.id"
    )


class InvoiceItemRow(Base):
    """Snapshot line. medicine_id is a weak reference: no foreign key."""
    __tablename__ = "invoice_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(String(32), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)
    medicine_id = Column(String(32), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    gst_rate = Column(Numeric(5, 2), nullable=False)
    # [{"batch_id", "batch_number", "expiry_date", "quantity", "purchase_price"}]
    allocations = Column(JSON, nullable=False, default=list)

    invoice = relationship("InvoiceRow", back_populates="items")
