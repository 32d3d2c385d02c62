from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Date, DateTime, Text
from sqlalchemy.orm import relationship
from trustmeds.db.base import Base


class MedicineRow(Base):
    """Persisted catalog entry. Mirrors `store.entities.Medicine`."""
    __tablename__ = "medicines"

    id = Column(String(32), primary_key=True)
    name = Column(String(255), nullable=False)
    generic_name = Column(String(255), default="")
    brand = Column(String(255), default="")
    manufacturer = Column(String(255), default="")
    department = Column(String(32), nullable=False, default="Pharmacy")
    category = Column(String(32), nullable=False, default="General")
    price = Column(Numeric(10, 2), nullable=False, default=0)  # ₹ per unit
    min_threshold = Column(Integer, nullable=False, default=0)
    barcode = Column(String(64), nullable=True, unique=True)
    description = Column(Text, nullable=True)

    batches = relationship(
        "BatchRow", back_populates="medicine", cascade="all, delete-orphan", order_by="BatchRow.id"
    )


class BatchRow(Base):
    __tablename__ = "batches"

    id = Column(String(32), primary_key=True)
    medicine_id = Column(String(32), ForeignKey("medicines.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_number = Column(String(64), nullable=False)
    expiry_date = Column(Date, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    purchase_price = Column(Numeric(10, 2), nullable=False, default=0)

    medicine = relationship("MedicineRow", back_populates="batches")
    adjustments = relationship(
        "StockAdjustmentRow", back_populates="batch", cascade="all, delete-orphan",
        order_by="StockAdjustmentRow.timestamp",
    )


class StockAdjustmentRow(Base):
    __tablename__ = "stock_adjustments"

    id = Column(String(32), primary_key=True)
    batch_id = Column(String(32), ForeignKey("batches.id", ondelete="CASCADE"), nullable=False, index=True)
    timestamp = Column(DateTime, nullable=False)
    requested_delta = Column(Integer, nullable=False)
    applied_delta = Column(Integer, nullable=False)
    new_total = Column(Integer, nullable=False)
    reason = Column(String(255), nullable=True)
    user = Column(String(100), nullable=True)

    batch = relationship("BatchRow", back_populates="adjustments")
