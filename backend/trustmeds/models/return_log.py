from sqlalchemy import Column, Integer, String, DateTime
from trustmeds.db.base import Base


class ReturnLogRow(Base):
    """RMA record. References medicine/batch by id only; survives their deletion."""
    __tablename__ = "return_logs"

    id = Column(String(32), primary_key=True)
    rma_number = Column(String(16), nullable=False, unique=True)
    medicine_id = Column(String(32), nullable=False, index=True)
    medicine_name = Column(String(255), nullable=False)
    batch_id = Column(String(32), nullable=False)
    batch_number = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    reason = Column(String(500), nullable=False)
    created_at = Column(DateTime, nullable=False, index=True)
    manufacturer = Column(String(255), default="")
