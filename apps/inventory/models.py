from core.database import Base
from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey
from datetime import datetime


class InventoryPart(Base):
    __tablename__ = "inventory_parts"

    id = Column(Integer, primary_key=True, index=True)
    garage_id = Column(Integer, ForeignKey("garages.id", ondelete="CASCADE"), index=True, nullable=False)
    car_name = Column(String(255), nullable=False)
    model = Column(String(255), nullable=False)
    part_number = Column(String(100), index=True, nullable=False)
    part_name = Column(String(255), index=True, nullable=False)
    quantity = Column(Integer, default=0)
    purchase_price = Column(Float, nullable=False)
    selling_price = Column(Float, nullable=False)
    tax_amount = Column(Float, default=0.0)
    hsn_number = Column(String(50), nullable=False)
    igst = Column(Float, default=0.0)
    cgst_sgst = Column(Float, default=0.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
