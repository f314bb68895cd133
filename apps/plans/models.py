from core.database import Base
from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, JSON, Text
from datetime import datetime


class Plan(Base):
    """A subscription plan garages pay for when they register or renew."""

    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False)  # INR
    duration_in_months = Column(Integer, nullable=False)
    subscription_type = Column(String(50), nullable=True)  # defaults to "<n>_months"
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
