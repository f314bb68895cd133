from core.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime


class Garage(Base):
    __tablename__ = "garages"
    # Ids of deleted garages are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    address = Column(String(500), nullable=False)
    phone = Column(String(20), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    logo = Column(String(500), nullable=True)  # URL of the uploaded logo

    # Tax identifiers printed on invoices
    gst_num = Column(String(50), nullable=True)
    pan_num = Column(String(50), nullable=True)

    # account_holder_name, account_number, ifsc_code, bank_name, branch_name, upi_id
    bank_details = Column(JSON, nullable=False, default=dict)

    # Subscription
    subscription_type = Column(String(50), nullable=True)  # e.g. "6_months"
    subscription_start = Column(DateTime, default=datetime.utcnow)
    subscription_end = Column(DateTime, nullable=True)
    is_subscribed = Column(Boolean, default=False)
    # payment_id, amount, method, status
    payment_details = Column(JSON, nullable=False, default=dict)

    # Onboarding
    approved = Column(Boolean, default=False)  # super admin approves it
    is_verified = Column(Boolean, default=False)  # email verified
    verification_code = Column(String(10), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    engineers = relationship("Engineer", back_populates="garage", cascade="all, delete-orphan", passive_deletes=True)


class Engineer(Base):
    __tablename__ = "engineers"

    id = Column(Integer, primary_key=True, index=True)
    garage_id = Column(Integer, ForeignKey("garages.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    specialization = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    garage = relationship("Garage", back_populates="engineers")
