from core.database import Base
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Text, Boolean, JSON, ForeignKey,
    UniqueConstraint, Enum as SQLEnum,
)
from datetime import datetime
import enum


class JobStatus(str, enum.Enum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    PENDING = "Pending"
    CANCELLED = "Cancelled"


class CreatorKind(str, enum.Enum):
    USER = "user"
    GARAGE = "garage"


class JobCard(Base):
    __tablename__ = "job_cards"
    __table_args__ = (
        UniqueConstraint("garage_id", "job_card_number", name="uq_job_cards_garage_number"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    garage_id = Column(Integer, ForeignKey("garages.id", ondelete="CASCADE"), index=True, nullable=False)
    job_card_number = Column(Integer, nullable=False)
    job_id = Column(String(50), index=True, nullable=False)  # e.g. JC-1718000000000

    # Customer information
    customer_number = Column(String(50), nullable=False)
    customer_name = Column(String(255), nullable=False)
    contact_number = Column(String(20), nullable=False)
    email = Column(String(255), nullable=True)
    company = Column(String(255), nullable=True)

    # Vehicle information
    car_number = Column(String(50), nullable=False)
    model = Column(String(255), nullable=False)
    kilometer = Column(Float, nullable=False)
    fuel_type = Column(String(50), nullable=False)
    fuel_level = Column(String(50), nullable=True)

    # Insurance
    insurance_provider = Column(String(255), nullable=True)
    policy_number = Column(String(100), nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    registration_number = Column(String(100), nullable=True)
    excess_amount = Column(Float, default=0.0)

    # Job details
    job_type = Column(String(100), nullable=True)
    job_details = Column(Text, nullable=True)
    images = Column(JSON, nullable=False, default=list)  # URLs
    video = Column(String(500), nullable=True)
    status = Column(SQLEnum(JobStatus), default=JobStatus.IN_PROGRESS, nullable=False)

    # Work log
    engineer_ids = Column(JSON, nullable=False, default=list)
    parts_used = Column(JSON, nullable=False, default=list)
    labour_service_cost = Column(JSON, nullable=False, default=list)
    labor_hours = Column(Float, nullable=True)
    labor_services_total = Column(Float, default=0.0)
    labor_services_tax = Column(Float, default=0.0)
    engineer_remarks = Column(Text, nullable=True)

    # Quality check, recorded once
    qc_done_by = Column(JSON, nullable=True)
    qc_notes = Column(Text, nullable=True)
    qc_date = Column(DateTime, nullable=True)
    qc_bill_approved = Column(Boolean, default=False)

    generate_bill = Column(Boolean, default=False, nullable=False)

    # Creator is either a staff user or the garage account itself
    created_by_kind = Column(SQLEnum(CreatorKind), nullable=False)
    created_by_id = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
