from core.database import Base
from core.exceptions import ImmutableRecordError
from sqlalchemy import (
    Column, Integer, String, Float, DateTime, Boolean, JSON, ForeignKey,
    UniqueConstraint, Enum as SQLEnum, event, inspect,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum


class BillType(str, enum.Enum):
    GST = "gst"
    NON_GST = "non-gst"


class Bill(Base):
    __tablename__ = "bills"
    __table_args__ = (
        UniqueConstraint("garage_id", "bill_type", "invoice_seq", name="uq_bills_garage_series_seq"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, index=True)
    garage_id = Column(Integer, ForeignKey("garages.id", ondelete="CASCADE"), index=True, nullable=False)
    job_card_id = Column(Integer, ForeignKey("job_cards.id", ondelete="SET NULL"), index=True, nullable=True)
    job_id = Column(String(50), index=True, nullable=True)

    # Stored as zero padded digits ("001"); shown as "INV-001"
    invoice_no = Column(String(20), nullable=False)
    invoice_seq = Column(Integer, nullable=False)
    bill_type = Column(
        SQLEnum(BillType, values_callable=lambda kinds: [k.value for k in kinds]),
        nullable=False,
        default=BillType.GST,
    )

    # Lines as billed
    parts = Column(JSON, nullable=False, default=list)
    services = Column(JSON, nullable=False, default=list)

    # Amounts
    total_parts_cost = Column(Float, nullable=False, default=0.0)
    total_labor_cost = Column(Float, nullable=False, default=0.0)
    sub_total = Column(Float, nullable=False, default=0.0)
    gst = Column(Float, nullable=False, default=0.0)
    gst_percentage = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    final_amount = Column(Float, nullable=False, default=0.0)
    hsn_code = Column(String(50), default="")

    # Snapshot of the garage at generation time
    logo = Column(String(500), nullable=True)
    bank_details = Column(JSON, nullable=False, default=dict)
    bill_to_party = Column(JSON, nullable=True)
    shift_to_party = Column(JSON, nullable=True)

    # Payment
    is_paid = Column(Boolean, default=False, nullable=False)
    payment_method = Column(String(50), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    job_card = relationship("JobCard")


# Only the payment columns may change once a bill exists
MUTABLE_BILL_FIELDS = {"is_paid", "payment_method", "paid_at", "updated_at", "job_card_id"}


@event.listens_for(Bill, "before_update")
def _check_bill_immutability(mapper, connection, target):
    state = inspect(target)
    column_keys = {prop.key for prop in mapper.column_attrs}
    changed = [
        attr.key
        for attr in state.attrs
        if attr.key in column_keys
        and attr.key not in MUTABLE_BILL_FIELDS
        and attr.history.has_changes()
    ]
    if changed:
        raise ImmutableRecordError(
            f"Bill {target.id} is immutable; cannot modify {', '.join(sorted(changed))}",
            fields=sorted(changed),
        )
