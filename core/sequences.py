"""
Per-garage sequence allocation.

Job-card numbers and invoice numbers are drawn from counter rows keyed by
``(garage_id, name)``. The row is locked (``SELECT ... FOR UPDATE``) inside the
caller's transaction, so two requests for the same garage never receive the
same value; the value is only consumed if the caller commits.

A counter that does not exist yet is seeded from the data already stored:
the highest job-card number of the garage, or the digits of the most recent
bill in the invoice series. Deleting a job card never lowers a counter.
"""
import logging
import re
from typing import Callable

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.database import Base
from apps.billing.models import Bill, BillType
from apps.job_cards.models import JobCard

logger = logging.getLogger(__name__)

INVOICE_PREFIX = "INV-"
INVOICE_WIDTHS = {
    BillType.GST: 3,
    BillType.NON_GST: 2,
}


class SequenceCounter(Base):
    __tablename__ = "sequence_counters"
    __table_args__ = (
        UniqueConstraint("garage_id", "name", name="uq_sequence_counters_garage_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    garage_id = Column(Integer, ForeignKey("garages.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    current_value = Column(Integer, nullable=False, default=0)


def invoice_digits(value) -> int:
    """Integer value of an invoice number, ignoring any non-digit characters (0 if none)."""
    digits = re.sub(r"\D", "", str(value or ""))
    return int(digits) if digits else 0


def pad_invoice_number(value: int, bill_type) -> str:
    return str(value).zfill(INVOICE_WIDTHS[BillType(bill_type)])


def format_invoice_number(invoice_no: str) -> str:
    return f"{INVOICE_PREFIX}{invoice_no}"


class SequenceAllocator:
    JOB_CARD = "job_card"

    def __init__(self, session: Session):
        self.db = session

    @staticmethod
    def invoice_sequence_name(bill_type) -> str:
        return f"invoice:{BillType(bill_type).value}"

    def next_job_card_number(self, garage_id: int) -> int:
        return self._next_value(
            garage_id, self.JOB_CARD, lambda: self._max_job_card_number(garage_id)
        )

    def next_invoice_number(self, garage_id: int, bill_type) -> str:
        """Next stored invoice number of the series, zero padded ("001" / "01")."""
        bill_type = BillType(bill_type)
        value = self._next_value(
            garage_id,
            self.invoice_sequence_name(bill_type),
            lambda: self._last_invoice_value(garage_id, bill_type),
        )
        return pad_invoice_number(value, bill_type)

    def last_invoice_number(self, garage_id: int, bill_type) -> str:
        """Display form of the most recent invoice of the series, "INV-001"/"INV-01" if empty."""
        bill_type = BillType(bill_type)
        value = self._last_invoice_value(garage_id, bill_type) or 1
        return format_invoice_number(pad_invoice_number(value, bill_type))

    def _max_job_card_number(self, garage_id: int) -> int:
        current = self.db.query(func.max(JobCard.job_card_number)).filter(
            JobCard.garage_id == garage_id
        ).scalar()
        return current or 0

    def _last_invoice_value(self, garage_id: int, bill_type: BillType) -> int:
        last_bill = self.db.query(Bill).filter(
            Bill.garage_id == garage_id,
            Bill.bill_type == bill_type,
        ).order_by(Bill.created_at.desc(), Bill.id.desc()).first()
        if not last_bill:
            return 0
        return invoice_digits(last_bill.invoice_no)

    def _locked_counter(self, garage_id: int, name: str):
        return self.db.execute(
            select(SequenceCounter)
            .where(SequenceCounter.garage_id == garage_id, SequenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _next_value(self, garage_id: int, name: str, seed: Callable[[], int]) -> int:
        counter = self._locked_counter(garage_id, name)

        if counter is None:
            start = seed() + 1
            savepoint = self.db.begin_nested()
            try:
                self.db.add(SequenceCounter(garage_id=garage_id, name=name, current_value=start))
                self.db.flush()
                savepoint.commit()
                logger.debug("Seeded sequence %s for garage %s at %s", name, garage_id, start)
                return start
            except IntegrityError:
                savepoint.rollback()
                logger.warning(
                    "Sequence %s for garage %s was created concurrently, re-reading", name, garage_id
                )
                counter = self._locked_counter(garage_id, name)
                if counter is None:
                    raise

        counter.current_value += 1
        self.db.flush()
        logger.debug("Allocated %s=%s for garage %s", name, counter.current_value, garage_id)
        return counter.current_value
