from sqlalchemy.orm import Session
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import List, Optional, Tuple, Dict
from fastapi import Depends
from datetime import datetime
import logging
import time

from apps.job_cards.models import JobCard, JobStatus, CreatorKind
from apps.job_cards.schemas import JobCardCreate, JobCardUpdate
from apps.garages.models import Garage
from apps.garages.services import EngineerService
from apps.billing.models import Bill
from apps.billing.costing import normalize_part_lines, normalize_labour_lines, labour_totals
from apps.auth.services import Actor, STAFF, ensure_garage_access
from core.config import settings
from core.database import get_db
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.sequences import SequenceAllocator, format_invoice_number

logger = logging.getLogger(__name__)


class JobCardService:
    def __init__(self, db: Session):
        self.db = db

    def generate_job_id(self) -> str:
        return f"JC-{int(time.time() * 1000)}"

    def _get_garage(self, garage_id: int) -> Garage:
        garage = self.db.query(Garage).filter(Garage.id == garage_id).first()
        if not garage:
            raise NotFoundError("Garage not found")
        return garage

    def _load(self, job_card_id: int, actor: Actor) -> JobCard:
        """Fetch a job card the actor may work on; staff only reach the job cards they created."""
        job_card = self.db.query(JobCard).filter(JobCard.id == job_card_id).first()
        if not job_card:
            raise NotFoundError("Job Card not found")
        ensure_garage_access(actor, job_card.garage_id)
        if actor.role == STAFF and not self.created_by(job_card, actor):
            raise ForbiddenError("Access denied to this job card")
        return job_card

    @staticmethod
    def created_by(job_card: JobCard, actor: Actor) -> bool:
        return job_card.created_by_kind.value == actor.kind and job_card.created_by_id == actor.id

    def get_job_card(self, job_card_id: int, actor: Actor) -> JobCard:
        return self._load(job_card_id, actor)

    def list_job_cards(
        self,
        garage_id: int,
        actor: Actor,
        status: Optional[JobStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[JobCard], int]:
        ensure_garage_access(actor, garage_id)
        self._get_garage(garage_id)

        query = self.db.query(JobCard).filter(JobCard.garage_id == garage_id)
        if status:
            query = query.filter(JobCard.status == status)
        if actor.role == STAFF:
            query = query.filter(
                JobCard.created_by_kind == CreatorKind.USER,
                JobCard.created_by_id == actor.id,
            )

        total = query.count()
        job_cards = query.order_by(JobCard.job_card_number.desc()).offset(skip).limit(limit).all()
        return job_cards, total

    def create_job_card(self, job_card_data: JobCardCreate, actor: Actor) -> JobCard:
        """Create a job card with the next number of its garage. Engineers are assigned later."""
        ensure_garage_access(actor, job_card_data.garage_id)
        self._get_garage(job_card_data.garage_id)

        fields = job_card_data.model_dump()
        attempts = max(1, settings.SEQUENCE_RETRY_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                number = SequenceAllocator(self.db).next_job_card_number(job_card_data.garage_id)
                db_job_card = JobCard(
                    **fields,
                    job_card_number=number,
                    job_id=self.generate_job_id(),
                    status=JobStatus.IN_PROGRESS,
                    engineer_ids=[],
                    parts_used=[],
                    labour_service_cost=[],
                    generate_bill=False,
                    created_by_kind=CreatorKind(actor.kind),
                    created_by_id=actor.id,
                )
                self.db.add(db_job_card)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    f"Job card number collision for garage {job_card_data.garage_id} "
                    f"(attempt {attempt}/{attempts}), retrying"
                )
                continue

            self.db.refresh(db_job_card)
            logger.info(
                f"Created job card #{db_job_card.job_card_number} ({db_job_card.job_id}) "
                f"for garage {db_job_card.garage_id}"
            )
            return db_job_card

        raise ConflictError("Job card number already exists, retry")

    def update_job_card(self, job_card_id: int, job_card_update: JobCardUpdate, actor: Actor) -> JobCard:
        db_job_card = self._load(job_card_id, actor)

        update_data = job_card_update.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            setattr(db_job_card, field, value)

        self.db.commit()
        self.db.refresh(db_job_card)
        logger.info(f"Updated job card {db_job_card.job_id} fields: {', '.join(update_data) or 'none'}")
        return db_job_card

    def delete_job_card(self, job_card_id: int, actor: Actor) -> bool:
        db_job_card = self._load(job_card_id, actor)
        job_id = db_job_card.job_id
        self.db.delete(db_job_card)
        self.db.commit()
        logger.info(f"Deleted job card {job_id}")
        return True

    def assign_engineers(self, job_card_id: int, engineer_ids: List[int], actor: Actor) -> JobCard:
        """Replace the engineers on a job card; every engineer must belong to its garage."""
        if not engineer_ids:
            raise ValidationError("Please provide a list of engineer ids", field="engineer_ids")

        db_job_card = self._load(job_card_id, actor)
        unique_ids = list(dict.fromkeys(engineer_ids))
        engineers = EngineerService(self.db).find_in_garage(unique_ids, db_job_card.garage_id)
        if len(engineers) != len(unique_ids):
            raise ForbiddenError("Some engineers are invalid or not in this garage")

        db_job_card.engineer_ids = unique_ids
        self.db.commit()
        self.db.refresh(db_job_card)
        logger.info(f"Assigned engineers {unique_ids} to job card {db_job_card.job_id}")
        return db_job_card

    def assign_job_cards_to_engineer(self, engineer_id: int, job_card_ids: List[int], actor: Actor) -> List[JobCard]:
        """Add one engineer to several job cards of the engineer's garage, keeping the engineers already assigned."""
        if not job_card_ids:
            raise ValidationError("Please provide a list of job card ids", field="job_card_ids")

        engineer = EngineerService(self.db).get_engineer(engineer_id)
        ensure_garage_access(actor, engineer.garage_id)

        job_cards = [self._load(job_card_id, actor) for job_card_id in dict.fromkeys(job_card_ids)]
        for job_card in job_cards:
            if job_card.garage_id != engineer.garage_id:
                raise ForbiddenError(f"Job card {job_card.id} is not in the engineer's garage")

        for job_card in job_cards:
            if engineer.id not in (job_card.engineer_ids or []):
                # New list so the JSON column is flagged dirty
                job_card.engineer_ids = list(job_card.engineer_ids or []) + [engineer.id]
        self.db.commit()
        for job_card in job_cards:
            self.db.refresh(job_card)
        logger.info(f"Assigned engineer {engineer.id} to job cards {[j.id for j in job_cards]}")
        return job_cards

    def update_status(self, job_card_id: int, status: JobStatus, actor: Actor) -> JobCard:
        db_job_card = self._load(job_card_id, actor)
        db_job_card.status = JobStatus(status)
        self.db.commit()
        self.db.refresh(db_job_card)
        logger.info(f"Updated job card {db_job_card.job_id} status to {db_job_card.status.value}")
        return db_job_card

    def log_work_progress(
        self,
        job_card_id: int,
        actor: Actor,
        parts_used=None,
        labour_service_cost=None,
        labor_hours: Optional[float] = None,
        engineer_remarks: Optional[str] = None,
        status=None,
    ) -> JobCard:
        """Write only the supplied fields. All lines are validated before anything is written."""
        db_job_card = self._load(job_card_id, actor)

        parts = normalize_part_lines(parts_used) if parts_used is not None else None
        labour = normalize_labour_lines(labour_service_cost) if labour_service_cost is not None else None
        if status is not None:
            try:
                status = JobStatus(status)
            except ValueError:
                raise ValidationError(f"Invalid status '{status}'", field="status")

        if parts is not None:
            db_job_card.parts_used = parts
        if labour is not None:
            db_job_card.labour_service_cost = labour
            db_job_card.labor_services_total, db_job_card.labor_services_tax = labour_totals(labour)
        if labor_hours is not None:
            db_job_card.labor_hours = labor_hours
        if engineer_remarks is not None:
            db_job_card.engineer_remarks = engineer_remarks
        if status is not None:
            db_job_card.status = status

        self.db.commit()
        self.db.refresh(db_job_card)
        logger.info(f"Work progress logged on job card {db_job_card.job_id}")
        return db_job_card

    def quality_check(self, job_card_id: int, notes: Optional[str], actor: Actor) -> JobCard:
        """One-time sign-off by the assigned engineers."""
        db_job_card = self._load(job_card_id, actor)
        if not db_job_card.engineer_ids:
            raise ValidationError("No engineer assigned to perform quality check", field="engineer_ids")
        if db_job_card.qc_date is not None:
            raise ConflictError("Quality Check already completed")

        now = datetime.utcnow()
        # Conditional update so two concurrent checks cannot both succeed
        result = self.db.execute(
            update(JobCard)
            .where(JobCard.id == db_job_card.id, JobCard.qc_date.is_(None))
            .values(
                qc_done_by=list(db_job_card.engineer_ids),
                qc_notes=notes or "No remarks",
                qc_date=now,
                qc_bill_approved=True,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self.db.rollback()
            raise ConflictError("Quality Check already completed")

        self.db.commit()
        self.db.refresh(db_job_card)
        logger.info(f"Quality check completed on job card {db_job_card.job_id}")
        return db_job_card

    def mark_for_billing(self, job_card_id: int, actor: Actor) -> JobCard:
        """Flag the job card as ready to bill. Bills are generated separately."""
        db_job_card = self._load(job_card_id, actor)
        if not db_job_card.generate_bill:
            db_job_card.generate_bill = True
            self.db.commit()
            self.db.refresh(db_job_card)
            logger.info(f"Job card {db_job_card.job_id} marked for billing")
        return db_job_card

    def latest_invoice_no(self, job_card: JobCard) -> Optional[str]:
        try:
            bill = self.db.query(Bill).filter(Bill.job_card_id == job_card.id).order_by(
                Bill.created_at.desc(), Bill.id.desc()
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Invoice lookup for job card {job_card.id} failed: {e}")
            return None
        return format_invoice_number(bill.invoice_no) if bill else None

    def job_card_to_response(self, job_card: JobCard) -> Dict:
        """Convert JobCard model to response dictionary"""
        return {
            "id": job_card.id,
            "garage_id": job_card.garage_id,
            "job_card_number": job_card.job_card_number,
            "job_id": job_card.job_id,
            "customer_number": job_card.customer_number,
            "customer_name": job_card.customer_name,
            "contact_number": job_card.contact_number,
            "email": job_card.email,
            "company": job_card.company,
            "car_number": job_card.car_number,
            "model": job_card.model,
            "kilometer": job_card.kilometer,
            "fuel_type": job_card.fuel_type,
            "fuel_level": job_card.fuel_level,
            "insurance_provider": job_card.insurance_provider,
            "policy_number": job_card.policy_number,
            "expiry_date": job_card.expiry_date,
            "registration_number": job_card.registration_number,
            "job_type": job_card.job_type,
            "excess_amount": job_card.excess_amount or 0.0,
            "job_details": job_card.job_details,
            "images": job_card.images or [],
            "video": job_card.video,
            "status": job_card.status,
            "engineer_ids": job_card.engineer_ids or [],
            "parts_used": job_card.parts_used or [],
            "labour_service_cost": job_card.labour_service_cost or [],
            "labor_hours": job_card.labor_hours,
            "labor_services_total": job_card.labor_services_total or 0.0,
            "labor_services_tax": job_card.labor_services_tax or 0.0,
            "engineer_remarks": job_card.engineer_remarks,
            "quality_check": {
                "done_by": job_card.qc_done_by,
                "notes": job_card.qc_notes,
                "date": job_card.qc_date,
                "bill_approved": bool(job_card.qc_bill_approved),
            },
            "generate_bill": job_card.generate_bill,
            "created_by_kind": job_card.created_by_kind,
            "created_by_id": job_card.created_by_id,
            "invoice_no": self.latest_invoice_no(job_card),
            "created_at": job_card.created_at,
            "updated_at": job_card.updated_at,
        }


# Dependency injection
def get_job_card_service(db: Session = Depends(get_db)) -> JobCardService:
    return JobCardService(db)
