from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Callable, Dict, List, Optional
from fastapi import Depends
from datetime import datetime
import base64
import binascii
import logging

from apps.billing.models import Bill, BillType
from apps.billing.schemas import BillGenerateRequest, BillPartLine, BillServiceLine
from apps.billing.costing import calculate_bill_totals, validate_lines
from apps.job_cards.services import JobCardService
from apps.garages.models import Garage
from apps.auth.services import Actor, STAFF, ensure_garage_access
from core.config import settings
from core.database import get_db
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, UpstreamFailure, ValidationError
from core.mailer import MailResult, send_email
from core.sequences import SequenceAllocator, format_invoice_number

logger = logging.getLogger(__name__)


class BillingService:
    def __init__(self, db: Session, mailer: Callable[..., MailResult] = send_email):
        self.db = db
        self.mailer = mailer

    def _get_garage(self, garage_id: int) -> Garage:
        garage = self.db.query(Garage).filter(Garage.id == garage_id).first()
        if not garage:
            raise NotFoundError("Garage not found")
        return garage

    def _latest_bill_for_job(self, job_id: str) -> Optional[Bill]:
        return self.db.query(Bill).filter(Bill.job_id == job_id).order_by(
            Bill.created_at.desc(), Bill.id.desc()
        ).first()

    def generate_bill(self, job_card_id: int, request: BillGenerateRequest, actor: Actor) -> Bill:
        """
        Issue a bill for a job card.

        The invoice number is allocated in the same transaction as the bill,
        so a failed save never consumes a number. Logo and bank details are
        copied from the garage as they are now.
        """
        job_card = JobCardService(self.db).get_job_card(job_card_id, actor)
        garage = self._get_garage(job_card.garage_id)

        part_lines = validate_lines(BillPartLine, request.parts, "parts")
        service_lines = validate_lines(BillServiceLine, request.services, "services")
        totals = calculate_bill_totals(
            part_lines,
            service_lines,
            discount=request.discount,
            gst_percentage=request.gst_percentage,
            bill_type=request.bill_type,
        )
        parts = [line.model_dump() for line in part_lines]
        services = [line.model_dump() for line in service_lines]

        attempts = max(1, settings.SEQUENCE_RETRY_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                invoice_no = SequenceAllocator(self.db).next_invoice_number(garage.id, request.bill_type)
                bill = Bill(
                    garage_id=garage.id,
                    job_card_id=job_card.id,
                    job_id=job_card.job_id,
                    invoice_no=invoice_no,
                    invoice_seq=int(invoice_no),
                    bill_type=request.bill_type,
                    parts=parts,
                    services=services,
                    logo=garage.logo,
                    bank_details=dict(garage.bank_details or {}),
                    bill_to_party=request.bill_to_party,
                    shift_to_party=request.shift_to_party,
                    **totals.as_dict(),
                )
                self.db.add(bill)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                logger.warning(
                    f"Invoice number collision for garage {garage.id} ({request.bill_type.value}, "
                    f"attempt {attempt}/{attempts}), retrying"
                )
                continue

            self.db.refresh(bill)
            logger.info(
                f"Generated bill {format_invoice_number(bill.invoice_no)} ({bill.bill_type.value}) "
                f"for job card {job_card.job_id}: {bill.final_amount:.2f}"
            )
            return bill

        raise ConflictError("Invoice number already exists, retry")

    def bill_to_response(self, bill: Bill) -> Dict:
        """Convert Bill model to response dictionary"""
        return {
            "id": bill.id,
            "garage_id": bill.garage_id,
            "job_card_id": bill.job_card_id,
            "job_id": bill.job_id,
            "invoice_no": format_invoice_number(bill.invoice_no),
            "bill_type": bill.bill_type,
            "parts": bill.parts or [],
            "services": bill.services or [],
            "total_parts_cost": bill.total_parts_cost,
            "total_labor_cost": bill.total_labor_cost,
            "sub_total": bill.sub_total,
            "gst": bill.gst,
            "gst_percentage": bill.gst_percentage,
            "discount": bill.discount,
            "final_amount": bill.final_amount,
            "hsn_code": bill.hsn_code or "",
            "logo": bill.logo,
            "bank_details": bill.bank_details or {},
            "bill_to_party": bill.bill_to_party,
            "shift_to_party": bill.shift_to_party,
            "is_paid": bill.is_paid,
            "payment_method": bill.payment_method,
            "paid_at": bill.paid_at,
            "created_at": bill.created_at,
        }

    def get_bill(self, bill_id: int, actor: Actor) -> Bill:
        bill = self.db.query(Bill).filter(Bill.id == bill_id).first()
        if not bill:
            raise NotFoundError("Bill not found")
        ensure_garage_access(actor, bill.garage_id)
        return bill

    def list_bills(self, garage_id: int, actor: Actor) -> List[Bill]:
        ensure_garage_access(actor, garage_id)
        self._get_garage(garage_id)
        return self.db.query(Bill).filter(Bill.garage_id == garage_id).order_by(
            Bill.created_at.desc(), Bill.id.desc()
        ).all()

    def pay_bill(self, job_id: str, payment_method: str, actor: Actor) -> Bill:
        """Mark the latest bill of a job as paid. Only the payment fields change."""
        bill = self._latest_bill_for_job(job_id)
        if not bill:
            raise NotFoundError("Bill not found")
        ensure_garage_access(actor, bill.garage_id)

        bill.is_paid = True
        bill.payment_method = payment_method
        bill.paid_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(bill)
        logger.info(f"Bill {format_invoice_number(bill.invoice_no)} paid via {payment_method}")
        return bill

    def get_invoice(self, job_id: str, actor: Actor) -> Bill:
        bill = self._latest_bill_for_job(job_id)
        if not bill:
            raise NotFoundError("Invoice not found")
        ensure_garage_access(actor, bill.garage_id)
        if actor.role == STAFF and (
            bill.job_card is None or not JobCardService.created_by(bill.job_card, actor)
        ):
            raise ForbiddenError("Access denied to this invoice")
        return bill

    def last_invoice_number(self, garage_id: int, bill_type: BillType, actor: Actor) -> str:
        ensure_garage_access(actor, garage_id)
        self._get_garage(garage_id)
        return SequenceAllocator(self.db).last_invoice_number(garage_id, bill_type)

    @staticmethod
    def _decode_pdf(pdf_base64: str) -> bytes:
        # Browsers send data URLs: "data:application/pdf;base64,...."
        if pdf_base64.startswith("data:") and "," in pdf_base64:
            pdf_base64 = pdf_base64.split(",", 1)[1]
        try:
            return base64.b64decode(pdf_base64, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("PDF data is not valid base64", field="pdf_base64")

    def send_bill_email(
        self,
        bill_id: int,
        actor: Actor,
        email: Optional[str] = None,
        pdf_base64: Optional[str] = None,
        invoice_no: Optional[str] = None,
    ) -> Dict:
        """Email the client-rendered invoice PDF. The bill itself is never touched."""
        bill = self.get_bill(bill_id, actor)
        if not email:
            raise ValidationError("Email is required", field="email")
        if not pdf_base64:
            raise ValidationError("PDF data is required", field="pdf_base64")
        attachment = self._decode_pdf(pdf_base64)

        garage = self._get_garage(bill.garage_id)
        display_no = invoice_no or format_invoice_number(bill.invoice_no)
        subject = f"Invoice {display_no} - {garage.name}"
        body = (
            f"Dear Customer,\n\n"
            f"Please find attached invoice {display_no} from {garage.name}.\n"
            f"Amount due: {bill.final_amount:.2f}\n\n"
            f"Thank you for your business.\n"
            f"{garage.name}\n"
        )

        result = self.mailer(email, subject, body, attachment=attachment, filename=f"Invoice_{display_no}.pdf")
        if not result.success:
            logger.error(f"Sending invoice {display_no} to {email} failed: {result.error}")
            raise UpstreamFailure(f"Failed to send invoice email: {result.error}")

        logger.info(f"Invoice {display_no} emailed to {email}")
        return {
            "message": "Invoice sent successfully",
            "email": email,
            "invoice_no": display_no,
            "sent_at": datetime.utcnow(),
        }


# Dependency injection
def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)
