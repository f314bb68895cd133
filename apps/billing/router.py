from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from apps.billing.schemas import (
    BillGenerateRequest, BillResponse, PaymentRequest, BillEmailRequest, BillEmailResponse,
    LastInvoiceResponse, FinancialReport,
)
from apps.billing.services import BillingService, get_billing_service
from apps.billing.reports import FinancialReporter
from apps.billing.models import BillType
from apps.auth.services import Actor, ensure_garage_access, get_current_actor, get_current_admin
from core.database import get_db

router = APIRouter()

# ============ STATIC ROUTES FIRST (before /{bill_id}) ============

@router.post(
    "/generate/{job_card_id}",
    response_model=BillResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate a bill",
    description="Issue an immutable bill for a job card with the next invoice number of its series"
)
def generate_bill(
    job_card_id: int,
    request: BillGenerateRequest,
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    bill = service.generate_bill(job_card_id, request, actor)
    return service.bill_to_response(bill)


@router.post("/pay", response_model=BillResponse, summary="Record payment of a job's bill")
def pay_bill(
    payment: PaymentRequest,
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    bill = service.pay_bill(payment.job_id, payment.payment_method, actor)
    return service.bill_to_response(bill)


@router.get("/invoice", response_model=BillResponse, summary="Latest invoice of a job")
def get_invoice(
    job_id: str = Query(..., min_length=1, description="Job id (JC-...)"),
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.bill_to_response(service.get_invoice(job_id, actor))


@router.get("/garage/{garage_id}", response_model=List[BillResponse], summary="List bills of a garage")
def list_bills(
    garage_id: int,
    service: BillingService = Depends(get_billing_service),
    admin: Actor = Depends(get_current_admin),
):
    return [service.bill_to_response(b) for b in service.list_bills(garage_id, admin)]


@router.get(
    "/garage/{garage_id}/last-invoice",
    response_model=LastInvoiceResponse,
    summary="Last invoice number of a series",
)
def last_invoice(
    garage_id: int,
    bill_type: BillType = Query(BillType.GST, description="gst or non-gst"),
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    return {"last_invoice_no": service.last_invoice_number(garage_id, bill_type, actor)}


@router.get(
    "/garage/{garage_id}/report",
    response_model=FinancialReport,
    summary="Financial report",
    description="Revenue, costs, profit and monthly breakdown of a garage's bills"
)
def financial_report(
    garage_id: int,
    start_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    end_date: Optional[date] = Query(None, description="Inclusive, YYYY-MM-DD"),
    db: Session = Depends(get_db),
    admin: Actor = Depends(get_current_admin),
):
    ensure_garage_access(admin, garage_id)
    return FinancialReporter(db).report(garage_id, start_date, end_date)

# ============ DYNAMIC ROUTES ============

@router.get("/{bill_id}", response_model=BillResponse, summary="Get bill by ID")
def get_bill(
    bill_id: int,
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.bill_to_response(service.get_bill(bill_id, actor))


@router.post("/{bill_id}/email", response_model=BillEmailResponse, summary="Email an invoice PDF")
def email_bill(
    bill_id: int,
    request: BillEmailRequest,
    service: BillingService = Depends(get_billing_service),
    actor: Actor = Depends(get_current_actor),
):
    return service.send_bill_email(
        bill_id,
        actor,
        email=request.email,
        pdf_base64=request.pdf_base64,
        invoice_no=request.invoice_no,
    )
