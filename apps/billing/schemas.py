from pydantic import BaseModel, ConfigDict, Field, EmailStr
from typing import Optional, List, Dict, Any
from datetime import datetime

from apps.billing.models import BillType


class BillPartLine(BaseModel):
    """A part line as billed. Unknown keys are kept and stored with the bill."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    part_name: str = ""
    part_number: str = ""
    quantity: float
    selling_price: float
    hsn_number: Optional[str] = None
    hsn_code: Optional[str] = None


class BillServiceLine(BaseModel):
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    description: str = ""
    labor_cost: float


class BillGenerateRequest(BaseModel):
    parts: List[BillPartLine] = []
    services: List[BillServiceLine] = []
    discount: float = 0.0
    gst_percentage: Optional[float] = Field(None, ge=0)
    bill_type: BillType = BillType.GST
    bill_to_party: Optional[Dict[str, Any]] = None
    shift_to_party: Optional[Dict[str, Any]] = None


class PaymentRequest(BaseModel):
    job_id: str = Field(..., min_length=1)
    payment_method: str = Field(..., min_length=1)


class BillEmailRequest(BaseModel):
    email: Optional[EmailStr] = None
    pdf_base64: Optional[str] = None
    invoice_no: Optional[str] = None


class BillEmailResponse(BaseModel):
    message: str
    email: str
    invoice_no: str
    sent_at: datetime


class BillResponse(BaseModel):
    id: int
    garage_id: int
    job_card_id: Optional[int]
    job_id: Optional[str]
    invoice_no: str  # display form, INV-001
    bill_type: BillType
    parts: List[dict]
    services: List[dict]
    total_parts_cost: float
    total_labor_cost: float
    sub_total: float
    gst: float
    gst_percentage: float
    discount: float
    final_amount: float
    hsn_code: str
    logo: Optional[str]
    bank_details: Dict[str, Any]
    bill_to_party: Optional[Dict[str, Any]]
    shift_to_party: Optional[Dict[str, Any]]
    is_paid: bool
    payment_method: Optional[str]
    paid_at: Optional[datetime]
    created_at: datetime


class LastInvoiceResponse(BaseModel):
    last_invoice_no: str


class ReportPeriod(BaseModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ReportSummary(BaseModel):
    total_bills: int
    total_revenue: float
    total_parts_cost: float
    total_labor_cost: float
    total_gst: float
    total_discount: float
    gross_profit: float
    net_profit: float
    completed_jobs: int
    pending_jobs: int


class MonthStats(BaseModel):
    revenue: float
    jobs: int
    parts_cost: float
    labor_cost: float


class MonthlyBreakdown(MonthStats):
    month: str


class RecentBill(BaseModel):
    invoice_no: str
    job_id: Optional[str]
    customer_name: str
    car_number: str
    amount: float
    created_at: datetime
    bill_type: BillType


class FinancialReport(BaseModel):
    garage_id: int
    generated_at: datetime
    period: ReportPeriod
    summary: ReportSummary
    current_month: MonthStats
    bill_type_breakdown: Dict[str, float]
    monthly_breakdown: List[MonthlyBreakdown]
    recent_bills: List[RecentBill]
