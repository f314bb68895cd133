from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator, model_validator
from typing import Optional, List
from datetime import datetime

from apps.job_cards.models import JobStatus, CreatorKind
from core.money import round_money


class PartUsed(BaseModel):
    """One part consumed on a job. Numbers may arrive as strings and are coerced."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    part_name: str = Field(..., min_length=1)
    quantity: float
    price_per_piece: float
    total_price: Optional[float] = None
    tax_amount: Optional[float] = None
    tax_percentage: float = 0.0
    hsn_number: str = ""
    hsn_code: Optional[str] = None  # accepted as a synonym of hsn_number
    igst: float = 0.0
    cgst_sgst: float = 0.0
    part_number: str = ""

    @field_validator("tax_percentage", "igst", "cgst_sgst", mode="before")
    @classmethod
    def missing_number_is_zero(cls, v):
        return 0.0 if v in (None, "") else v

    @field_validator("hsn_number", "part_number", mode="before")
    @classmethod
    def missing_text_is_empty(cls, v):
        return "" if v is None else v

    @model_validator(mode="after")
    def derive_totals(self):
        if self.total_price is None:
            self.total_price = round_money(self.quantity * self.price_per_piece)
        if self.tax_amount is None:
            self.tax_amount = round_money(self.total_price * self.tax_percentage / 100)
        if not self.hsn_number and self.hsn_code:
            self.hsn_number = self.hsn_code
        return self

    def to_document(self) -> dict:
        return self.model_dump(exclude={"hsn_code"})


class LabourService(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    labour_type: str = Field(..., min_length=1)
    labour_cost: float
    labour_tax: float = 0.0
    labour_notes: str = ""
    parts: List[PartUsed] = []

    @field_validator("labour_tax", mode="before")
    @classmethod
    def missing_tax_is_zero(cls, v):
        return 0.0 if v in (None, "") else v

    @field_validator("labour_notes", mode="before")
    @classmethod
    def missing_notes_is_empty(cls, v):
        return "" if v is None else v

    @field_validator("parts", mode="before")
    @classmethod
    def missing_parts_is_empty(cls, v):
        return [] if v is None else v

    def to_document(self) -> dict:
        document = self.model_dump(exclude={"parts"})
        document["parts"] = [part.to_document() for part in self.parts]
        return document


class JobCardBase(BaseModel):
    customer_number: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=255)
    contact_number: str = Field(..., min_length=1, max_length=20)
    email: Optional[EmailStr] = None
    company: Optional[str] = None
    car_number: str = Field(..., min_length=1, max_length=50)
    model: str = Field(..., min_length=1, max_length=255)
    kilometer: float = Field(..., ge=0)
    fuel_type: str = Field(..., min_length=1, max_length=50)
    fuel_level: Optional[str] = None
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    registration_number: Optional[str] = None
    job_type: Optional[str] = None
    excess_amount: float = Field(0.0, ge=0)
    job_details: Optional[str] = None
    images: List[str] = []
    video: Optional[str] = None


class JobCardCreate(JobCardBase):
    garage_id: int


class JobCardUpdate(BaseModel):
    customer_number: Optional[str] = Field(None, min_length=1, max_length=50)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_number: Optional[str] = Field(None, min_length=1, max_length=20)
    email: Optional[EmailStr] = None
    company: Optional[str] = None
    car_number: Optional[str] = Field(None, min_length=1, max_length=50)
    model: Optional[str] = Field(None, min_length=1, max_length=255)
    kilometer: Optional[float] = Field(None, ge=0)
    fuel_type: Optional[str] = Field(None, min_length=1, max_length=50)
    fuel_level: Optional[str] = None
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None
    expiry_date: Optional[datetime] = None
    registration_number: Optional[str] = None
    job_type: Optional[str] = None
    excess_amount: Optional[float] = Field(None, ge=0)
    job_details: Optional[str] = None
    images: Optional[List[str]] = None
    video: Optional[str] = None
    status: Optional[JobStatus] = None

    @field_validator(
        "customer_number", "customer_name", "contact_number", "car_number",
        "model", "kilometer", "fuel_type", "images", "status",
    )
    @classmethod
    def required_fields_are_not_null(cls, v, info):
        # Omit a field to keep it; null would clear a required column
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class EngineerAssignment(BaseModel):
    engineer_ids: List[int]


class JobCardAssignment(BaseModel):
    job_card_ids: List[int]


class JobStatusUpdate(BaseModel):
    status: JobStatus


class WorkProgressUpdate(BaseModel):
    parts_used: Optional[List[PartUsed]] = None
    labour_service_cost: Optional[List[LabourService]] = None
    labor_hours: Optional[float] = Field(None, ge=0)
    engineer_remarks: Optional[str] = None
    status: Optional[JobStatus] = None


class QualityCheckRequest(BaseModel):
    notes: Optional[str] = None


class QualityCheck(BaseModel):
    done_by: Optional[List[int]] = None
    notes: Optional[str] = None
    date: Optional[datetime] = None
    bill_approved: bool = False


class JobCardResponse(JobCardBase):
    id: int
    garage_id: int
    job_card_number: int
    job_id: str
    status: JobStatus
    engineer_ids: List[int]
    parts_used: List[dict]
    labour_service_cost: List[dict]
    labor_hours: Optional[float]
    labor_services_total: float
    labor_services_tax: float
    engineer_remarks: Optional[str]
    quality_check: QualityCheck
    generate_bill: bool
    created_by_kind: CreatorKind
    created_by_id: int
    invoice_no: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class JobCardListResponse(BaseModel):
    items: List[JobCardResponse]
    total: int
