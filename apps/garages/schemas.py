from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from datetime import datetime


class BankDetails(BaseModel):
    account_holder_name: Optional[str] = None
    account_number: Optional[str] = None
    ifsc_code: Optional[str] = None
    bank_name: Optional[str] = None
    branch_name: Optional[str] = None
    upi_id: Optional[str] = None


class PaymentDetails(BaseModel):
    payment_id: Optional[str] = None
    amount: Optional[float] = None
    method: Optional[str] = None
    status: Optional[str] = None
    order_id: Optional[str] = None
    plan_id: Optional[int] = None


class GarageBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    phone: str = Field(..., min_length=1, max_length=20)
    email: EmailStr
    logo: Optional[str] = None
    gst_num: Optional[str] = None
    pan_num: Optional[str] = None
    bank_details: BankDetails = BankDetails()


class GarageCreate(GarageBase):
    password: str = Field(..., min_length=6)
    duration_in_months: int
    is_free_plan: bool = False
    amount: Optional[float] = Field(None, ge=0)
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class GarageUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    phone: Optional[str] = Field(None, min_length=1, max_length=20)
    logo: Optional[str] = None
    gst_num: Optional[str] = None
    pan_num: Optional[str] = None
    bank_details: Optional[BankDetails] = None

    @field_validator("name", "address", "phone", "bank_details")
    @classmethod
    def required_fields_are_not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class GarageLogin(BaseModel):
    email: EmailStr
    password: str


class GarageVerify(BaseModel):
    email: EmailStr
    code: str = Field(..., min_length=1)


class SubscriptionRenewal(BaseModel):
    plan_id: int
    payment_method: str = Field("razorpay", min_length=1)
    # Razorpay checkout result, required when paying through razorpay
    order_id: Optional[str] = None
    payment_id: Optional[str] = None
    signature: Optional[str] = None


class SubscriptionStatus(BaseModel):
    garage_id: int
    garage_name: str
    is_subscribed: bool
    subscription_type: Optional[str]
    subscription_start: Optional[datetime]
    subscription_end: Optional[datetime]
    is_expired: bool
    days_until_expiry: Optional[int]


class GarageResponse(GarageBase):
    id: int
    subscription_type: Optional[str]
    subscription_start: Optional[datetime]
    subscription_end: Optional[datetime]
    is_subscribed: bool
    payment_details: PaymentDetails
    approved: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class GarageAuthResponse(BaseModel):
    message: str
    garage: GarageResponse
    token: str


class EngineerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)
    specialization: Optional[str] = None


class EngineerResponse(EngineerCreate):
    id: int
    garage_id: int
    created_at: datetime

    class Config:
        from_attributes = True


class EngineerListResponse(BaseModel):
    items: List[EngineerResponse]
    total: int
