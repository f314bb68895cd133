from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class PlanBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    amount: float = Field(..., ge=0, description="Price in INR")
    duration_in_months: int = Field(..., gt=0)
    subscription_type: Optional[str] = Field(None, max_length=50)
    features: List[str] = []
    is_active: bool = True


class PlanCreate(PlanBase):
    pass


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    amount: Optional[float] = Field(None, ge=0)
    duration_in_months: Optional[int] = Field(None, gt=0)
    subscription_type: Optional[str] = Field(None, max_length=50)
    features: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("name", "amount", "duration_in_months", "features", "is_active")
    @classmethod
    def required_fields_are_not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class PlanResponse(PlanBase):
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
