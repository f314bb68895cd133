from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime


class InventoryPartBase(BaseModel):
    car_name: str = Field(..., min_length=1, max_length=255, description="Vehicle make the part fits")
    model: str = Field(..., min_length=1, max_length=255)
    part_number: str = Field(..., min_length=1, max_length=100)
    part_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(..., ge=0, description="Quantity cannot be negative")
    purchase_price: float = Field(..., ge=0)
    selling_price: float = Field(..., ge=0)
    tax_amount: float = Field(0.0, ge=0)
    hsn_number: str = Field(..., min_length=1, max_length=50)
    igst: float = Field(0.0, ge=0)
    cgst_sgst: float = Field(0.0, ge=0)


class InventoryPartCreate(InventoryPartBase):
    garage_id: int


class InventoryPartUpdate(BaseModel):
    car_name: Optional[str] = Field(None, min_length=1, max_length=255)
    model: Optional[str] = Field(None, min_length=1, max_length=255)
    part_number: Optional[str] = Field(None, min_length=1, max_length=100)
    part_name: Optional[str] = Field(None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(None, ge=0)
    purchase_price: Optional[float] = Field(None, ge=0)
    selling_price: Optional[float] = Field(None, ge=0)
    tax_amount: Optional[float] = Field(None, ge=0)
    hsn_number: Optional[str] = Field(None, min_length=1, max_length=50)
    igst: Optional[float] = Field(None, ge=0)
    cgst_sgst: Optional[float] = Field(None, ge=0)

    @field_validator("*")
    @classmethod
    def fields_are_not_null(cls, v, info):
        # Every stored part column is required; omit a field to leave it unchanged
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class InventoryPartResponse(InventoryPartBase):
    id: int
    garage_id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StockAdjustment(BaseModel):
    quantity_change: int = Field(..., description="Positive to add stock, negative to remove")
    reason: Optional[str] = Field(None, description="Reason for stock change")


class InventoryListResponse(BaseModel):
    items: List[InventoryPartResponse]
    total: int
