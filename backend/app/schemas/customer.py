"""
Customer Pydantic schemas.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from backend.app.models.ledger_enums import CustomerType

GSTIN_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"


class CustomerLogin(BaseModel):
    """Optional login account created alongside the customer."""
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=6)


class CustomerCreate(BaseModel):
    """Schema for creating a new customer."""
    name: str = Field(..., min_length=1, max_length=200)
    mobile: Optional[str] = Field(None, max_length=20)
    address: str = Field(..., min_length=1, max_length=500)
    gst_number: Optional[str] = Field(None, pattern=GSTIN_PATTERN, description="15-character GSTIN")
    territory: Optional[str] = Field(None, max_length=100)
    customer_type: CustomerType = CustomerType.RETAIL
    credit_limit: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    payment_terms: int = Field(30, ge=0, description="Payment terms in days")
    login: Optional[CustomerLogin] = None


class CustomerResponse(BaseModel):
    """Schema for customer response."""
    id: int
    user_id: Optional[int]
    name: str
    mobile: Optional[str]
    address: str
    gst_number: Optional[str]
    territory: Optional[str]
    customer_type: CustomerType
    credit_limit: Decimal
    outstanding_amount: Decimal
    available_credit: Decimal
    payment_terms: int
    created_at: datetime

    class Config:
        from_attributes = True


class CustomerListResponse(BaseModel):
    """Schema for paginated customer list."""
    customers: List[CustomerResponse]
    total: int
    page: int
    page_size: int
