"""Payment-related Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..models.payment import PaymentMethod, PaymentProvider, PaymentStatus


class InitializePaymentRequest(BaseModel):
    """Request schema for starting a payment on a pending booking."""

    booking_id: UUID = Field(..., description="Booking being paid for")
    currency: str = Field(..., min_length=3, max_length=3, description="ISO 4217 currency code")
    method: PaymentMethod = Field(..., description="Payment method")
    provider: PaymentProvider = Field(..., description="Payment provider")


class PaymentOutcomeRequest(BaseModel):
    """Provider-agnostic payment outcome."""

    payment_id: UUID = Field(..., description="Payment being settled")
    status: PaymentStatus = Field(..., description="SUCCESS or FAILED")
    provider: Optional[PaymentProvider] = Field(None, description="Reporting provider, checked when given")
    provider_transaction_id: Optional[str] = Field(None, max_length=255, description="Provider reference")


class Payment(BaseModel):
    """Payment response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique payment ID")
    booking_id: str = Field(..., description="Associated booking ID")
    amount: Decimal = Field(..., description="Charged amount")
    currency: str = Field(..., description="ISO 4217 currency code")
    method: PaymentMethod = Field(..., description="Payment method")
    provider: PaymentProvider = Field(..., description="Payment provider")
    status: PaymentStatus = Field(..., description="Payment status")
    provider_transaction_id: Optional[str] = Field(None, description="Provider reference")
    checkout_url: Optional[str] = Field(None, description="Provider checkout page for PENDING payments")
    created_at: Optional[datetime] = Field(None, description="Creation time (ISO 8601)")


class PaymentOutcome(BaseModel):
    """Result of applying a payment outcome."""

    payment: Payment
    booking_status: str = Field(..., description="Booking status after the outcome was applied")
    error_code: Optional[str] = Field(None, description="Failure kind when the booking could not be confirmed")
    error_detail: Optional[str] = Field(None, description="Failure message when the booking could not be confirmed")
