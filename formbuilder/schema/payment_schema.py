from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional


class StripeIntentRequest(BaseModel):
    submissionId: str
    amount: int = Field(..., gt=0, description="Amount in the smallest currency unit (cents)")
    currency: str = Field(..., min_length=3, max_length=3)
    description: Optional[str] = None
    metadata: Dict[str, Any] = {}


class StripeConfirmRequest(BaseModel):
    paymentIntentId: str = Field(..., min_length=1)


class BankTransferRequest(BaseModel):
    submissionId: str
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)
    bankDetails: Optional[Dict[str, Any]] = None
    receiptFile: Optional[str] = None
    notes: Optional[str] = None


class BankTransferDecision(BaseModel):
    adminNotes: Optional[str] = None
    reason: Optional[str] = None


class BkashCreateRequest(BaseModel):
    submissionId: str
    amount: Decimal = Field(..., gt=0)
    currency: str = Field(..., min_length=3, max_length=3)


class BkashPaymentRequest(BaseModel):
    paymentID: str = Field(..., min_length=1)


class BkashRefundRequest(BaseModel):
    paymentID: str = Field(..., min_length=1)
    amount: Optional[Decimal] = None
    reason: Optional[str] = None
