from decimal import Decimal
from pydantic import BaseModel, Field
from typing import Any, Dict, Optional
from formbuilder.constants.utils import PAYMENT_METHODS


class SubmissionPayment(BaseModel):
    method: Optional[PAYMENT_METHODS] = None
    amount: Decimal = Decimal("0")
    currency: str = "USD"


class SubmissionCreate(BaseModel):
    formId: int
    data: Dict[str, Any]
    payment: Optional[SubmissionPayment] = None
    metadata: Optional[Dict[str, Any]] = None


class PublicSubmissionUpdate(BaseModel):
    editCode: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class VerifyEditCodeRequest(BaseModel):
    editCode: Optional[str] = None


class SubmissionStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
    adminNotes: Optional[str] = None
    notifyUser: bool = False


class SubmissionUpdate(BaseModel):
    status: Optional[str] = None
    adminNotes: Optional[str] = None
    paymentStatus: Optional[str] = None
