from datetime import datetime
from pydantic import BaseModel
from typing import Optional


class ExportRequest(BaseModel):
    formId: int
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    status: Optional[str] = None
    includePaymentInfo: bool = False
