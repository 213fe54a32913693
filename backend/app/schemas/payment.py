"""
Pydantic schemas for payment provider notifications.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict


class PaymentNotification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    paymentId: str
    externalId: str
    status: str
    modifiedAt: Optional[str] = None
    amount: int = 0
