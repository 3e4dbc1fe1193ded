"""
Billing models: payment orders, provider outcomes and the checkout request
handed to the payment gateway's client-side widget.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field

from kareersakhi.models.entitlement import SubscriptionTier


class PaymentStatus(str, Enum):
    CREATED = "created"
    AWAITING_AUTHORIZATION = "awaiting_authorization"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class PaymentOutcome(str, Enum):
    """Normalized provider callback result."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ReconcileStatus(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    NOT_APPLIED = "not_applied"  # failed / cancelled
    UNKNOWN_ORDER = "unknown_order"


class PaymentOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: str
    amount: int = Field(gt=0, description="Major currency units (e.g. rupees)")
    target_tier: SubscriptionTier
    currency: str = "INR"
    status: PaymentStatus = PaymentStatus.CREATED
    provider_payment_id: Optional[str] = None
    created_at: datetime
    reconciled_at: Optional[datetime] = None

    @property
    def amount_minor(self) -> int:
        return self.amount * 100

    @property
    def is_reconciled(self) -> bool:
        return self.reconciled_at is not None


class CheckoutRequest(BaseModel):
    """Outbound request for the provider's checkout widget."""
    key: Optional[str] = None
    amount: int  # minor currency units (paise)
    currency: str
    order_id: str
    name: str
    description: str
    theme: Dict[str, str]


class ProviderCallback(BaseModel):
    """Provider callback mapped onto our outcome vocabulary."""
    order_id: str
    outcome: PaymentOutcome
    payment_id: Optional[str] = None
    reason: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class ReconcileResult(BaseModel):
    order_id: str
    status: ReconcileStatus
    outcome: PaymentOutcome
    target_tier: Optional[SubscriptionTier] = None
    expiry_date: Optional[datetime] = None
    message: str
