"""
Payment provider protocol.

Defines the interface for payment gateways (Razorpay, etc.).
This allows swapping providers without changing reconciliation logic.
"""
from typing import Protocol, Dict, Any, Optional
from uuid import uuid4

from kareersakhi.core.errors import AppError, BillingDisabledError
from kareersakhi.models.billing import ProviderCallback


class PaymentProvider(Protocol):
    """
    Protocol for payment providers.

    Implementations must handle:
    - Order creation on the gateway
    - Callback verification and mapping to PaymentOutcome
    """

    key_id: Optional[str]

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> str:
        """
        Create a gateway order.

        Args:
            amount_minor: Amount in minor currency units (paise)
            currency: ISO currency code
            receipt: Our reference for the order
            notes: Optional metadata to attach

        Returns:
            Provider order ID

        Raises:
            PaymentProviderError: If order creation fails
        """
        ...

    def parse_callback(self, payload: Dict[str, Any]) -> ProviderCallback:
        """
        Verify a callback payload and map it to an outcome.

        Raises:
            PaymentCallbackError: If the payload is malformed or its signature is invalid
        """
        ...


class PaymentCallbackError(AppError):
    """Callback payload could not be trusted or parsed."""
    code = "invalid_payment_callback"
    status_code = 400


class LocalPaymentProvider:
    """
    Stand-in used when no gateway is configured.

    Orders get locally generated ids; callbacks cannot be verified and are refused.
    """

    key_id: Optional[str] = None

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> str:
        return f"order_{uuid4().hex[:14]}"

    def parse_callback(self, payload: Dict[str, Any]) -> ProviderCallback:
        raise BillingDisabledError("Payment gateway is not configured")
