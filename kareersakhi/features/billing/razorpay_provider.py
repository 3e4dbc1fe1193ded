"""
Razorpay payment provider implementation.

Implements PaymentProvider using the Razorpay SDK.
Handles checkout callback signature verification and outcome mapping.
"""
from typing import Dict, Any, Optional

import razorpay
import razorpay.errors

from kareersakhi.core.config import settings
from kareersakhi.core.errors import PaymentProviderError
from kareersakhi.features.billing.provider import PaymentCallbackError
from kareersakhi.models.billing import PaymentOutcome, ProviderCallback

CANCELLED_STATUSES = {"cancelled", "canceled", "dismissed"}


class RazorpayProvider:
    """Razorpay implementation of PaymentProvider protocol."""

    def __init__(self, key_id: Optional[str] = None, key_secret: Optional[str] = None, client=None):
        """
        Initialize Razorpay provider.

        Args:
            key_id: Razorpay key id (defaults to RAZORPAY_KEY_ID)
            key_secret: Razorpay key secret (defaults to RAZORPAY_KEY_SECRET)
            client: Pre-built razorpay.Client (tests)
        """
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        key_secret = key_secret or settings.RAZORPAY_KEY_SECRET

        if client is None and not (self.key_id and key_secret):
            raise PaymentProviderError("RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET not configured")

        self.client = client or razorpay.Client(auth=(self.key_id, key_secret))

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: Optional[Dict[str, str]] = None,
    ) -> str:
        """Create Razorpay order."""
        try:
            order = self.client.order.create(data={
                "amount": int(amount_minor),
                "currency": currency,
                "receipt": receipt,
                "notes": notes or {},
            })
        except Exception as e:
            raise PaymentProviderError(f"Razorpay order creation failed: {e}")
        order_id = order.get("id") if isinstance(order, dict) else None
        if not order_id:
            raise PaymentProviderError("Razorpay order response missing id")
        return order_id

    def parse_callback(self, payload: Dict[str, Any]) -> ProviderCallback:
        """
        Map a checkout callback onto PaymentOutcome.

        Shapes:
        - success handler: razorpay_order_id, razorpay_payment_id, razorpay_signature
        - payment.failed:  {"error": {..., "metadata": {"order_id", "payment_id"}}}
        - dismissed modal: {"status": "cancelled", "order_id": ...}
        """
        if "razorpay_signature" in payload:
            return self._parse_success(payload)

        error = payload.get("error")
        if isinstance(error, dict):
            metadata = error.get("metadata") or {}
            order_id = metadata.get("order_id") or payload.get("razorpay_order_id")
            if not order_id:
                raise PaymentCallbackError("Failure callback missing order id")
            return ProviderCallback(
                order_id=order_id,
                outcome=PaymentOutcome.FAILED,
                payment_id=metadata.get("payment_id"),
                reason=error.get("description") or error.get("reason") or error.get("code"),
                raw=payload,
            )

        status = str(payload.get("status", "")).lower()
        order_id = payload.get("order_id") or payload.get("razorpay_order_id")
        if status in CANCELLED_STATUSES and order_id:
            return ProviderCallback(
                order_id=order_id,
                outcome=PaymentOutcome.CANCELLED,
                reason="Payment cancelled by user",
                raw=payload,
            )

        raise PaymentCallbackError("Unrecognized payment callback payload")

    def _parse_success(self, payload: Dict[str, Any]) -> ProviderCallback:
        order_id = payload.get("razorpay_order_id")
        payment_id = payload.get("razorpay_payment_id")
        signature = payload.get("razorpay_signature")
        if not all([order_id, payment_id, signature]):
            raise PaymentCallbackError("Missing payment details")

        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": order_id,
                "razorpay_payment_id": payment_id,
                "razorpay_signature": signature,
            })
        except razorpay.errors.SignatureVerificationError as e:
            raise PaymentCallbackError(f"Invalid payment signature: {e}")

        return ProviderCallback(
            order_id=order_id,
            outcome=PaymentOutcome.CONFIRMED,
            payment_id=payment_id,
            raw={"razorpay_order_id": order_id, "razorpay_payment_id": payment_id},
        )
