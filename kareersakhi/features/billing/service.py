"""
Payment reconciliation orchestrator.

Coordinates:
- Plan catalogue and order creation
- Checkout request for the provider widget
- Callback reconciliation into entitlement transitions (exactly once per order)

Per-order lifecycle:

    created -> awaiting_authorization -> confirmed | cancelled | failed

A failed or cancelled order is not reconciled: if the gateway later confirms a
retried payment on the same order, that confirmation still applies. A
confirmation is applied at most once; redelivery is a no-op.

All Razorpay-specific code is in razorpay_provider.py.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Any

from dateutil.relativedelta import relativedelta

from kareersakhi.core.config import settings
from kareersakhi.core.errors import ConflictError, NotFoundError, ValidationError
from kareersakhi.core.logging import log_event
from kareersakhi.features.billing import ledger
from kareersakhi.features.billing.provider import LocalPaymentProvider, PaymentProvider
from kareersakhi.features.entitlements.store import EntitlementStore, TIME_BOXED_TIERS
from kareersakhi.models.billing import (
    CheckoutRequest,
    PaymentOrder,
    PaymentOutcome,
    PaymentStatus,
    ProviderCallback,
    ReconcileResult,
    ReconcileStatus,
)
from kareersakhi.models.entitlement import SubscriptionTier


# Prices in major units (INR)
PLANS: Dict[SubscriptionTier, Dict[str, Any]] = {
    SubscriptionTier.FREE: {"price": 0, "period": "forever"},
    SubscriptionTier.PREMIUM: {"price": 499, "period": "per review"},
    SubscriptionTier.PROFESSIONAL: {"price": 1499, "period": "per month"},
}

SUBSCRIPTION_TERM = relativedelta(months=1)

_OUTCOME_STATUS = {
    PaymentOutcome.CANCELLED: PaymentStatus.CANCELLED,
    PaymentOutcome.FAILED: PaymentStatus.FAILED,
}


def billing_enabled() -> bool:
    """Check if billing is enabled (Razorpay configured)."""
    return bool(settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET)


def get_provider() -> PaymentProvider:
    """Get the configured payment provider, or the local stand-in."""
    if not billing_enabled():
        return LocalPaymentProvider()
    from kareersakhi.features.billing.razorpay_provider import RazorpayProvider
    return RazorpayProvider()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentReconciler:
    def __init__(
        self,
        store: EntitlementStore,
        provider: Optional[PaymentProvider] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.provider = provider or LocalPaymentProvider()
        self.clock = clock

    def initiate(self, tier: SubscriptionTier, amount: Optional[int] = None) -> PaymentOrder:
        """
        Create a payment order for a paid tier.

        Raises:
            ValidationError: free tier or non-positive amount
            PaymentProviderError: gateway order creation failed
        """
        tier = SubscriptionTier(tier)
        if tier == SubscriptionTier.FREE:
            raise ValidationError("The free tier does not require payment")
        if amount is None:
            amount = PLANS[tier]["price"]
        if amount <= 0:
            raise ValidationError(f"Invalid amount: {amount}")

        now = self.clock()
        order_id = self.provider.create_order(
            amount_minor=amount * 100,
            currency=settings.PAYMENT_CURRENCY,
            receipt=f"receipt_{int(now.timestamp())}",
            notes={"plan_name": tier.value},
        )
        order = PaymentOrder(
            order_id=order_id,
            amount=amount,
            target_tier=tier,
            currency=settings.PAYMENT_CURRENCY,
            status=PaymentStatus.CREATED,
            created_at=now,
        )
        ledger.insert_order(order)
        log_event(
            "info",
            "billing.order_created",
            order_id=order_id,
            event_type="billing.initiate",
            extra={"tier": tier.value, "amount": amount},
        )
        return order

    def begin_authorization(self, order_id: str) -> CheckoutRequest:
        """Move an order to awaiting_authorization and build the provider request."""
        order = ledger.get_order(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if order.is_reconciled:
            raise ConflictError(f"Order {order_id} is already paid")

        ledger.set_status(order_id, PaymentStatus.AWAITING_AUTHORIZATION, self.clock())
        return CheckoutRequest(
            key=getattr(self.provider, "key_id", None),
            amount=order.amount_minor,
            currency=order.currency,
            order_id=order.order_id,
            name=settings.PAYMENT_BRAND_NAME,
            description=settings.PAYMENT_DESCRIPTION,
            theme={"color": settings.PAYMENT_THEME_COLOR},
        )

    def handle_callback(self, payload: Dict[str, Any]) -> ReconcileResult:
        """Verify a provider payload and reconcile it."""
        callback = self.provider.parse_callback(payload)
        return self.reconcile(callback.order_id, callback.outcome, callback=callback)

    def reconcile(
        self,
        order_id: str,
        outcome: PaymentOutcome,
        *,
        callback: Optional[ProviderCallback] = None,
    ) -> ReconcileResult:
        outcome = PaymentOutcome(outcome)
        now = self.clock()
        payment_id = callback.payment_id if callback else None

        order = ledger.get_order(order_id)
        if order is None:
            log_event(
                "warning",
                "billing.unknown_order",
                order_id=order_id,
                event_type="billing.reconcile",
                error_code="unknown_order",
                extra={"outcome": outcome.value},
            )
            return ReconcileResult(
                order_id=order_id,
                status=ReconcileStatus.UNKNOWN_ORDER,
                outcome=outcome,
                message="Unknown order; nothing applied",
            )

        if outcome != PaymentOutcome.CONFIRMED:
            ledger.set_status(order_id, _OUTCOME_STATUS[outcome], now, payment_id=payment_id)
            log_event(
                "info",
                "billing.payment_not_confirmed",
                order_id=order_id,
                event_type="billing.reconcile",
                extra={"outcome": outcome.value, "reason": callback.reason if callback else None},
            )
            message = "Payment was cancelled" if outcome == PaymentOutcome.CANCELLED else "Payment failed"
            return ReconcileResult(
                order_id=order_id,
                status=ReconcileStatus.NOT_APPLIED,
                outcome=outcome,
                target_tier=order.target_tier,
                message=message,
            )

        if not ledger.claim_confirmed(order_id, now, payment_id=payment_id):
            log_event(
                "info",
                "billing.duplicate_confirmation",
                order_id=order_id,
                event_type="billing.reconcile",
            )
            return ReconcileResult(
                order_id=order_id,
                status=ReconcileStatus.DUPLICATE,
                outcome=outcome,
                target_tier=order.target_tier,
                message="Order already reconciled",
            )

        expiry = now + SUBSCRIPTION_TERM if order.target_tier in TIME_BOXED_TIERS else None
        try:
            self.store.apply_upgrade(order.target_tier, expiry)
        except Exception:
            # Hand the order back so a redelivered confirmation can apply it
            ledger.release_claim(order_id, order.status, self.clock())
            log_event(
                "error",
                "billing.entitlement_write_failed",
                order_id=order_id,
                event_type="billing.reconcile",
                error_code="entitlement_write_failed",
            )
            raise

        log_event(
            "info",
            "billing.entitlement_applied",
            order_id=order_id,
            event_type="billing.reconcile",
            extra={"tier": order.target_tier.value, "payment_id": payment_id},
        )
        return ReconcileResult(
            order_id=order_id,
            status=ReconcileStatus.APPLIED,
            outcome=outcome,
            target_tier=order.target_tier,
            expiry_date=expiry,
            message="Subscription upgraded",
        )
