"""
Billing API routes.

Minimal surface:
- GET  /api/billing/plans: Plan catalogue
- POST /api/billing/orders: Create an order and the checkout request for the widget
- POST /api/billing/callback: Verify a checkout callback and reconcile it
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, Field

from kareersakhi.api.deps import get_reconciler
from kareersakhi.core.config import settings
from kareersakhi.features.billing.service import PLANS, PaymentReconciler, billing_enabled
from kareersakhi.models.billing import CheckoutRequest, PaymentOrder, ReconcileResult
from kareersakhi.models.entitlement import SubscriptionTier


router = APIRouter(prefix="/api/billing", tags=["billing"])


class PlanResponse(BaseModel):
    tier: SubscriptionTier
    price: int
    period: str
    currency: str


class PlansResponse(BaseModel):
    enabled: bool
    plans: List[PlanResponse]


class OrderRequest(BaseModel):
    """Request to create a payment order."""
    tier: SubscriptionTier
    amount: Optional[int] = Field(default=None, gt=0)


class OrderResponse(BaseModel):
    order: PaymentOrder
    checkout: CheckoutRequest


@router.get("/plans", response_model=PlansResponse)
def list_plans():
    return PlansResponse(
        enabled=billing_enabled(),
        plans=[
            PlanResponse(tier=tier, price=plan["price"], period=plan["period"], currency=settings.PAYMENT_CURRENCY)
            for tier, plan in PLANS.items()
        ],
    )


@router.post("/orders", response_model=OrderResponse)
def create_order(request: OrderRequest, reconciler: PaymentReconciler = Depends(get_reconciler)):
    """
    Create a payment order for a paid tier.

    Errors:
        400: free tier or invalid amount
        502: payment gateway error
    """
    order = reconciler.initiate(request.tier, request.amount)
    checkout = reconciler.begin_authorization(order.order_id)
    return OrderResponse(order=order, checkout=checkout)


@router.post("/callback", response_model=ReconcileResult)
def payment_callback(
    payload: Dict[str, Any] = Body(...),
    reconciler: PaymentReconciler = Depends(get_reconciler),
):
    """
    Reconcile a checkout callback (idempotent per order).

    Errors:
        400: signature invalid or payload unrecognized
        503: payment gateway not configured
    """
    return reconciler.handle_callback(payload)
