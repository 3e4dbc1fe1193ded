"""
Entitlement API routes.

- GET  /api/entitlements: current state plus derived gating fields
- POST /api/entitlements/tier: self-service switch to the free tier
"""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from kareersakhi.api.deps import get_store
from kareersakhi.core.errors import ValidationError
from kareersakhi.features.entitlements.store import EntitlementStore, can_perform_analysis, effective_tier
from kareersakhi.models.entitlement import EntitlementState, SubscriptionTier


router = APIRouter(prefix="/api/entitlements", tags=["entitlements"])


class EntitlementResponse(BaseModel):
    current_tier: SubscriptionTier
    effective_tier: SubscriptionTier
    reviews_remaining: int
    expiry_date: Optional[datetime]
    can_perform_analysis: bool


class TierChangeRequest(BaseModel):
    tier: SubscriptionTier


def entitlement_response(state: EntitlementState) -> EntitlementResponse:
    return EntitlementResponse(
        current_tier=state.current_tier,
        effective_tier=effective_tier(state),
        reviews_remaining=state.reviews_remaining,
        expiry_date=state.expiry_date,
        can_perform_analysis=can_perform_analysis(state),
    )


@router.get("", response_model=EntitlementResponse)
def get_entitlements(store: EntitlementStore = Depends(get_store)):
    return entitlement_response(store.state)


@router.post("/tier", response_model=EntitlementResponse)
def change_tier(request: TierChangeRequest, store: EntitlementStore = Depends(get_store)):
    """Paid tiers are only reachable through a reconciled payment."""
    if request.tier != SubscriptionTier.FREE:
        raise ValidationError(
            "Paid tiers are activated through checkout",
            code="payment_required",
        )
    return entitlement_response(store.set_tier(SubscriptionTier.FREE))
