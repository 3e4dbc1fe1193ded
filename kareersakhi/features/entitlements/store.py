"""
kareersakhi/features/entitlements/store.py

Entitlement store: subscription tier, review quota and expiry.

Handles:
- Whole-record read-modify-write against an injected storage adapter
- Saturating quota consumption
- Derived gating predicate (can_perform_analysis)
- Recovery from corrupt persisted records (reset to defaults, logged)

Expiry is evaluated lazily: a professional tier past its expiry date still
reads back as professional from `state`, but gates as free. Callers that want
the stored tier rewritten call `downgrade_if_expired`.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from kareersakhi.core.config import settings
from kareersakhi.core.logging import log_event
from kareersakhi.features.entitlements.storage import StateStorage
from kareersakhi.models.entitlement import EntitlementState, SubscriptionTier, isoformat_utc, to_utc

# Reviews granted per cycle. None = not metered.
REVIEW_ALLOTMENTS: Dict[SubscriptionTier, Optional[int]] = {
    SubscriptionTier.FREE: 1,
    SubscriptionTier.PREMIUM: 1,
    SubscriptionTier.PROFESSIONAL: None,
}
BASELINE_REVIEWS = REVIEW_ALLOTMENTS[SubscriptionTier.FREE]

TIME_BOXED_TIERS = frozenset({SubscriptionTier.PROFESSIONAL})


def review_allotment(tier: SubscriptionTier) -> int:
    """Reviews granted when a tier starts a cycle; unmetered tiers get the baseline."""
    allotment = REVIEW_ALLOTMENTS.get(SubscriptionTier(tier))
    return BASELINE_REVIEWS if allotment is None else allotment


def _normalize_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return to_utc(now)


def is_expired(state: EntitlementState, now: Optional[datetime] = None) -> bool:
    if state.current_tier not in TIME_BOXED_TIERS or state.expiry_date is None:
        return False
    return state.expiry_date <= _normalize_now(now)


def effective_tier(state: EntitlementState, now: Optional[datetime] = None) -> SubscriptionTier:
    """
    Tier the user is billed as right now: an expired professional counts as free.

    This is a display value only. Gating goes through can_perform_analysis,
    which refuses an expired professional even when reviews_remaining > 0,
    whereas a genuinely free state with the same quota is allowed.
    """
    if is_expired(state, now):
        return SubscriptionTier.FREE
    return state.current_tier


def can_perform_analysis(state: EntitlementState, now: Optional[datetime] = None) -> bool:
    if is_expired(state, now):
        return False
    return state.current_tier != SubscriptionTier.FREE or state.reviews_remaining > 0


class EntitlementStore:
    """
    Persisted entitlement state machine.

    None of the operations raise: they are local, synchronous transitions.
    """

    def __init__(self, storage: StateStorage, storage_key: Optional[str] = None):
        self.storage = storage
        self.storage_key = storage_key or settings.ENTITLEMENT_STORAGE_KEY
        self._lock = threading.RLock()

    # ----- persistence -----

    def _load(self) -> EntitlementState:
        raw = self.storage.get(self.storage_key)
        if raw is None:
            return EntitlementState()
        try:
            return EntitlementState.from_record(raw)
        except ValueError as e:
            log_event(
                "warning",
                "entitlement.state_corrupt",
                event_type="entitlement.reset",
                error_code="state_corrupt",
                extra={"storage_key": self.storage_key, "error": e},
            )
            default = EntitlementState()
            self.storage.set(self.storage_key, default.to_record())
            return default

    def _save(self, state: EntitlementState) -> None:
        self.storage.set(self.storage_key, state.to_record())

    def _update(self, event: str, **changes: Any) -> EntitlementState:
        with self._lock:
            current = self._load()
            updated = EntitlementState.model_validate({**current.model_dump(), **changes})
            if updated != current:
                self._save(updated)
            log_event(
                "info",
                event,
                event_type="entitlement.update",
                extra={
                    "tier": updated.current_tier.value,
                    "reviews_remaining": updated.reviews_remaining,
                    "expiry_date": isoformat_utc(updated.expiry_date) if updated.expiry_date else None,
                },
            )
            return updated

    # ----- reads -----

    @property
    def state(self) -> EntitlementState:
        with self._lock:
            return self._load()

    def effective_tier(self, now: Optional[datetime] = None) -> SubscriptionTier:
        return effective_tier(self.state, now)

    def can_perform_analysis(self, now: Optional[datetime] = None) -> bool:
        return can_perform_analysis(self.state, now)

    # ----- transitions -----

    def set_tier(self, tier: SubscriptionTier) -> EntitlementState:
        return self._update("entitlement.tier_set", current_tier=SubscriptionTier(tier))

    def set_expiry_date(self, date: Optional[datetime]) -> EntitlementState:
        return self._update("entitlement.expiry_set", expiry_date=date)

    def decrement_reviews(self) -> EntitlementState:
        with self._lock:
            remaining = self._load().reviews_remaining
            return self._update("entitlement.review_consumed", reviews_remaining=max(0, remaining - 1))

    def reset_reviews(self) -> EntitlementState:
        with self._lock:
            tier = self._load().current_tier
            return self._update("entitlement.reviews_reset", reviews_remaining=review_allotment(tier))

    def apply_upgrade(self, tier: SubscriptionTier, expiry_date: Optional[datetime] = None) -> EntitlementState:
        """
        Activate a purchased tier in a single write.

        Tier, expiry and the tier's review allotment land together, so a failed
        write leaves the previous record intact.
        """
        tier = SubscriptionTier(tier)
        return self._update(
            "entitlement.upgrade_applied",
            current_tier=tier,
            expiry_date=expiry_date,
            reviews_remaining=review_allotment(tier),
        )

    def downgrade_if_expired(self, now: Optional[datetime] = None) -> bool:
        """Rewrite an expired time-boxed tier to free. Returns True if it did."""
        with self._lock:
            if not is_expired(self._load(), now):
                return False
            self._update("entitlement.expired_downgrade", current_tier=SubscriptionTier.FREE, expiry_date=None)
            return True

    def clear(self) -> None:
        """Forget persisted state; the next read starts from defaults."""
        with self._lock:
            self.storage.remove(self.storage_key)
            log_event("info", "entitlement.cleared", event_type="entitlement.reset")
