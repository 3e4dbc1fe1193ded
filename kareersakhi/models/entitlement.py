"""
kareersakhi/models/entitlement.py

Subscription tier and persisted entitlement state.

The persisted record keeps the wire shape the web client has always written
under the storage key:

    {"state": {"currentTier": "free", "reviewsRemaining": 1, "expiryDate": null}, "version": 0}
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

RECORD_VERSION = 0


class SubscriptionTier(str, Enum):
    FREE = "free"
    PREMIUM = "premium"
    PROFESSIONAL = "professional"


def to_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat_utc(value: datetime) -> str:
    return to_utc(value).isoformat().replace("+00:00", "Z")


class EntitlementState(BaseModel):
    """
    Snapshot of what the user is entitled to.

    Invariants:
    - reviews_remaining is never negative
    - expiry_date only matters for time-boxed tiers (professional)
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    current_tier: SubscriptionTier = Field(default=SubscriptionTier.FREE, alias="currentTier")
    reviews_remaining: int = Field(default=1, ge=0, alias="reviewsRemaining")
    expiry_date: Optional[datetime] = Field(default=None, alias="expiryDate")

    @field_validator("expiry_date")
    @classmethod
    def normalize_expiry(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc(v) if v is not None else None

    @field_serializer("expiry_date")
    def serialize_expiry(self, v: Optional[datetime]) -> Optional[str]:
        return isoformat_utc(v) if v is not None else None

    def to_record(self) -> str:
        """Serialize to the durable record format."""
        return json.dumps({
            "state": self.model_dump(mode="json", by_alias=True),
            "version": RECORD_VERSION,
        })

    @classmethod
    def from_record(cls, raw: str) -> "EntitlementState":
        """
        Parse a durable record.

        Raises:
            ValueError: if the record is not valid JSON or fails validation
                (pydantic's ValidationError is a ValueError)
        """
        data = json.loads(raw)
        if not isinstance(data, dict) or not isinstance(data.get("state"), dict):
            raise ValueError("entitlement record missing 'state' object")
        return cls.model_validate(data["state"])
