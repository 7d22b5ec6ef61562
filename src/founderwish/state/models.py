from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar

from pydantic import BaseModel, Field


DEFAULT_SUBSCRIPTION_STATUS = "unknown"

T = TypeVar("T")


class PaymentStatus(str, Enum):
    """Payment status for a user; covers subscriptions and one-time purchases."""

    FREE = "free"
    TRIAL = "trial"
    PAID = "paid"
    PREMIUM = "premium"


class BillingCycle(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    LIFETIME = "lifetime"


class SessionConfig(BaseModel):
    """
    Connection settings for one configured board.

    Fields
    - base_url: service root, e.g. "https://indie-wish.vercel.app".
    - ingest_secret: shared secret sent as `x-ingest-secret`. Excluded from repr.
    - cached_board_slug: public board identifier, filled in by the board resolver.
    """

    base_url: str
    ingest_secret: str = Field(..., repr=False)
    cached_board_slug: Optional[str] = None


class UserProfile(BaseModel):
    """
    User context attached to every feedback submission.

    Fields
    - subscription_status: free-form status string ("unknown" when never set).
    - subscription_expires_at: optional expiry timestamp.
    - email: optional contact address.
    - custom_metadata: optional string->string map (e.g. billing_cycle, amount).
    """

    subscription_status: str = DEFAULT_SUBSCRIPTION_STATUS
    subscription_expires_at: Optional[datetime] = None
    email: Optional[str] = None
    custom_metadata: Optional[Dict[str, str]] = None

    @classmethod
    def empty(cls) -> "UserProfile":
        return cls()


class UpdateKind(str, Enum):
    KEEP = "keep"
    CLEAR = "clear"
    SET = "set"


@dataclass(frozen=True)
class FieldUpdate(Generic[T]):
    """
    Tri-state update for a single profile field.

    - KEEP leaves the current value untouched.
    - CLEAR resets the field to its empty/default value.
    - FieldUpdate.set(v) overwrites the field with `v`.
    """

    kind: UpdateKind
    value: Optional[T] = None

    @classmethod
    def keep(cls) -> "FieldUpdate[T]":
        return cls(UpdateKind.KEEP)

    @classmethod
    def clear(cls) -> "FieldUpdate[T]":
        return cls(UpdateKind.CLEAR)

    @classmethod
    def set(cls, value: T) -> "FieldUpdate[T]":
        if value is None:
            raise ValueError("FieldUpdate.set requires a value; use FieldUpdate.clear()")
        return cls(UpdateKind.SET, value)

    def apply(self, current: Optional[T], default: Optional[T] = None) -> Optional[T]:
        if self.kind is UpdateKind.KEEP:
            return current
        if self.kind is UpdateKind.CLEAR:
            return default
        return self.value


KEEP: FieldUpdate[Any] = FieldUpdate.keep()
CLEAR: FieldUpdate[Any] = FieldUpdate.clear()


def as_update(value: Any) -> FieldUpdate[Any]:
    """Coerce a plain argument into a FieldUpdate.

    A FieldUpdate passes through, None means clear, anything else means set.
    """
    if isinstance(value, FieldUpdate):
        return value
    if value is None:
        return CLEAR
    return FieldUpdate.set(value)


__all__ = [
    "BillingCycle",
    "CLEAR",
    "DEFAULT_SUBSCRIPTION_STATUS",
    "FieldUpdate",
    "KEEP",
    "PaymentStatus",
    "SessionConfig",
    "UpdateKind",
    "UserProfile",
    "as_update",
]
