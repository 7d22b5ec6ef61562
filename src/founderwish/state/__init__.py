"""
Session state for the FounderWish SDK.

This package defines the configuration and user-profile schema and the
lock-guarded store that owns them for the lifetime of the application.
"""

from .models import (
    CLEAR,
    KEEP,
    BillingCycle,
    FieldUpdate,
    PaymentStatus,
    SessionConfig,
    UserProfile,
)
from .store import DEFAULT_BASE_URL, SessionStateStore

__all__ = [
    "BillingCycle",
    "CLEAR",
    "DEFAULT_BASE_URL",
    "FieldUpdate",
    "KEEP",
    "PaymentStatus",
    "SessionConfig",
    "SessionStateStore",
    "UserProfile",
]
