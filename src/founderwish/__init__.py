"""
FounderWish SDK: collect feedback from an app and show a public board.

Start with `FounderWish` (the facade); everything else is importable for
callers that want to wire the pieces themselves.
"""

from .client import FounderWish
from .common.errors import (
    FounderWishError,
    InvalidResponseError,
    NotConfiguredError,
    ServerError,
)
from .common.feedback import FeedbackCategory
from .common.public_items import PublicItem
from .config import FounderWishSettings
from .log import setup_logging
from .state.models import CLEAR, KEEP, BillingCycle, FieldUpdate, PaymentStatus, UserProfile

__all__ = [
    "BillingCycle",
    "CLEAR",
    "FeedbackCategory",
    "FieldUpdate",
    "FounderWish",
    "FounderWishError",
    "FounderWishSettings",
    "InvalidResponseError",
    "KEEP",
    "NotConfiguredError",
    "PaymentStatus",
    "PublicItem",
    "ServerError",
    "UserProfile",
    "setup_logging",
]
