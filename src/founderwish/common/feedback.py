from __future__ import annotations

from datetime import datetime, UTC
from enum import Enum
from typing import Dict, Optional, Union

import httpx
import structlog
from pydantic import BaseModel

from ..state.store import SessionStateStore
from .device import DeviceMetadata, DeviceMetadataProvider
from .http import endpoint, raise_for_status, send


FEEDBACK_PATH = "/api/feedback"
DEFAULT_SOURCE = "ios"

logger = structlog.get_logger(__name__)


class FeedbackCategory(str, Enum):
    FEATURE = "feature"
    BUG = "bug"


def iso8601(dt: datetime) -> str:
    """Internet date-time in UTC, e.g. "2024-01-01T00:00:00Z". Naive values are taken as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class FeedbackPayload(BaseModel):
    """Wire body for POST /api/feedback. None fields are omitted."""

    title: str
    description: Optional[str] = None
    source: str
    category: str

    # Device info
    app_name: Optional[str] = None
    app_version: Optional[str] = None
    os_version: Optional[str] = None
    device_model: Optional[str] = None
    device_type: Optional[str] = None
    lang: Optional[str] = None
    tz: Optional[str] = None
    screen_w: Optional[int] = None
    screen_h: Optional[int] = None

    # User profile
    user_identifier: Optional[str] = None
    subscription_status: Optional[str] = None
    subscription_expires_at: Optional[str] = None
    install_date: Optional[str] = None
    email: Optional[str] = None
    custom_metadata: Optional[Dict[str, str]] = None


class FeedbackClient:
    """Composes an enriched feedback record and posts it to the ingestion endpoint."""

    def __init__(
        self,
        store: SessionStateStore,
        client: httpx.AsyncClient,
        device_provider: DeviceMetadataProvider,
    ) -> None:
        self._store = store
        self._client = client
        self._device = device_provider

    async def submit(
        self,
        title: str,
        description: Optional[str] = None,
        *,
        source: str = DEFAULT_SOURCE,
        category: Union[FeedbackCategory, str] = FeedbackCategory.FEATURE,
        email: Optional[str] = None,
    ) -> None:
        """
        Submit one feedback record.

        `email` overrides the profile email for this submission only.
        Raises NotConfiguredError before any network call when unconfigured,
        ServerError on a non-2xx response.
        """
        if not title:
            raise ValueError("title is required")

        cfg = await self._store.current_config()
        profile = await self._store.current_profile()
        meta = await self._device.capture()

        payload = build_payload(
            title=title,
            description=description,
            source=source,
            category=category.value if isinstance(category, FeedbackCategory) else category,
            meta=meta,
            subscription_status=profile.subscription_status if profile else None,
            subscription_expires_at=profile.subscription_expires_at if profile else None,
            email=email or (profile.email if profile else None),
            custom_metadata=profile.custom_metadata if profile else None,
        )

        resp = await send(
            self._client,
            "POST",
            endpoint(cfg.base_url, FEEDBACK_PATH),
            secret=cfg.ingest_secret,
            json_body=payload.model_dump(exclude_none=True),
        )
        if resp.is_success:
            logger.info("feedback_submitted", category=payload.category, status=resp.status_code)
            return
        logger.warning("feedback_rejected", status=resp.status_code)
        raise_for_status(resp)


def build_payload(
    *,
    title: str,
    description: Optional[str],
    source: str,
    category: str,
    meta: DeviceMetadata,
    subscription_status: Optional[str],
    subscription_expires_at: Optional[datetime],
    email: Optional[str],
    custom_metadata: Optional[Dict[str, str]],
) -> FeedbackPayload:
    return FeedbackPayload(
        title=title,
        description=description,
        source=source,
        category=category,
        app_name=meta.app_name,
        app_version=meta.app_version,
        os_version=meta.os_version,
        device_model=meta.device_model,
        device_type=meta.device_type,
        lang=meta.lang,
        tz=meta.timezone,
        screen_w=meta.screen_w,
        screen_h=meta.screen_h,
        user_identifier=meta.user_identifier,
        subscription_status=subscription_status,
        subscription_expires_at=iso8601(subscription_expires_at) if subscription_expires_at else None,
        install_date=iso8601(meta.install_date),
        email=email,
        custom_metadata=dict(custom_metadata) if custom_metadata else None,
    )


__all__ = [
    "FEEDBACK_PATH",
    "FeedbackCategory",
    "FeedbackClient",
    "FeedbackPayload",
    "build_payload",
    "iso8601",
]
