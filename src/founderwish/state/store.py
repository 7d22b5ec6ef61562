from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, Dict, Optional

import structlog

from ..common.errors import NotConfiguredError
from .models import (
    DEFAULT_SUBSCRIPTION_STATUS,
    KEEP,
    SessionConfig,
    UpdateKind,
    UserProfile,
    as_update,
)


DEFAULT_BASE_URL = "https://indie-wish.vercel.app"

logger = structlog.get_logger(__name__)


class SessionStateStore:
    """
    Single owner of the session configuration and the user profile.

    Every operation runs under one `asyncio.Lock`, so a `configure` racing with
    a `merge_profile` or an in-flight request never exposes a half-updated
    state. Readers get copies; nothing outside the store holds a writable
    reference to the config or profile.

    Create one instance per application (the facade does this) and share it
    between the clients; tests construct a fresh one each time.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._config: Optional[SessionConfig] = None
        self._profile: Optional[UserProfile] = None

    async def configure(
        self,
        secret: str,
        *,
        base_url: Optional[str] = None,
        profile: Optional[UserProfile] = None,
    ) -> None:
        """Replace config and profile wholesale. Last call wins."""
        if not secret:
            raise ValueError("secret is required")
        base = (base_url or DEFAULT_BASE_URL).rstrip("/")
        async with self._lock:
            self._config = SessionConfig(base_url=base, ingest_secret=secret)
            self._profile = profile.model_copy(deep=True) if profile is not None else None
        logger.info("session_configured", base_url=base, has_profile=profile is not None)

    async def merge_profile(
        self,
        *,
        email: Any = KEEP,
        subscription_status: Any = KEEP,
        subscription_expires_at: Any = KEEP,
        custom_metadata: Any = KEEP,
    ) -> UserProfile:
        """
        Merge field updates onto the current profile (or a fresh default one).

        Each argument is a `FieldUpdate` (KEEP, CLEAR, FieldUpdate.set(v)) or a
        plain value: None clears, anything else sets. Omitted arguments keep
        the current value. Returns a copy of the merged profile.
        """
        email_u = as_update(email)
        status_u = as_update(subscription_status)
        expires_u = as_update(subscription_expires_at)
        metadata_u = as_update(custom_metadata)

        async with self._lock:
            current = self._profile if self._profile is not None else UserProfile.empty()
            new_status = status_u.apply(current.subscription_status, DEFAULT_SUBSCRIPTION_STATUS)
            new_expires: Optional[datetime] = expires_u.apply(current.subscription_expires_at)
            new_metadata: Optional[Dict[str, str]] = metadata_u.apply(current.custom_metadata)
            self._profile = UserProfile(
                subscription_status=new_status or DEFAULT_SUBSCRIPTION_STATUS,
                subscription_expires_at=new_expires,
                email=email_u.apply(current.email),
                custom_metadata=dict(new_metadata) if new_metadata is not None else None,
            )
            merged = self._profile.model_copy(deep=True)

        touched = [
            name
            for name, upd in (
                ("email", email_u),
                ("subscription_status", status_u),
                ("subscription_expires_at", expires_u),
                ("custom_metadata", metadata_u),
            )
            if upd.kind is not UpdateKind.KEEP
        ]
        logger.debug("profile_merged", fields=touched)
        return merged

    async def current_config(self) -> SessionConfig:
        async with self._lock:
            if self._config is None:
                raise NotConfiguredError()
            return self._config.model_copy()

    async def current_profile(self) -> Optional[UserProfile]:
        async with self._lock:
            return self._profile.model_copy(deep=True) if self._profile is not None else None

    async def cache_board_slug(self, slug: str, *, resolved_for: Optional[SessionConfig] = None) -> bool:
        """
        Store the board slug on the current config.

        When `resolved_for` is given (the config the slug was fetched with),
        the write is skipped if `configure` has since installed a different
        secret or base URL. Returns whether the slug was stored.
        """
        async with self._lock:
            if self._config is None:
                raise NotConfiguredError()
            if resolved_for is not None and (
                resolved_for.ingest_secret != self._config.ingest_secret
                or resolved_for.base_url != self._config.base_url
            ):
                logger.info("board_slug_discarded", reason="config_changed")
                return False
            self._config = self._config.model_copy(update={"cached_board_slug": slug})
            return True

    async def is_configured(self) -> bool:
        async with self._lock:
            return self._config is not None


__all__ = ["DEFAULT_BASE_URL", "SessionStateStore"]
