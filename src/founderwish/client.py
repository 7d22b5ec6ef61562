from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import httpx

from .common.board import BoardResolver
from .common.device import DeviceMetadataProvider, PlatformMetadataProvider
from .common.feedback import DEFAULT_SOURCE, FeedbackCategory, FeedbackClient
from .common.kv_store import InstallInfo, JsonKeyValueStore, VotedIdSet
from .common.public_items import DEFAULT_LIMIT, PublicItem, PublicItemsClient, VoteTracker
from .config import ENV_BOARD_KEY, FounderWishSettings
from .state.models import KEEP, BillingCycle, FieldUpdate, PaymentStatus, UserProfile
from .state.store import SessionStateStore


def _billing_metadata(
    billing_cycle: Optional[Union[BillingCycle, str]],
    amount: Optional[str],
) -> Optional[Dict[str, str]]:
    if billing_cycle is None and amount is None:
        return None
    metadata: Dict[str, str] = {}
    if billing_cycle is not None:
        metadata["billing_cycle"] = BillingCycle(billing_cycle).value
    if amount is not None:
        metadata["amount"] = amount
    return metadata


class FounderWish:
    """
    Entry point for host applications.

    Wires one SessionStateStore, one httpx.AsyncClient and the API clients
    together. Construct it once at application start; tests build a fresh
    instance with injected collaborators.

    Example
        async with FounderWish() as fw:
            await fw.configure("board-key", email="a@b.co", payment_status=PaymentStatus.PAID)
            await fw.send_feedback("Dark mode", "Please add it")
            items = await fw.fetch_public_items()
            await fw.vote(items[0])
    """

    def __init__(
        self,
        settings: Optional[FounderWishSettings] = None,
        *,
        store: Optional[SessionStateStore] = None,
        kv_store: Optional[JsonKeyValueStore] = None,
        device_provider: Optional[DeviceMetadataProvider] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings or FounderWishSettings()
        self._store = store or SessionStateStore()
        self._kv = kv_store or JsonKeyValueStore(self._settings.store_path)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.timeout)
        self._device = device_provider or PlatformMetadataProvider(InstallInfo(self._kv))

        self._resolver = BoardResolver(self._store, self._client)
        self._feedback = FeedbackClient(self._store, self._client, self._device)
        self._items = PublicItemsClient(self._store, self._client, self._resolver)
        self._votes = VoteTracker(self._items, VotedIdSet(self._kv))

    @property
    def store(self) -> SessionStateStore:
        return self._store

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "FounderWish":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Configuration ---------------
    async def configure(
        self,
        board_key: str,
        *,
        email: Optional[str] = None,
        payment_status: Union[PaymentStatus, str] = PaymentStatus.FREE,
        billing_cycle: Optional[Union[BillingCycle, str]] = None,
        amount: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        """Configure the board key and replace the user profile in one go."""
        profile = UserProfile(
            subscription_status=PaymentStatus(payment_status).value,
            email=email,
            custom_metadata=_billing_metadata(billing_cycle, amount),
        )
        await self._store.configure(
            board_key,
            base_url=base_url or self._settings.base_url,
            profile=profile,
        )

    async def configure_from_env(self) -> None:
        """
        Configure from FOUNDERWISH_* environment variables.

        Board key and base URL fall back to the settings this instance was
        built with. The HTTP timeout stays the one the client was created with.
        """
        env = FounderWishSettings.from_env(require_board_key=False)
        board_key = env.board_key or self._settings.board_key
        if not board_key:
            raise RuntimeError(f"Missing required configuration: {ENV_BOARD_KEY}")
        await self._store.configure(board_key, base_url=env.base_url or self._settings.base_url)

    async def set_user(
        self,
        *,
        email: Any = KEEP,
        payment_status: Any = KEEP,
        expires_at: Union[FieldUpdate[datetime], datetime, None] = KEEP,
        billing_cycle: Optional[Union[BillingCycle, str]] = None,
        amount: Optional[str] = None,
    ) -> UserProfile:
        """
        Update whichever user fields are given; the rest are kept.

        When a billing cycle or amount is given, custom metadata is replaced
        by the new billing mapping.
        """
        if isinstance(payment_status, (PaymentStatus, str)):
            payment_status = PaymentStatus(payment_status).value
        metadata = _billing_metadata(billing_cycle, amount)
        return await self._store.merge_profile(
            email=email,
            subscription_status=payment_status,
            subscription_expires_at=expires_at,
            custom_metadata=metadata if metadata is not None else KEEP,
        )

    async def user_profile(self) -> Optional[UserProfile]:
        return await self._store.current_profile()

    # --------------- Feedback ---------------
    async def send_feedback(
        self,
        title: str,
        description: Optional[str] = None,
        *,
        source: str = DEFAULT_SOURCE,
        category: Union[FeedbackCategory, str] = FeedbackCategory.FEATURE,
        email: Optional[str] = None,
    ) -> None:
        await self._feedback.submit(
            title,
            description,
            source=source,
            category=category,
            email=email,
        )

    async def fetch_public_items(self, limit: int = DEFAULT_LIMIT) -> List[PublicItem]:
        return await self._items.fetch_public_items(limit=limit)

    async def upvote(self, feedback_id: str) -> int:
        return await self._items.upvote(feedback_id)

    # --------------- Voting ---------------
    async def vote(self, item: PublicItem) -> bool:
        return await self._votes.vote(item)

    def has_voted(self, item_id: str) -> bool:
        return self._votes.has_voted(item_id)

    def is_voting(self, item_id: str) -> bool:
        return self._votes.is_voting(item_id)


__all__ = ["FounderWish"]
