from __future__ import annotations

import json
from datetime import datetime, UTC
from typing import Any, Dict, List

import httpx
import pytest

from founderwish import (
    CLEAR,
    BillingCycle,
    FounderWish,
    FounderWishSettings,
    NotConfiguredError,
    PaymentStatus,
    ServerError,
)
from founderwish.common.device import DeviceMetadata
from founderwish.common.kv_store import JsonKeyValueStore


class _FakeDevice:
    async def capture(self) -> DeviceMetadata:
        return DeviceMetadata(user_identifier="INSTALL-1", install_date=datetime(2024, 1, 1, tzinfo=UTC))


class _FakeBoard:
    """Minimal in-memory board service."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.votes: Dict[str, int] = {"1": 5}
        self.fail_upvotes = False

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/api/ingest-info":
            return httpx.Response(200, json={"slug": "board"})
        if path == "/api/feedback":
            return httpx.Response(201, json={"id": "new"})
        if path == "/api/public-feedback":
            items = [
                {"id": k, "title": f"Item {k}", "status": "open", "created_at": "2024-01-01T00:00:00Z", "votes": v}
                for k, v in self.votes.items()
            ]
            return httpx.Response(200, json={"items": items})
        if path == "/api/public-upvote":
            if self.fail_upvotes:
                return httpx.Response(503, text="maintenance")
            fid = json.loads(request.content)["feedback_id"]
            self.votes[fid] += 1
            return httpx.Response(200, json={"ok": True, "votes": self.votes[fid]})
        return httpx.Response(404)

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def _facade(tmp_path, board: _FakeBoard, **kwargs: Any) -> FounderWish:
    client = httpx.AsyncClient(transport=httpx.MockTransport(board))
    return FounderWish(
        FounderWishSettings(store_dir=tmp_path),
        kv_store=JsonKeyValueStore(tmp_path / "store.json"),
        device_provider=_FakeDevice(),
        client=client,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_configure_builds_profile_from_payment_fields(tmp_path):
    fw = _facade(tmp_path, _FakeBoard())
    await fw.configure(
        "KEY",
        email="a@example.com",
        payment_status=PaymentStatus.PAID,
        billing_cycle=BillingCycle.MONTHLY,
        amount="$9.99",
        base_url="https://fw.test",
    )
    profile = await fw.user_profile()
    assert profile.subscription_status == "paid"
    assert profile.email == "a@example.com"
    assert profile.custom_metadata == {"billing_cycle": "monthly", "amount": "$9.99"}
    cfg = await fw.store.current_config()
    assert cfg.base_url == "https://fw.test"


@pytest.mark.asyncio
async def test_configure_without_billing_has_no_metadata(tmp_path):
    fw = _facade(tmp_path, _FakeBoard())
    await fw.configure("KEY")
    profile = await fw.user_profile()
    assert profile.subscription_status == "free"
    assert profile.custom_metadata is None


@pytest.mark.asyncio
async def test_set_user_merges_only_given_fields(tmp_path):
    fw = _facade(tmp_path, _FakeBoard())
    await fw.configure("KEY", email="a@example.com", billing_cycle="yearly")

    profile = await fw.set_user(payment_status="trial")
    assert profile.email == "a@example.com"
    assert profile.subscription_status == "trial"
    assert profile.custom_metadata == {"billing_cycle": "yearly"}

    profile = await fw.set_user(amount="$49.99", billing_cycle=BillingCycle.LIFETIME)
    assert profile.custom_metadata == {"billing_cycle": "lifetime", "amount": "$49.99"}

    profile = await fw.set_user(email=CLEAR)
    assert profile.email is None
    assert profile.subscription_status == "trial"


@pytest.mark.asyncio
async def test_send_feedback_before_configure(tmp_path):
    board = _FakeBoard()
    fw = _facade(tmp_path, board)
    with pytest.raises(NotConfiguredError):
        await fw.send_feedback("Dark mode")
    assert board.requests == []


@pytest.mark.asyncio
async def test_end_to_end_feedback_list_and_vote(tmp_path):
    board = _FakeBoard()
    fw = _facade(tmp_path, board)
    await fw.configure("KEY", base_url="https://fw.test", email="a@example.com")

    await fw.send_feedback("Dark mode", "Please", category="bug")
    sent = json.loads(board.requests[-1].content)
    assert sent["category"] == "bug"
    assert sent["email"] == "a@example.com"

    items = await fw.fetch_public_items()
    assert [i.id for i in items] == ["1"]
    item = items[0]

    assert await fw.vote(item) is True
    assert item.votes == 6
    assert fw.has_voted("1")
    assert not fw.is_voting("1")

    # Second vote is a local no-op
    assert await fw.vote(item) is False
    assert board.paths().count("/api/public-upvote") == 1
    assert board.paths().count("/api/ingest-info") == 1


@pytest.mark.asyncio
async def test_vote_failure_rolls_back(tmp_path):
    board = _FakeBoard()
    board.fail_upvotes = True
    fw = _facade(tmp_path, board)
    await fw.configure("KEY")

    item = (await fw.fetch_public_items())[0]
    with pytest.raises(ServerError):
        await fw.vote(item)
    assert item.votes == 5
    assert not fw.has_voted("1")


@pytest.mark.asyncio
async def test_voted_ids_survive_new_facade(tmp_path):
    board = _FakeBoard()
    fw = _facade(tmp_path, board)
    await fw.configure("KEY")
    await fw.vote((await fw.fetch_public_items())[0])

    fresh = _facade(tmp_path, board)
    assert fresh.has_voted("1")


@pytest.mark.asyncio
async def test_configure_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("FOUNDERWISH_BOARD_KEY", "ENVKEY")
    monkeypatch.setenv("FOUNDERWISH_BASE_URL", "https://env.test")
    fw = _facade(tmp_path, _FakeBoard())
    await fw.configure_from_env()
    cfg = await fw.store.current_config()
    assert cfg.ingest_secret == "ENVKEY"
    assert cfg.base_url == "https://env.test"
    assert await fw.user_profile() is None


@pytest.mark.asyncio
async def test_aclose_leaves_injected_client_open(tmp_path):
    client = httpx.AsyncClient(transport=httpx.MockTransport(_FakeBoard()))
    async with FounderWish(FounderWishSettings(store_dir=tmp_path), client=client):
        pass
    assert not client.is_closed
    await client.aclose()

    async with FounderWish(FounderWishSettings(store_dir=tmp_path)) as owned:
        inner = owned._client
    assert inner.is_closed


@pytest.mark.asyncio
async def test_configure_from_env_falls_back_to_instance_settings(tmp_path, monkeypatch):
    monkeypatch.delenv("FOUNDERWISH_BOARD_KEY", raising=False)
    monkeypatch.delenv("FOUNDERWISH_BASE_URL", raising=False)
    client = httpx.AsyncClient(transport=httpx.MockTransport(_FakeBoard()))
    fw = FounderWish(
        FounderWishSettings(board_key="SETKEY", base_url="https://settings.test", store_dir=tmp_path),
        device_provider=_FakeDevice(),
        client=client,
    )
    await fw.configure_from_env()
    cfg = await fw.store.current_config()
    assert cfg.ingest_secret == "SETKEY"
    assert cfg.base_url == "https://settings.test"

    monkeypatch.setenv("FOUNDERWISH_BOARD_KEY", "ENVKEY")
    await fw.configure_from_env()
    cfg = await fw.store.current_config()
    assert cfg.ingest_secret == "ENVKEY"
    assert cfg.base_url == "https://settings.test"
    await client.aclose()


@pytest.mark.asyncio
async def test_configure_from_env_without_any_board_key(tmp_path, monkeypatch):
    monkeypatch.delenv("FOUNDERWISH_BOARD_KEY", raising=False)
    fw = _facade(tmp_path, _FakeBoard())
    with pytest.raises(RuntimeError, match="FOUNDERWISH_BOARD_KEY"):
        await fw.configure_from_env()
