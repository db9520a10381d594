import asyncio
import json
import time

import pytest

from autofounder.broadcast import BroadcastHub
from autofounder.codec import encode_payload, investors_url, parse_location
from autofounder.errors import DeckNotFoundError
from autofounder.models import Deck, Slide
from autofounder.stores import MemoryStore, UnavailableStore
from autofounder.transport import (
    BroadcastSource,
    DeckPublisher,
    DeckResolver,
    InlinePayloadSource,
    ResolvePolicy,
    StoreSource,
    SystemBrowserNavigator,
    decode_investors,
)
from tests.helpers import FakeNavigator, FakeViewer

ORIGIN = "http://localhost:8000"


def _resolver(store, hub, timeout=0.05):
    return DeckResolver(ResolvePolicy.default(store, hub, timeout))


class TestPublishResolve:
    @pytest.mark.asyncio
    async def test_store_path_without_waiting(self, deck):
        store, hub = MemoryStore(), BroadcastHub()
        result = await DeckPublisher(store, hub, ORIGIN).publish(deck)

        assert result.persisted
        assert result.key == "deck:abc123"
        assert result.target == f"{ORIGIN}/#deck=abc123"

        # Fresh hub: the viewer is in another process and never heard the broadcast
        resolver = _resolver(store, BroadcastHub(), timeout=5.0)
        started = time.monotonic()
        assert await resolver.resolve(result.target) == deck
        assert time.monotonic() - started < 1.0

    @pytest.mark.asyncio
    async def test_blocked_store_falls_back_to_inline(self, deck):
        result = await DeckPublisher(UnavailableStore(), BroadcastHub(), ORIGIN).publish(deck, present=True)

        assert not result.persisted
        assert "#deckdata=" in result.target
        assert result.target.endswith("&present=1")
        resolved = await _resolver(UnavailableStore(), BroadcastHub()).resolve(result.target)
        assert resolved == deck

    @pytest.mark.asyncio
    async def test_quota_exceeded_falls_back_to_inline(self, deck):
        result = await DeckPublisher(MemoryStore(quota_bytes=10), None, ORIGIN).publish(deck)
        assert not result.persisted
        assert not result.broadcasted
        assert "#deckdata=" in result.target

    @pytest.mark.asyncio
    async def test_resolve_is_idempotent(self, deck):
        store = MemoryStore()
        result = await DeckPublisher(store, None, ORIGIN).publish(deck)
        resolver = _resolver(store, None)
        first = await resolver.resolve(result.target)
        second = await resolver.resolve(result.target)
        assert first == second == deck

    @pytest.mark.asyncio
    async def test_broadcast_reaches_listening_viewer(self, deck):
        hub = BroadcastHub()
        resolver = _resolver(UnavailableStore(), hub, timeout=2.0)
        pending = asyncio.ensure_future(resolver.resolve_key(deck.id))
        while hub.subscribers("deck:abc123") == 0:
            await asyncio.sleep(0.01)

        result = await DeckPublisher(UnavailableStore(), hub, ORIGIN, close_after=0.05).publish(deck)
        assert result.broadcasted
        assert await pending == deck

    @pytest.mark.asyncio
    async def test_broadcast_before_subscribe_is_lost(self, deck):
        hub = BroadcastHub()
        await DeckPublisher(UnavailableStore(), hub, ORIGIN).publish(deck)
        with pytest.raises(DeckNotFoundError):
            await _resolver(UnavailableStore(), hub, timeout=0.05).resolve_key(deck.id)

    @pytest.mark.asyncio
    async def test_publisher_channel_closes_after_delay(self, deck):
        hub = BroadcastHub()
        await DeckPublisher(MemoryStore(), hub, ORIGIN, close_after=0.05).publish(deck)
        assert hub.subscribers("deck:abc123") == 1
        await asyncio.sleep(0.15)
        assert hub.subscribers("deck:abc123") == 0


class TestResolveFailures:
    @pytest.mark.asyncio
    async def test_stale_link_not_found(self):
        resolver = _resolver(MemoryStore(), BroadcastHub())
        with pytest.raises(DeckNotFoundError) as exc:
            await resolver.resolve(f"{ORIGIN}/#deck=gone")
        assert "No deck found" in str(exc.value)

    @pytest.mark.asyncio
    async def test_corrupt_inline_payload_degrades_to_store(self, deck):
        store = MemoryStore()
        store.set("deck:abc123", json.dumps(deck.to_payload()))
        resolved = await _resolver(store, None).resolve("#deck=abc123&deckdata=!!!not-base64")
        assert resolved == deck

    @pytest.mark.asyncio
    async def test_invalid_stored_deck_is_skipped(self):
        store = MemoryStore()
        store.set("deck:x", json.dumps({"id": "x", "slides": []}))
        with pytest.raises(DeckNotFoundError):
            await _resolver(store, None).resolve("#deck=x")

    @pytest.mark.asyncio
    async def test_mismatched_id_from_store_is_ignored(self, deck):
        store = MemoryStore()
        store.set("deck:other", json.dumps(deck.to_payload()))
        with pytest.raises(DeckNotFoundError):
            await _resolver(store, None).resolve("#deck=other")

    @pytest.mark.asyncio
    async def test_no_sources(self):
        with pytest.raises(DeckNotFoundError):
            await DeckResolver(ResolvePolicy([])).resolve("#deck=a")

    @pytest.mark.asyncio
    async def test_broadcast_source_closes_its_channel(self):
        hub = BroadcastHub()
        source = BroadcastSource(hub, timeout=0.01)
        assert await source.fetch(parse_location("#deck=a")) is None
        assert hub.subscribers("deck:a") == 0

    def test_default_policy_order(self):
        policy = ResolvePolicy.default(MemoryStore(), BroadcastHub())
        assert [type(s) for s in policy.sources] == [InlinePayloadSource, StoreSource, BroadcastSource]


class TestNavigation:
    @pytest.mark.asyncio
    async def test_pre_opened_viewer_is_reused(self, deck):
        viewer, navigator = FakeViewer(), FakeNavigator()
        result = await DeckPublisher(MemoryStore(), None, ORIGIN, navigator=navigator).publish(deck, viewer=viewer)
        assert result.viewer is viewer
        assert viewer.url == result.target
        assert navigator.opened == []

    @pytest.mark.asyncio
    async def test_failing_viewer_falls_back_to_new_one(self, deck):
        viewer, navigator = FakeViewer(fail_navigate=True, fail_close=True), FakeNavigator()
        result = await DeckPublisher(MemoryStore(), None, ORIGIN, navigator=navigator).publish(deck, viewer=viewer)
        assert viewer.close_calls == 1
        assert navigator.opened == [result.target]
        assert result.viewer is not viewer

    @pytest.mark.asyncio
    async def test_closed_viewer_is_not_used(self, deck):
        viewer, navigator = FakeViewer(closed=True), FakeNavigator()
        result = await DeckPublisher(MemoryStore(), None, ORIGIN, navigator=navigator).publish(deck, viewer=viewer)
        assert viewer.url is None
        assert navigator.opened == [result.target]

    @pytest.mark.asyncio
    async def test_blocked_navigation_still_publishes(self, deck):
        store = MemoryStore()
        result = await DeckPublisher(store, None, ORIGIN, navigator=FakeNavigator(fail=True)).publish(deck)
        assert result.viewer is None
        assert result.persisted
        assert store.get("deck:abc123") is not None

    def test_system_browser_navigator(self, monkeypatch):
        opened = []
        monkeypatch.setattr("webbrowser.open_new_tab", lambda url: opened.append(url) or True)
        tab = SystemBrowserNavigator().open(f"{ORIGIN}/#deck=a")
        assert opened == [f"{ORIGIN}/#deck=a"]
        assert tab is not None and not tab.closed

    def test_system_browser_navigator_without_browser(self, monkeypatch):
        monkeypatch.setattr("webbrowser.open_new_tab", lambda url: False)
        assert SystemBrowserNavigator().open(f"{ORIGIN}/#deck=a") is None


class TestInvestors:
    def test_decode_investors(self, deck):
        assert decode_investors(investors_url(ORIGIN, deck.to_payload())) == deck

    def test_missing_payload(self):
        with pytest.raises(DeckNotFoundError):
            decode_investors(f"{ORIGIN}/#deck=a")

    def test_invalid_payload(self):
        with pytest.raises(DeckNotFoundError):
            decode_investors(f"{ORIGIN}/#investors={encode_payload({'id': 'x'})}")


def test_resolved_deck_keeps_unicode(deck):
    payload = Deck.from_payload(deck.to_payload())
    assert payload.slides[1].bullets == ["Décks take wéeks", "日本語も"]
    assert isinstance(payload.slides[0], Slide)
