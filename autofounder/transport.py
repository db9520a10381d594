"""
AutoFounder Deck Transport
==========================
Publisher: store the deck under "deck:<id>", broadcast it on the channel of the same
name, pick a viewer target (#deck=<id> if stored, else #deckdata=<inline>) and
navigate a viewer to it.

Resolver: given a viewer location, try the inline payload, then the store, then a
bounded wait on the broadcast channel. Every mechanism fails on its own; only when
all of them come up empty is DeckNotFoundError raised.

The store is the source of truth. A broadcast posted before the resolver subscribes
is lost, and that race is kept: the broadcast only helps when the viewer was already
listening (a viewer opened by the publisher before publish), or when storage is
blocked and the deck also travels inline.
"""

import asyncio
import json
import logging
import webbrowser
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence

from pydantic import ValidationError  # type: ignore[reportMissingImports]

from autofounder.broadcast import BroadcastHub
from autofounder.codec import DeckLocation, decode_payload, deck_key, encode_payload, parse_location, viewer_url
from autofounder.errors import DeckNotFoundError, PayloadDecodeError
from autofounder.models import Deck
from autofounder.stores import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_RESOLVE_TIMEOUT = 1.2
DEFAULT_CLOSE_AFTER = 1.5


# --- Navigation ---
class ViewerHandle(Protocol):
    @property
    def closed(self) -> bool: ...

    def navigate(self, url: str) -> None: ...

    def close(self) -> None: ...


class Navigator(Protocol):
    def open(self, url: str) -> Optional[ViewerHandle]: ...


class BrowserTab:
    """A tab opened through the system browser; it cannot be steered after opening."""

    def __init__(self, url: str):
        self.url = url
        self.closed = False

    def navigate(self, url: str) -> None:
        if not webbrowser.open(url, new=0):
            raise RuntimeError(f"browser refused to open {url}")
        self.url = url

    def close(self) -> None:
        self.closed = True


class SystemBrowserNavigator:
    def open(self, url: str) -> Optional[ViewerHandle]:
        if not webbrowser.open_new_tab(url):
            logger.warning("No browser available to open %s", url[:120])
            return None
        return BrowserTab(url)


# --- Publish ---
@dataclass
class PublishResult:
    key: str
    persisted: bool
    broadcasted: bool
    target: str
    viewer: Optional[ViewerHandle] = None


class DeckPublisher:
    def __init__(
        self,
        store: KeyValueStore,
        hub: Optional[BroadcastHub],
        origin: str,
        navigator: Optional[Navigator] = None,
        close_after: float = DEFAULT_CLOSE_AFTER,
    ):
        self.store = store
        self.hub = hub
        self.origin = origin
        self.navigator = navigator
        self.close_after = close_after

    def _persist(self, key: str, payload: Any) -> bool:
        try:
            self.store.set(key, json.dumps(payload, ensure_ascii=False))
            return True
        except Exception as e:
            logger.warning("Could not persist %s; falling back to an inline viewer URL. Error: %s", key, e)
            return False

    def _broadcast(self, key: str, payload: Any) -> bool:
        if self.hub is None:
            return False
        try:
            channel = self.hub.open(key)
            channel.post(payload)
        except Exception as e:
            logger.warning("Broadcast of %s failed: %s", key, e)
            return False
        try:
            asyncio.get_running_loop().call_later(self.close_after, channel.close)
        except RuntimeError:
            channel.close()
        return True

    def _navigate(self, target: str, viewer: Optional[ViewerHandle]) -> Optional[ViewerHandle]:
        if viewer is not None and not viewer.closed:
            try:
                viewer.navigate(target)
                return viewer
            except Exception as e:
                logger.warning("Navigating the pre-opened viewer failed, opening a new one. Error: %s", e)
            try:
                viewer.close()
            except Exception as e:
                logger.debug("Closing the stale viewer failed: %s", e)
        if self.navigator is None:
            return None
        try:
            return self.navigator.open(target)
        except Exception as e:
            logger.warning("Opening a viewer for %s failed: %s", target[:120], e)
            return None

    async def publish(self, deck: Deck, viewer: Optional[ViewerHandle] = None, present: bool = False) -> PublishResult:
        key = deck_key(deck.id)
        payload = deck.to_payload()

        # Storage first so the durable path has had its chance before anyone hears the broadcast
        persisted = self._persist(key, payload)
        broadcasted = self._broadcast(key, payload)

        if persisted:
            target = viewer_url(self.origin, deck_id=deck.id, present=present)
        else:
            target = viewer_url(self.origin, payload=encode_payload(payload), present=present)

        opened = self._navigate(target, viewer)
        logger.info("Published %s (persisted=%s, broadcast=%s)", key, persisted, broadcasted)
        return PublishResult(key=key, persisted=persisted, broadcasted=broadcasted, target=target, viewer=opened)


# --- Resolve ---
class DeckSource(Protocol):
    name: str

    async def fetch(self, location: DeckLocation) -> Optional[Any]: ...


class InlinePayloadSource:
    name = "inline"

    async def fetch(self, location: DeckLocation) -> Optional[Any]:
        if not location.inline_payload:
            return None
        return decode_payload(location.inline_payload)


class StoreSource:
    name = "store"

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def fetch(self, location: DeckLocation) -> Optional[Any]:
        if not location.key:
            return None
        raw = self.store.get(location.key)
        return json.loads(raw) if raw else None


class BroadcastSource:
    name = "broadcast"

    def __init__(self, hub: BroadcastHub, timeout: float = DEFAULT_RESOLVE_TIMEOUT):
        self.hub = hub
        self.timeout = timeout

    async def fetch(self, location: DeckLocation) -> Optional[Any]:
        if not location.key:
            return None
        channel = self.hub.open(location.key)
        try:
            return await channel.receive(self.timeout)
        finally:
            channel.close()


class ResolvePolicy:
    """Ordered list of sources; the first one yielding a valid deck wins."""

    def __init__(self, sources: Sequence[DeckSource]):
        self.sources: List[DeckSource] = list(sources)

    @classmethod
    def default(
        cls,
        store: Optional[KeyValueStore],
        hub: Optional[BroadcastHub],
        timeout: float = DEFAULT_RESOLVE_TIMEOUT,
    ) -> "ResolvePolicy":
        sources: List[DeckSource] = [InlinePayloadSource()]
        if store is not None:
            sources.append(StoreSource(store))
        if hub is not None:
            sources.append(BroadcastSource(hub, timeout))
        return cls(sources)


class DeckResolver:
    def __init__(self, policy: ResolvePolicy):
        self.policy = policy

    async def resolve_location(self, location: DeckLocation) -> Deck:
        for source in self.policy.sources:
            try:
                data = await source.fetch(location)
            except Exception as e:
                logger.warning("Deck source %s failed for %s: %s", source.name, location.raw[:120], e)
                continue
            if data is None:
                continue
            try:
                deck = Deck.from_payload(data)
            except ValidationError as e:
                logger.warning("Deck source %s returned an invalid deck: %s", source.name, e)
                continue
            if location.deck_id and source.name != "inline" and deck.id != location.deck_id:
                logger.warning("Deck source %s returned deck %s for %s; ignoring.", source.name, deck.id, location.deck_id)
                continue
            logger.info("Resolved deck %s via %s", deck.id, source.name)
            return deck
        raise DeckNotFoundError(location.raw)

    async def resolve(self, location: str) -> Deck:
        return await self.resolve_location(parse_location(location))

    async def resolve_key(self, deck_id: str) -> Deck:
        return await self.resolve_location(DeckLocation(raw=f"#deck={deck_id}", deck_id=deck_id))


def decode_investors(location: str) -> Deck:
    """Inline deck carried by an #investors= link (same encoding as #deckdata=)."""
    parsed = parse_location(location)
    if not parsed.investors_payload:
        raise DeckNotFoundError(location)
    try:
        return Deck.from_payload(decode_payload(parsed.investors_payload))
    except (PayloadDecodeError, ValidationError) as e:
        logger.warning("Invalid investors payload: %s", e)
        raise DeckNotFoundError(location) from e
