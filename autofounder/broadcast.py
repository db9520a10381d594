"""
In-process publish/subscribe hub with named channels.
Fire-and-forget: post() reaches the channels open under that name at the moment of
the call and nothing is queued for later subscribers. Messages are copied through
JSON so receivers never share objects with the sender.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Set

from autofounder.errors import ChannelClosedError

logger = logging.getLogger(__name__)


class BroadcastChannel:
    def __init__(self, hub: "BroadcastHub", name: str):
        self.hub = hub
        self.name = name
        self.closed = False
        self._inbox: "asyncio.Queue[str]" = asyncio.Queue()

    def post(self, message: Any) -> int:
        """Deliver to every other open channel with this name; returns how many received it."""
        if self.closed:
            raise ChannelClosedError(f"channel {self.name} is closed")
        return self.hub._deliver(self, json.dumps(message))

    async def receive(self, timeout: float) -> Optional[Any]:
        """Next message, or None once timeout seconds pass."""
        if self.closed:
            raise ChannelClosedError(f"channel {self.name} is closed")
        try:
            raw = await asyncio.wait_for(self._inbox.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None
        return json.loads(raw)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.hub._detach(self)


class BroadcastHub:
    def __init__(self):
        self._channels: Dict[str, Set[BroadcastChannel]] = {}

    def open(self, name: str) -> BroadcastChannel:
        channel = BroadcastChannel(self, name)
        self._channels.setdefault(name, set()).add(channel)
        return channel

    def subscribers(self, name: str) -> int:
        return len(self._channels.get(name, ()))

    def _deliver(self, sender: BroadcastChannel, raw: str) -> int:
        delivered = 0
        for channel in list(self._channels.get(sender.name, ())):
            if channel is sender or channel.closed:
                continue
            channel._inbox.put_nowait(raw)
            delivered += 1
        return delivered

    def _detach(self, channel: BroadcastChannel) -> None:
        members = self._channels.get(channel.name)
        if members is None:
            return
        members.discard(channel)
        if not members:
            del self._channels[channel.name]
