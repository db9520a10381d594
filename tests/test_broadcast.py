import pytest

from autofounder.broadcast import BroadcastHub
from autofounder.errors import ChannelClosedError


@pytest.mark.asyncio
async def test_post_reaches_other_open_channels_only():
    hub = BroadcastHub()
    sender = hub.open("deck:a")
    listener = hub.open("deck:a")
    other = hub.open("deck:b")

    assert sender.post({"id": "a"}) == 1
    assert await listener.receive(0.1) == {"id": "a"}
    assert await other.receive(0.01) is None
    assert await sender.receive(0.01) is None


@pytest.mark.asyncio
async def test_receivers_get_a_copy():
    hub = BroadcastHub()
    sender, listener = hub.open("c"), hub.open("c")
    message = {"slides": [1, 2]}
    sender.post(message)
    received = await listener.receive(0.1)
    received["slides"].append(3)
    assert message == {"slides": [1, 2]}


@pytest.mark.asyncio
async def test_late_subscriber_misses_message():
    hub = BroadcastHub()
    assert hub.open("c").post("hello") == 0
    assert await hub.open("c").receive(0.01) is None


@pytest.mark.asyncio
async def test_close_is_idempotent_and_detaches():
    hub = BroadcastHub()
    channel = hub.open("c")
    assert hub.subscribers("c") == 1
    channel.close()
    channel.close()
    assert hub.subscribers("c") == 0
    with pytest.raises(ChannelClosedError):
        channel.post("x")
    with pytest.raises(ChannelClosedError):
        await channel.receive(0.01)
