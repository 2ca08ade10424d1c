import asyncio
import json

import anyio
import pytest

from menorah_live.api.websockets import SubscriberHub
from menorah_live.services.broadcast_service import BroadcastCoordinator
from menorah_live.services.campaign_service import CampaignService


class RecordingSocket:
    def __init__(self):
        self.sent = []

    async def send_text(self, text):
        self.sent.append(json.loads(text))


class StalledSocket:
    """A peer that stopped reading: sends never complete."""

    async def send_text(self, text):
        await asyncio.Event().wait()


class ClosedSocket:
    async def send_text(self, text):
        raise RuntimeError("Cannot call send once a close message has been sent")


async def wait_until(condition, timeout=2):
    with anyio.fail_after(timeout):
        while not condition():
            await asyncio.sleep(0.01)


@pytest.mark.anyio
async def test_every_client_gets_every_message_in_order():
    hub = SubscriberHub()
    first, second = RecordingSocket(), RecordingSocket()
    await hub.subscribe(first)
    await hub.subscribe(second)

    for n in range(3):
        assert await hub.broadcast({"type": "tick", "n": n}) == 2

    await wait_until(lambda: len(first.sent) == 3 and len(second.sent) == 3)
    assert [message["n"] for message in first.sent] == [0, 1, 2]
    assert first.sent == second.sent

    await hub.unsubscribe(first)
    await hub.unsubscribe(second)
    assert hub.connection_count == 0


@pytest.mark.anyio
async def test_stalled_client_does_not_hold_up_mutations(ledger, config_service, donation_payload):
    hub = SubscriberHub(max_pending=1)
    stalled, fast = StalledSocket(), RecordingSocket()
    await hub.subscribe(stalled)
    await hub.subscribe(fast)
    campaign = CampaignService(ledger, config_service, BroadcastCoordinator(hub))

    with anyio.fail_after(5):
        for n in range(4):
            await campaign.create_donation(donation_payload(amount=1000 + n))

    assert len(ledger.get_all()) == 4
    assert hub.connection_count == 1

    await wait_until(lambda: len(fast.sent) == 4)
    assert [event["donation"]["amount"] for event in fast.sent] == [1000, 1001, 1002, 1003]

    await hub.unsubscribe(fast)


@pytest.mark.anyio
async def test_failing_client_is_removed():
    hub = SubscriberHub()
    closed, healthy = ClosedSocket(), RecordingSocket()
    await hub.subscribe(closed)
    await hub.subscribe(healthy)

    await hub.broadcast({"type": "tick"})

    await wait_until(lambda: hub.connection_count == 1)
    await wait_until(lambda: len(healthy.sent) == 1)
    await hub.unsubscribe(healthy)


@pytest.mark.anyio
async def test_unsubscribed_client_receives_nothing():
    hub = SubscriberHub()
    socket = RecordingSocket()
    await hub.subscribe(socket)
    await hub.unsubscribe(socket)
    await hub.unsubscribe(socket)

    assert await hub.broadcast({"type": "tick"}) == 0
    await asyncio.sleep(0.05)
    assert socket.sent == []
