import asyncio
import uuid
from types import SimpleNamespace

import pytest

from spabook.core.exceptions import RealtimeError
from spabook.modules.realtime.hub import (
    TOPIC_CHANGES,
    TOPIC_NOTIFICATIONS,
    TOPIC_REFETCH,
    RealtimeEvent,
    RealtimeHub,
)
from spabook.routers.realtime import event_visible_to, parse_topics


async def test_delivers_only_to_subscribed_topic():
    hub = RealtimeHub(queue_size=5)
    async with hub.subscribe(TOPIC_REFETCH) as refetch, hub.subscribe(TOPIC_CHANGES) as changes:
        assert hub.publish(TOPIC_REFETCH, "refresh_appointments") == 1

        event = await asyncio.wait_for(refetch.get(), timeout=1)
        assert event == RealtimeEvent(TOPIC_REFETCH, "refresh_appointments", {})
        assert event.as_message() == {"topic": TOPIC_REFETCH, "event": "refresh_appointments", "payload": {}}
        assert changes.get_nowait() is None


async def test_fan_out_to_every_open_subscription():
    hub = RealtimeHub()
    subs = [hub.subscribe(TOPIC_NOTIFICATIONS) for _ in range(3)]
    assert hub.publish(TOPIC_NOTIFICATIONS, "appointment_status_changed", {"newStatus": "confirmed"}) == 3
    for sub in subs:
        assert sub.get_nowait().payload == {"newStatus": "confirmed"}
        sub.close()


async def test_teardown_removes_subscription():
    hub = RealtimeHub()
    async with hub.subscribe(TOPIC_CHANGES, TOPIC_REFETCH) as sub:
        assert hub.subscriber_count(TOPIC_CHANGES) == 1
        assert hub.subscriber_count() == 1
    assert sub.closed
    assert hub.subscriber_count() == 0
    # nobody listening: nothing is stored for later
    assert hub.publish(TOPIC_CHANGES, "INSERT", {}) == 0


async def test_full_queue_drops_for_that_subscriber_only():
    hub = RealtimeHub(queue_size=1)
    slow = hub.subscribe(TOPIC_REFETCH)
    assert hub.publish(TOPIC_REFETCH, "refresh_appointments") == 1
    fast = hub.subscribe(TOPIC_REFETCH)

    assert hub.publish(TOPIC_REFETCH, "refresh_appointments") == 1
    assert slow.dropped == 1
    assert fast.get_nowait() is not None
    slow.close()
    fast.close()


async def test_iteration_stops_when_closed():
    hub = RealtimeHub()
    sub = hub.subscribe(TOPIC_REFETCH)
    hub.publish(TOPIC_REFETCH, "refresh_appointments")

    received = []

    async def consume():
        async for event in sub:
            received.append(event.event)

    task = asyncio.create_task(consume())
    await asyncio.sleep(0)
    sub.close()
    await asyncio.wait_for(task, timeout=1)
    assert received == ["refresh_appointments"]


async def test_unknown_topic_and_closed_hub():
    hub = RealtimeHub()
    with pytest.raises(RealtimeError) as err:
        hub.subscribe("appointments-everything")
    assert err.value.code == "unknown_topic"
    with pytest.raises(RealtimeError):
        hub.publish("nope", "INSERT")

    sub = hub.subscribe()
    assert sub.topics == {TOPIC_CHANGES, TOPIC_NOTIFICATIONS, TOPIC_REFETCH}
    hub.close()
    assert sub.closed
    with pytest.raises(RealtimeError) as err:
        hub.publish(TOPIC_CHANGES, "INSERT")
    assert err.value.code == "hub_closed"


def test_status_notifications_are_private():
    owner = SimpleNamespace(id=uuid.uuid4(), is_admin=False)
    stranger = SimpleNamespace(id=uuid.uuid4(), is_admin=False)
    admin = SimpleNamespace(id=uuid.uuid4(), is_admin=True)
    note = RealtimeEvent(TOPIC_NOTIFICATIONS, "appointment_status_changed", {"patientId": str(owner.id)})
    refresh = RealtimeEvent(TOPIC_REFETCH, "refresh_appointments", {})

    assert event_visible_to(note, owner)
    assert event_visible_to(note, admin)
    assert not event_visible_to(note, stranger)
    assert event_visible_to(refresh, stranger)


def test_parse_topics():
    assert parse_topics(None) == ()
    assert parse_topics("appointments-refetch, appointment-notifications,") == (
        "appointments-refetch",
        "appointment-notifications",
    )
