"""
Unit tests for the broadcast hub.

Tests resync snapshots for new observers, lifecycle/content fan-out, the
status follow-up messages and per-channel failure isolation.
"""

import asyncio
import gc

import pytest

from wabridge.handlers.broadcast_hub import BroadcastHub, lifecycle_messages
from wabridge.handlers.error_handler import ErrorContext
from wabridge.models.events import (
    AuthFailure,
    Authenticated,
    Disconnected,
    Loading,
    MessageReceived,
    MessageSent,
    QrIssued,
    Ready,
)
from wabridge.models.session_state import SessionStatus


class TestLifecycleMessages:
    def test_qr_has_no_status_follow_up(self):
        event = QrIssued(challenge="2@abc", rendered_image="data:image/png;base64,xyz")
        assert lifecycle_messages(event) == [
            ("qr", {"qr": "data:image/png;base64,xyz", "qrString": "2@abc"})
        ]

    def test_loading_has_no_status_follow_up(self):
        assert lifecycle_messages(Loading(percent=30, message="Syncing")) == [
            ("loading", {"percent": 30, "message": "Syncing"})
        ]

    @pytest.mark.parametrize(
        "event, expected",
        [
            (Authenticated(), [("authenticated", {}), ("status", {"status": "authenticated"})]),
            (Ready(), [("ready", {}), ("status", {"status": "ready"})]),
            (
                AuthFailure(reason="restore failed"),
                [("auth_failure", {"message": "restore failed"}), ("status", {"status": "auth_failure"})],
            ),
            (
                Disconnected(reason="LOGOUT"),
                [("disconnected", {"reason": "LOGOUT"}), ("status", {"status": "disconnected"})],
            ),
        ],
    )
    def test_status_follows_transition(self, event, expected):
        assert lifecycle_messages(event) == expected


class TestObserverConnected:
    @pytest.mark.asyncio
    async def test_disconnected_snapshot(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)

        assert channel.messages == [("status", {"status": "disconnected"})]
        assert hub.observer_count == 1

    @pytest.mark.asyncio
    async def test_awaiting_scan_snapshot_includes_qr(self, hub, store, make_channel):
        store.apply(QrIssued(challenge="2@abc"))
        channel = make_channel()
        await hub.on_observer_connected(channel)

        assert channel.messages == [
            ("status", {"status": "qr"}),
            ("qr", {"qr": "data:image/png;base64,2@abc", "qrString": "2@abc"}),
        ]

    @pytest.mark.asyncio
    async def test_ready_snapshot_has_no_qr(self, hub, store, make_channel):
        store.apply(QrIssued(challenge="2@abc"))
        store.apply(Authenticated())
        store.apply(Ready())
        channel = make_channel()
        await hub.on_observer_connected(channel)

        assert channel.events == ["status"]
        assert channel.messages[0][1] == {"status": "ready"}

    @pytest.mark.asyncio
    async def test_render_failure_degrades_to_raw_challenge(self, store, error_handler, make_channel):
        def broken_renderer(code):
            raise ValueError("encoder exploded")

        hub = BroadcastHub(store, qr_renderer=broken_renderer, error_handler=error_handler)
        store.apply(QrIssued(challenge="2@abc"))
        channel = make_channel()
        await hub.on_observer_connected(channel)

        assert channel.messages[1] == ("qr", {"qr": None, "qrString": "2@abc"})
        assert error_handler.get_error_stats()["error_counts"][ErrorContext.RENDER.value] == 1

    @pytest.mark.asyncio
    async def test_failed_snapshot_is_reported_not_raised(self, hub, error_handler, make_channel):
        channel = make_channel("failing")
        await hub.on_observer_connected(channel)

        assert error_handler.get_error_stats()["error_counts"][ErrorContext.BROADCAST.value] == 1


class TestFanOut:
    @pytest.mark.asyncio
    async def test_lifecycle_event_reaches_every_channel(self, hub, make_channel):
        channels = [make_channel() for _ in range(3)]
        for channel in channels:
            await hub.on_observer_connected(channel)

        delivered = await hub.on_lifecycle_event(Ready())

        assert delivered == 3
        for channel in channels:
            assert channel.events == ["status", "ready", "status"]

    @pytest.mark.asyncio
    async def test_content_event_relayed_verbatim(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)
        event = MessageSent(
            to="120363000000000000@g.us",
            contactName="Team",
            body="hi all",
            timestamp=1700000000,
            isGroup=True,
            id="true_120363000000000000@g.us_XYZ",
        )

        await hub.on_content_event(event)

        assert channel.messages[-1] == (
            "message_sent",
            {
                "to": "120363000000000000@g.us",
                "contactName": "Team",
                "body": "hi all",
                "timestamp": 1700000000,
                "hasMedia": False,
                "type": "chat",
                "isGroup": True,
                "id": "true_120363000000000000@g.us_XYZ",
            },
        )

    @pytest.mark.asyncio
    async def test_publish_dispatches_by_kind(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)

        await hub.publish(Authenticated())
        await hub.publish(MessageReceived(from_="5511999999999@c.us", id="m1"))

        assert channel.events == ["status", "authenticated", "status", "message_received"]

    @pytest.mark.asyncio
    async def test_wrong_event_kind_rejected(self, hub):
        with pytest.raises(TypeError):
            await hub.on_lifecycle_event(MessageReceived(from_="x@c.us", id="m1"))
        with pytest.raises(TypeError):
            await hub.on_content_event(Ready())

    @pytest.mark.asyncio
    async def test_no_observers(self, hub):
        assert await hub.on_lifecycle_event(Ready()) == 0

    @pytest.mark.asyncio
    async def test_fan_out_does_not_touch_store(self, hub, store):
        await hub.on_lifecycle_event(Ready())
        assert store.status == SessionStatus.DISCONNECTED


class TestIsolation:
    @pytest.mark.asyncio
    async def test_failing_channel_does_not_block_others(self, hub, error_handler, make_channel):
        good_before = make_channel()
        bad = make_channel("failing")
        good_after = make_channel()
        for channel in (good_before, bad, good_after):
            await hub.on_observer_connected(channel)

        delivered = await hub.on_lifecycle_event(Disconnected(reason="LOGOUT"))

        assert delivered == 2
        for channel in (good_before, good_after):
            assert channel.messages[-2:] == [
                ("disconnected", {"reason": "LOGOUT"}),
                ("status", {"status": "disconnected"}),
            ]
        # The failed snapshot drops the channel, so the fan-out never tries it.
        assert error_handler.get_error_stats()["error_counts"][ErrorContext.BROADCAST.value] == 1
        assert bad.closed
        assert hub.observer_count == 2

    @pytest.mark.asyncio
    async def test_slow_channel_times_out(self, hub, error_handler, make_channel):
        good = make_channel()
        await hub.on_observer_connected(good)
        slow = make_channel("slow")
        await hub.on_observer_connected(slow)

        delivered = await hub.on_content_event(MessageReceived(from_="x@c.us", id="m1"))

        assert delivered == 1
        assert good.events[-1] == "message_received"

    @pytest.mark.asyncio
    async def test_timed_out_channel_is_deregistered(self, hub, error_handler, make_channel):
        good = make_channel()
        stalling = make_channel("stalling")
        await hub.on_observer_connected(good)
        await hub.on_observer_connected(stalling)
        assert hub.observer_count == 2

        loop = asyncio.get_running_loop()
        started = loop.time()
        for percent in range(0, 100, 20):
            await hub.on_lifecycle_event(Loading(percent=percent, message="Syncing"))
        elapsed = loop.time() - started

        assert hub.observer_count == 1
        assert stalling.closed
        assert stalling.events == ["status"]
        assert good.events.count("loading") == 5
        # Only the first event waits for the timeout.
        assert elapsed < hub.send_timeout * 2
        assert error_handler.get_error_stats()["error_counts"][ErrorContext.BROADCAST.value] == 1

    @pytest.mark.asyncio
    async def test_closed_channel_is_skipped(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)
        channel.mark_closed()

        assert await hub.on_lifecycle_event(Ready()) == 0
        assert channel.events == ["status"]


class TestRegistry:
    @pytest.mark.asyncio
    async def test_disconnect_deregisters(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)
        hub.on_observer_disconnected(channel)

        assert hub.observer_count == 0
        await hub.on_lifecycle_event(Ready())
        assert channel.events == ["status"]

    @pytest.mark.asyncio
    async def test_disconnect_unknown_channel_is_noop(self, hub, make_channel):
        hub.on_observer_disconnected(make_channel())
        assert hub.observer_count == 0

    @pytest.mark.asyncio
    async def test_registry_does_not_keep_channels_alive(self, hub, make_channel):
        channel = make_channel()
        await hub.on_observer_connected(channel)
        assert hub.observer_count == 1

        del channel
        gc.collect()

        assert hub.observer_count == 0

    @pytest.mark.asyncio
    async def test_snapshot_not_interleaved_with_fan_out(self, hub, store, make_channel):
        store.apply(QrIssued(challenge="2@abc"))
        existing = make_channel()
        await hub.on_observer_connected(existing)

        newcomer = make_channel()
        await asyncio.gather(
            hub.on_observer_connected(newcomer),
            hub.on_lifecycle_event(Authenticated()),
        )

        # The snapshot, whatever it contains, comes as one block.
        assert newcomer.events[0] == "status"
        if "qr" in newcomer.events:
            assert newcomer.events.index("qr") == 1
