"""Tests for the session client base class and its value types."""

import pytest

from wabridge.client.base_client import (
    CLIENT_EVENTS,
    Contact,
    RawMessage,
    SentMessage,
    SessionClient,
)


class RecordingClient(SessionClient):
    async def initialize(self):
        pass

    async def send_message(self, chat_id, body):
        return SentMessage(id="m1", to=chat_id, body=body)

    async def destroy(self):
        pass


class TestContact:
    def test_display_name_prefers_pushname(self):
        assert Contact(id="1@c.us", pushname="Ana", name="Ana Souza", number="1").display_name == "Ana"

    def test_display_name_falls_back(self):
        assert Contact(id="1@c.us", name="Ana Souza", number="1").display_name == "Ana Souza"
        assert Contact(id="1@c.us", number="551100").display_name == "551100"
        assert Contact(id="1@c.us").display_name is None


class TestRawMessage:
    @pytest.mark.asyncio
    async def test_get_contact_uses_loader(self):
        contact = Contact(id="1@c.us", pushname="Ana")

        async def loader():
            return contact

        message = RawMessage(id="m1", from_="1@c.us", to="2@c.us", contact_loader=loader)
        assert await message.get_contact() is contact

    @pytest.mark.asyncio
    async def test_get_contact_without_loader(self):
        with pytest.raises(LookupError):
            await RawMessage(id="m1", from_="1@c.us", to="2@c.us").get_contact()


class TestSubscriptions:
    def test_unknown_event_rejected(self):
        with pytest.raises(ValueError):
            RecordingClient().on("presence", lambda: None)

    def test_every_known_event_accepted(self):
        client = RecordingClient()
        for event in CLIENT_EVENTS:
            client.on(event, lambda *args: None)
        assert client.subscriber_count() == len(CLIENT_EVENTS)

    @pytest.mark.asyncio
    async def test_emit_calls_sync_and_async_callbacks_in_order(self):
        client = RecordingClient()
        calls = []

        async def async_callback(percent, message):
            calls.append(("async", percent, message))

        client.on("loading_screen", lambda p, m: calls.append(("sync", p, m)))
        client.on("loading_screen", async_callback)

        await client.emit("loading_screen", 40, "Loading")

        assert calls == [("sync", 40, "Loading"), ("async", 40, "Loading")]

    @pytest.mark.asyncio
    async def test_cancelled_subscription_not_called(self):
        client = RecordingClient()
        calls = []
        subscription = client.on("ready", lambda: calls.append("ready"))

        assert subscription.cancel() is True
        assert subscription.cancel() is False
        await client.emit("ready")

        assert calls == []
        assert client.subscriber_count("ready") == 0

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_others(self):
        client = RecordingClient()
        calls = []

        def failing(reason):
            raise RuntimeError("subscriber bug")

        client.on("disconnected", failing)
        client.on("disconnected", lambda reason: calls.append(reason))

        await client.emit("disconnected", "LOGOUT")

        assert calls == ["LOGOUT"]
