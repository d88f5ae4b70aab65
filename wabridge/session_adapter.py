"""
Session client adapter.

The adapter owns the optional client handle and is the single subscriber of
the client's raw events. Every raw callback is queued and consumed in order by
one pipeline task, which:

1. discards events of an older start attempt or of a client that is no
   longer the current handle
2. translates the raw event into a ``LifecycleEvent`` or ``ContentEvent``
3. applies lifecycle events to the session state store
4. relays the event to observers through the broadcast hub

Handle ownership moves ABSENT -> STARTING -> LIVE. A ``Disconnected`` event
(including a failed start) drops the handle back to ABSENT and destroys the
dropped client in the background, so ``initialize()`` can be called again.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set, Tuple

from wabridge.client.base_client import (
    CLIENT_EVENTS,
    RawMessage,
    SessionClient,
    Subscription,
)
from wabridge.client.whatsapp_web_client import WhatsAppWebClient
from wabridge.config.constants import (
    CONTACT_SUFFIX,
    ERR_MISSING_FIELDS,
    ERR_NOT_CONNECTED,
    ERR_SEND_FAILED,
    GROUP_SUFFIX,
    MSG_ALREADY_INITIALIZED,
    MSG_INITIALIZED,
    MSG_INITIALIZING,
)
from wabridge.config.logging_config import configure_logging
from wabridge.exceptions import (
    DeliveryFailed,
    InitializationFailed,
    InvalidArgument,
    PreconditionFailed,
)
from wabridge.handlers.broadcast_hub import BroadcastHub
from wabridge.handlers.error_handler import (
    ErrorContext,
    ErrorHandler,
    ErrorSeverity,
    get_error_handler,
)
from wabridge.handlers.session_store import SessionStateStore
from wabridge.models.events import (
    LIFECYCLE_EVENT_TYPES,
    AuthFailure,
    Authenticated,
    Disconnected,
    Loading,
    MessageReceived,
    MessageSent,
    QrIssued,
    Ready,
)
from wabridge.models.session_state import HandleState, SessionStatus
from wabridge.utils.qr_renderer import render_qr_data_url

logger = configure_logging("session_adapter")


def normalize_recipient(recipient: str) -> str:
    """Qualify a bare phone number as a direct chat id.

    Identifiers that already contain the contact suffix or end with the group
    suffix are returned unchanged.
    """
    if CONTACT_SUFFIX in recipient or recipient.endswith(GROUP_SUFFIX):
        return recipient
    return f"{recipient}{CONTACT_SUFFIX}"


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _clamp_percent(value: Any) -> int:
    try:
        percent = int(float(value))
    except (TypeError, ValueError):
        percent = 0
    return max(0, min(100, percent))


@dataclass(frozen=True)
class InitializeResult:
    """Outcome of ``SessionAdapter.initialize``."""

    message: str
    started: bool
    handle_state: HandleState


class SessionAdapter:
    """Owner of the session client handle and of the event pipeline.

    Attributes:
        store: Session state store, the target of lifecycle events
        hub: Broadcast hub, the target of every event
    """

    def __init__(
        self,
        store: SessionStateStore,
        hub: BroadcastHub,
        client_factory: Optional[Callable[[], SessionClient]] = None,
        qr_renderer: Callable[[str], str] = render_qr_data_url,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.store = store
        self.hub = hub
        self._client_factory = client_factory or WhatsAppWebClient
        self._qr_renderer = qr_renderer
        self._error_handler = error_handler or get_error_handler()

        self._client: Optional[SessionClient] = None
        self._handle_state = HandleState.ABSENT
        self._subscriptions: List[Subscription] = []
        self._start_task: Optional[asyncio.Task] = None
        # Incremented by every start attempt; events of older attempts are stale.
        self._attempt = 0

        self._queue: Optional[asyncio.Queue] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._background: Set[asyncio.Task] = set()

    @property
    def handle_state(self) -> HandleState:
        return self._handle_state

    @property
    def client(self) -> Optional[SessionClient]:
        return self._client

    def initialize(self) -> InitializeResult:
        """Start a client if none is present.

        Never raises and never waits for the client: the start runs in the
        background and its outcome is reported only as lifecycle events.
        Must be called from a running event loop.
        """
        if self._handle_state is HandleState.LIVE:
            logger.info("Initialize requested, client already live")
            return InitializeResult(MSG_ALREADY_INITIALIZED, False, self._handle_state)
        if self._handle_state is HandleState.STARTING:
            logger.info("Initialize requested, client start already in progress")
            return InitializeResult(MSG_INITIALIZING, False, self._handle_state)

        self._ensure_pipeline()
        self._attempt += 1
        attempt = self._attempt

        # No await between the presence check above and taking ownership here.
        try:
            client = self._client_factory()
        except Exception as e:
            logger.error(f"Could not construct session client: {e}")
            self._spawn(self._report_start_failure(None, attempt, e))
            return InitializeResult(MSG_INITIALIZED, True, self._handle_state)

        self._client = client
        self._handle_state = HandleState.STARTING
        self._subscriptions = [
            client.on(event, self._make_listener(client, attempt, event))
            for event in CLIENT_EVENTS
        ]
        self._start_task = asyncio.create_task(self._start(client, attempt))
        logger.info("Session client created, starting in background")
        return InitializeResult(MSG_INITIALIZED, True, self._handle_state)

    async def send_message(self, recipient: Optional[str], body: Optional[str]) -> str:
        """Send a text message and return the serialized message id.

        Raises:
            InvalidArgument: If recipient or body is empty
            PreconditionFailed: If the session is not live and ready
            DeliveryFailed: If the client failed to send
        """
        if _is_blank(recipient) or _is_blank(body):
            raise InvalidArgument(ERR_MISSING_FIELDS)

        client = self._client
        if (
            client is None
            or self._handle_state is not HandleState.LIVE
            or self.store.status is not SessionStatus.READY
        ):
            raise PreconditionFailed(ERR_NOT_CONNECTED)

        chat_id = normalize_recipient(recipient)
        try:
            sent = await client.send_message(chat_id, body)
        except Exception as e:
            logger.error(f"Failed to send message to {chat_id}: {e}")
            raise DeliveryFailed(ERR_SEND_FAILED, details=str(e)) from e

        logger.info(f"Message sent to {chat_id} ({sent.id})")
        return sent.id

    async def wait_idle(self) -> None:
        """Wait until the pipeline has nothing left to process."""
        while True:
            pending = list(self._background)
            if self._start_task is not None and not self._start_task.done():
                pending.append(self._start_task)
            if pending:
                await asyncio.wait(pending)
            if self._queue is not None:
                await self._queue.join()
            if not self._background and (
                self._start_task is None or self._start_task.done()
            ):
                return

    async def close(self) -> None:
        """Stop the pipeline and destroy the current client, if any."""
        client = self._client
        self._release_handle()

        if self._start_task is not None and not self._start_task.done():
            self._start_task.cancel()
            try:
                await self._start_task
            except asyncio.CancelledError:
                pass
        self._start_task = None

        if self._consumer_task is not None:
            self._consumer_task.cancel()
            try:
                await self._consumer_task
            except asyncio.CancelledError:
                pass
        self._consumer_task = None
        self._queue = None

        if client is not None:
            await self._destroy_client(client)
        if self._background:
            await asyncio.wait(list(self._background))
        logger.info("Session adapter closed")

    # Handle management

    async def _start(self, client: SessionClient, attempt: int) -> None:
        try:
            await client.initialize()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if client is not self._client:
                logger.debug(f"Start failure of a dropped client ignored: {e}")
                return
            await self._report_start_failure(client, attempt, e)
            return

        if client is self._client and self._handle_state is HandleState.STARTING:
            self._handle_state = HandleState.LIVE
            logger.info("Session client started")

    async def _report_start_failure(
        self, client: Optional[SessionClient], attempt: int, error: Exception
    ) -> None:
        failure = error if isinstance(error, InitializationFailed) else InitializationFailed(str(error))
        await self._error_handler.handle_error(
            failure,
            context=ErrorContext.CLIENT,
            severity=ErrorSeverity.HIGH,
            operation="initialize",
        )
        reason = f"initialization failed: {error}"
        self._enqueue(client, attempt, "disconnected", (reason,))

    def _release_handle(self) -> None:
        for subscription in self._subscriptions:
            subscription.cancel()
        self._subscriptions = []
        self._client = None
        self._handle_state = HandleState.ABSENT

    def _drop_client(self, client: SessionClient) -> None:
        if client is not self._client:
            return
        self._release_handle()
        logger.info("Session client dropped, destroying it in background")
        self._spawn(self._destroy_client(client))

    async def _destroy_client(self, client: SessionClient) -> None:
        try:
            await client.destroy()
        except Exception as e:
            await self._error_handler.handle_error(
                e,
                context=ErrorContext.CLIENT,
                severity=ErrorSeverity.LOW,
                operation="destroy",
            )

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    # Event pipeline

    def _ensure_pipeline(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._consumer_task is None or self._consumer_task.done():
            self._consumer_task = asyncio.create_task(self._consume())

    def _make_listener(
        self, client: SessionClient, attempt: int, event: str
    ) -> Callable[..., None]:
        def listener(*args: Any) -> None:
            self._enqueue(client, attempt, event, args)

        return listener

    def _enqueue(
        self,
        client: Optional[SessionClient],
        attempt: int,
        event: str,
        args: Tuple[Any, ...],
    ) -> None:
        if self._queue is None:
            logger.debug(f"Pipeline stopped, dropping {event}")
            return
        self._queue.put_nowait((client, attempt, event, args))

    async def _consume(self) -> None:
        while True:
            client, attempt, event, args = await self._queue.get()
            try:
                if attempt != self._attempt or (
                    client is not None and client is not self._client
                ):
                    logger.debug(f"Discarding {event} from a stale start attempt")
                    continue
                await self._process(client, event, args)
            except Exception as e:
                await self._error_handler.handle_error(
                    e,
                    context=ErrorContext.SESSION,
                    severity=ErrorSeverity.MEDIUM,
                    operation="process_event",
                    event=event,
                )
            finally:
                self._queue.task_done()

    async def _process(self, client: Optional[SessionClient], event: str, args: Tuple[Any, ...]) -> None:
        translated = await self._translate(event, args)
        if translated is None:
            return

        if isinstance(translated, LIFECYCLE_EVENT_TYPES):
            self.store.apply(translated)
            if isinstance(translated, Disconnected) and client is not None:
                self._drop_client(client)
            await self.hub.on_lifecycle_event(translated)
        else:
            await self.hub.on_content_event(translated)

    async def _translate(self, event: str, args: Tuple[Any, ...]):
        first = args[0] if args else None

        if event == "qr":
            logger.info("QR challenge received")
            return QrIssued(challenge=first, rendered_image=await self._render_qr(first))
        if event == "authenticated":
            logger.info("Session authenticated")
            return Authenticated()
        if event == "ready":
            logger.info("Session ready")
            return Ready()
        if event == "auth_failure":
            logger.error(f"Authentication failed: {first}")
            return AuthFailure(reason="" if first is None else str(first))
        if event == "disconnected":
            logger.warning(f"Session disconnected: {first}")
            return Disconnected(reason="" if first is None else str(first))
        if event == "loading_screen":
            message = args[1] if len(args) > 1 else ""
            logger.debug(f"Loading: {first} {message}")
            return Loading(percent=_clamp_percent(first), message=str(message or ""))
        if event == "message":
            return await self._message_received(first)
        if event == "message_create":
            if not first.from_me:
                return None
            return await self._message_sent(first)

        logger.debug(f"Unhandled client event: {event}")
        return None

    async def _render_qr(self, challenge: str) -> Optional[str]:
        try:
            return self._qr_renderer(challenge)
        except Exception as e:
            await self._error_handler.handle_error(
                e,
                context=ErrorContext.RENDER,
                severity=ErrorSeverity.LOW,
                operation="render_qr",
            )
            return None

    async def _contact_name(self, message: RawMessage) -> Optional[str]:
        try:
            contact = await message.get_contact()
        except Exception as e:
            logger.warning(f"Could not resolve contact for message {message.id}: {e}")
            return None
        return contact.display_name

    async def _message_received(self, message: RawMessage) -> MessageReceived:
        is_group = message.from_.endswith(GROUP_SUFFIX)
        logger.info(f"Message received from {message.from_}")
        return MessageReceived(
            from_=message.from_,
            author=message.author,
            contactId=message.author if is_group else message.from_,
            contactName=await self._contact_name(message),
            body=message.body,
            timestamp=message.timestamp,
            fromMe=message.from_me,
            hasMedia=message.has_media,
            message_type=message.type,
            isGroup=is_group,
            id=message.id,
        )

    async def _message_sent(self, message: RawMessage) -> MessageSent:
        # Only the recipient suffix decides isGroup here, unlike inbound messages.
        logger.info(f"Message created for {message.to}")
        return MessageSent(
            to=message.to,
            contactName=await self._contact_name(message),
            body=message.body,
            timestamp=message.timestamp,
            hasMedia=message.has_media,
            message_type=message.type,
            isGroup=message.to.endswith(GROUP_SUFFIX),
            id=message.id,
        )
