"""WhatsApp Web session client driven by Playwright.

Runs WhatsApp Web in a persistent Chromium profile (the profile directory
plays the role of local credential storage: once a device is linked, later
starts restore the session without a new QR scan).

A monitor task polls the page with ``page_scripts.PAGE_HOOK_SCRIPT``'s
``probe()`` and turns what it sees into client events:

    QR element appears or changes       -> qr
    QR on first start with a profile    -> auth_failure, then qr
    loading screen progress changes     -> loading_screen
    chat list appears                   -> authenticated
    message store becomes reachable     -> ready
    QR appears again after ready        -> disconnected("LOGOUT")
    browser context closes              -> disconnected("BROWSER_CLOSED")

New messages are pushed from the page through an exposed binding.
"""

import asyncio
from pathlib import Path
from typing import Any, Dict, Optional

from playwright.async_api import BrowserContext, Error as PlaywrightError, Page, async_playwright

from wabridge.client.base_client import Contact, RawMessage, SentMessage, SessionClient
from wabridge.client.page_scripts import (
    EMIT_BINDING,
    GET_CONTACT_EXPRESSION,
    PAGE_HOOK_SCRIPT,
    PROBE_EXPRESSION,
    SEND_TEXT_EXPRESSION,
)
from wabridge.config import whatsapp_config
from wabridge.config.logging_config import configure_logging
from wabridge.config.models import WhatsAppConfig
from wabridge.exceptions import InitializationFailed

logger = configure_logging("whatsapp_web_client")


class WhatsAppWebClient(SessionClient):
    """Headless WhatsApp Web session.

    Attributes:
        config: Browser and profile settings
        page: The WhatsApp Web page once started
    """

    def __init__(self, config: Optional[WhatsAppConfig] = None):
        super().__init__()
        self.config = config or whatsapp_config()
        self.page: Optional[Page] = None
        self._playwright = None
        self._context: Optional[BrowserContext] = None
        self._monitor_task: Optional[asyncio.Task] = None

        self._restoring = False
        self._last_qr: Optional[str] = None
        self._last_loading: Optional[tuple] = None
        self._authenticated = False
        self._ready = False
        self._disconnected = False
        self._destroyed = False

    @property
    def is_ready(self) -> bool:
        return self._ready and not self._disconnected

    async def initialize(self) -> None:
        """Launch the browser, open WhatsApp Web and start monitoring.

        Raises:
            InitializationFailed: If the browser or the page cannot be started
        """
        auth_dir = Path(self.config.auth_dir)
        self._restoring = auth_dir.is_dir() and any(auth_dir.iterdir())
        auth_dir.mkdir(parents=True, exist_ok=True)

        logger.info(
            f"Starting WhatsApp Web (profile: {auth_dir}, headless: {self.config.headless}, "
            f"restoring: {self._restoring})"
        )

        try:
            self._playwright = await async_playwright().start()
            launch_kwargs: Dict[str, Any] = {
                "headless": self.config.headless,
                "args": list(self.config.browser_args),
            }
            if self.config.user_agent:
                launch_kwargs["user_agent"] = self.config.user_agent

            self._context = await self._playwright.chromium.launch_persistent_context(
                str(auth_dir), **launch_kwargs
            )
            self._context.on("close", self._on_context_closed)
            await self._context.expose_function(EMIT_BINDING, self._on_page_event)
            await self._context.add_init_script(PAGE_HOOK_SCRIPT)

            self.page = self._context.pages[0] if self._context.pages else await self._context.new_page()
            await self.page.goto(
                self.config.web_url,
                wait_until="domcontentloaded",
                timeout=self.config.start_timeout * 1000,
            )
        except Exception as e:
            await self.destroy()
            raise InitializationFailed(f"Could not start WhatsApp Web: {e}") from e

        self._monitor_task = asyncio.create_task(self._monitor_page())
        logger.info("WhatsApp Web page loaded, monitoring session state")

    async def send_message(self, chat_id: str, body: str) -> SentMessage:
        if self.page is None or not self.is_ready:
            raise RuntimeError("WhatsApp Web session is not ready")

        result = await self.page.evaluate(SEND_TEXT_EXPRESSION, [chat_id, body])
        message_id = (result or {}).get("id")
        if not message_id:
            raise RuntimeError("WhatsApp Web did not report an id for the sent message")
        return SentMessage(
            id=message_id,
            to=chat_id,
            body=body,
            timestamp=(result or {}).get("timestamp"),
        )

    async def get_contact(self, contact_id: str) -> Contact:
        if self.page is None:
            raise RuntimeError("WhatsApp Web page is not open")
        data = await self.page.evaluate(GET_CONTACT_EXPRESSION, contact_id)
        return Contact(
            id=data.get("id") or contact_id,
            pushname=data.get("pushname"),
            name=data.get("name"),
            number=data.get("number"),
        )

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True

        current = asyncio.current_task()
        if self._monitor_task is not None and self._monitor_task is not current:
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
        self._monitor_task = None

        if self._context is not None:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Browser context already closed: {e}")
            self._context = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as e:
                logger.debug(f"Playwright already stopped: {e}")
            self._playwright = None
        self.page = None
        logger.info("WhatsApp Web client destroyed")

    async def _monitor_page(self) -> None:
        while not self._destroyed and not self._disconnected:
            try:
                probe = await self.page.evaluate(PROBE_EXPRESSION)
            except PlaywrightError as e:
                # Navigations destroy the execution context; next poll retries.
                logger.debug(f"Page probe failed: {e}")
                probe = None
            if probe:
                await self._apply_probe(probe)
            await asyncio.sleep(self.config.poll_interval)

    async def _apply_probe(self, probe: Dict[str, Any]) -> None:
        qr = probe.get("qr")
        if qr and qr != self._last_qr:
            if self._ready:
                await self._emit_disconnected("LOGOUT")
                return
            if self._restoring and self._last_qr is None:
                self._restoring = False
                await self.emit("auth_failure", "Unable to restore the stored session")
            self._last_qr = qr
            self._authenticated = False
            await self.emit("qr", qr)

        loading = probe.get("loading")
        if loading:
            key = (int(loading.get("percent") or 0), loading.get("message") or "")
            if key != self._last_loading:
                self._last_loading = key
                await self.emit("loading_screen", key[0], key[1])

        if probe.get("chatList") and not self._authenticated:
            self._authenticated = True
            self._last_qr = None
            await self.emit("authenticated")

        if probe.get("storeReady") and self._authenticated and not self._ready:
            self._ready = True
            await self.emit("ready")

    async def _on_page_event(self, event: str, payload: Dict[str, Any]) -> None:
        if event not in ("message", "message_create"):
            logger.debug(f"Ignoring page event: {event}")
            return
        await self.emit(event, self._to_raw_message(payload))

    def _to_raw_message(self, payload: Dict[str, Any]) -> RawMessage:
        author = payload.get("author")
        sender = payload.get("from") or ""
        contact_id = author or sender

        async def load_contact() -> Contact:
            return await self.get_contact(contact_id)

        return RawMessage(
            id=payload.get("id") or "",
            from_=sender,
            to=payload.get("to") or "",
            body=payload.get("body") or "",
            author=author,
            timestamp=payload.get("timestamp"),
            from_me=bool(payload.get("fromMe")),
            has_media=bool(payload.get("hasMedia")),
            type=payload.get("type") or "chat",
            contact_loader=load_contact,
        )

    def _on_context_closed(self, _context) -> None:
        if self._destroyed or self._disconnected:
            return
        asyncio.ensure_future(self._emit_disconnected("BROWSER_CLOSED"))

    async def _emit_disconnected(self, reason: str) -> None:
        if self._disconnected:
            return
        self._disconnected = True
        logger.warning(f"WhatsApp Web session disconnected: {reason}")
        await self.emit("disconnected", reason)
