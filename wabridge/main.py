"""
FastAPI server for the WhatsApp session bridge.

This module wires the session state store, broadcast hub, session adapter and
command gateway into one FastAPI application that exposes:

- the HTTP command surface (``GET /status``, ``POST /initialize``,
  ``POST /send-message``), served both at the root and under ``/api``
- the push channel, a websocket (``/ws`` by default) on which observers
  receive ``{"event": ..., "data": ...}`` messages for every session event
- optionally, a static web UI mounted at ``/``
"""

import asyncio
from typing import Callable, Optional

import websockets
from fastapi import APIRouter, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from wabridge.client.base_client import SessionClient
from wabridge.command_gateway import CommandGateway, CommandResult
from wabridge.config import get_config
from wabridge.config.env_loader import load_env_file
from wabridge.config.logging_config import configure_logging
from wabridge.config.models import ApplicationConfig
from wabridge.handlers.broadcast_hub import BroadcastHub
from wabridge.handlers.session_store import SessionStateStore
from wabridge.models.api_models import SendMessageRequest
from wabridge.session_adapter import SessionAdapter
from wabridge.transport.channel import WebSocketObserverChannel

# Load environment variables before accessing configuration
load_env_file()

logger = configure_logging("main")

router = APIRouter()


def _to_response(result: CommandResult) -> JSONResponse:
    return JSONResponse(status_code=result.status_code, content=result.body)


@router.get("/status")
async def get_status(request: Request):
    """Current session status and whether a QR challenge is pending."""
    return _to_response(request.app.state.gateway.status())


@router.post("/initialize")
async def initialize(request: Request):
    """Start the WhatsApp client if it is not running. Always answers 200."""
    return _to_response(request.app.state.gateway.initialize())


async def _read_send_request(request: Request) -> SendMessageRequest:
    """Parse the send-message body; a missing or non-object body counts as empty."""
    try:
        body = await request.json()
    except ValueError:
        logger.debug("Send-message body is not valid JSON")
        body = None
    if not isinstance(body, dict):
        body = {}
    return SendMessageRequest.model_validate(body)


@router.post("/send-message")
async def send_message(request: Request):
    payload = await _read_send_request(request)
    result = await request.app.state.gateway.send_message(
        payload.phoneNumber, payload.message
    )
    return _to_response(result)


async def push_channel(websocket: WebSocket):
    """Push channel endpoint for observers.

    The observer first receives the resync snapshot (current ``status`` and,
    while awaiting a scan, the ``qr``), then every session event. Anything the
    observer sends is ignored.
    """
    await websocket.accept()
    hub: BroadcastHub = websocket.app.state.hub
    channel = WebSocketObserverChannel(websocket)
    logger.info(f"Push channel opened: {channel.channel_id} from {websocket.client}")

    try:
        await hub.on_observer_connected(channel)
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        logger.info(f"Push channel closed by observer: {channel.channel_id}")
    except websockets.exceptions.ConnectionClosed as e:
        logger.info(f"Push channel connection closed: {channel.channel_id} ({e})")
    except asyncio.CancelledError:
        logger.info(f"Push channel cancelled: {channel.channel_id}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error in push channel {channel.channel_id}: {e}")
        logger.exception("Full traceback:")
    finally:
        channel.mark_closed()
        hub.on_observer_disconnected(channel)


def create_app(
    client_factory: Optional[Callable[[], SessionClient]] = None,
    config: Optional[ApplicationConfig] = None,
) -> FastAPI:
    """Build the application and its session components.

    Args:
        client_factory: Builds the session client on ``initialize``; defaults
            to the Playwright WhatsApp Web client
        config: Application configuration; defaults to ``get_config()``
    """
    config = config or get_config()

    app = FastAPI(
        title="WhatsApp Session Bridge",
        description="Bridges a headless WhatsApp Web session to push channel observers",
        version="1.0.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    store = SessionStateStore()
    hub = BroadcastHub(store, send_timeout=config.broadcast.send_timeout)
    adapter = SessionAdapter(store, hub, client_factory=client_factory)

    app.state.config = config
    app.state.store = store
    app.state.hub = hub
    app.state.adapter = adapter
    app.state.gateway = CommandGateway(store, adapter)

    app.include_router(router)
    app.include_router(router, prefix="/api")
    app.add_api_websocket_route(config.broadcast.ws_path, push_channel)

    if config.server.static_dir is not None:
        app.mount(
            "/",
            StaticFiles(directory=str(config.server.static_dir), html=True),
            name="static",
        )
        logger.info(f"Serving static UI from {config.server.static_dir}")

    @app.on_event("startup")
    async def startup_event():
        if config.whatsapp.auto_initialize:
            result = app.state.gateway.initialize()
            logger.info(f"Auto-initialize: {result.body.get('message')}")

    @app.on_event("shutdown")
    async def shutdown_event():
        await app.state.adapter.close()

    logger.info(
        f"Application created (push channel: {config.broadcast.ws_path}, "
        f"origins: {config.security.allowed_origins})"
    )
    return app


app = create_app()
