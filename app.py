from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from pydantic import ValidationError
from typing import Optional
import re
import uuid

from constants import ALLOWED_ORIGINS, ALLOWED_ORIGIN_REGEX, LOG_FILE, LOG_LEVEL
from dispatcher import RelayDispatcher
from lifecycle import LifecycleController
from logging_config import get_logger, setup_logging
from participants import Mode
from routers.stats import stats_router
from schemas.events import Envelope
from state import RelayState
from transport import WebSocketTransport

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

_origin_pattern = re.compile(ALLOWED_ORIGIN_REGEX) if ALLOWED_ORIGIN_REGEX else None


def origin_allowed(origin: Optional[str]) -> bool:
    """Same policy the CORS middleware applies, for WebSocket handshakes."""
    # Non-browser clients send no Origin header
    if not origin:
        return True
    if origin in ALLOWED_ORIGINS:
        return True
    return bool(_origin_pattern and _origin_pattern.fullmatch(origin))


@asynccontextmanager
async def lifespan(application: FastAPI):
    logger.info("Relay server ready to accept connections")
    yield
    closed = await application.state.transport.close_all()
    logger.info(f"Shutting down gracefully, closed {closed} open connections")


async def serve_connection(websocket: WebSocket, dispatcher: RelayDispatcher):
    """Accept one client and pump its events through the dispatcher until it leaves."""
    app_state = websocket.app.state
    controller: LifecycleController = app_state.controller
    transport: WebSocketTransport = app_state.transport

    origin = websocket.headers.get("origin")
    if not origin_allowed(origin):
        logger.warning(f"WebSocket connection rejected: origin {origin} not allowed")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    connection_id = str(uuid.uuid4())
    await websocket.accept()
    transport.register(connection_id, websocket)
    await transport.deliver(controller.connect(connection_id))

    try:
        while True:
            try:
                data = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.debug(f"WebSocket disconnected normally for connection {connection_id}")
                break

            try:
                envelope = Envelope.model_validate_json(data)
            except ValidationError:
                logger.debug(f"Ignoring malformed frame from connection {connection_id}")
                continue

            actions = dispatcher.dispatch(connection_id, envelope.event, envelope.data)
            await transport.deliver(actions)
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        actions = controller.disconnect(connection_id)
        transport.unregister(connection_id)
        await transport.deliver(actions)


def create_app() -> FastAPI:
    application = FastAPI(title="Stranger Relay", lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_origin_regex=ALLOWED_ORIGIN_REGEX or None,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    state = RelayState()
    controller = LifecycleController(state)
    application.state.relay = state
    application.state.controller = controller
    application.state.transport = WebSocketTransport()
    application.state.text_dispatcher = RelayDispatcher(state, controller)
    application.state.video_dispatcher = RelayDispatcher(state, controller, forced_mode=Mode.VIDEO)

    application.include_router(stats_router)

    @application.websocket("/ws")
    async def text_endpoint(websocket: WebSocket):
        await serve_connection(websocket, websocket.app.state.text_dispatcher)

    @application.websocket("/video/ws")
    async def video_endpoint(websocket: WebSocket):
        await serve_connection(websocket, websocket.app.state.video_dispatcher)

    logger.info("FastAPI application initialized")
    return application


app = create_app()
