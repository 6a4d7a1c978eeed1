"""
FastAPI application factory for RelayChat.

The same Config, AuthenticationGate and BroadcastHub instances are handed
to the HTTP routes and to the real-time endpoint through ``app.state``, so
both layers observe one session store.
"""

# Standard library imports
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

# Third-party imports
import uvicorn
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from fastapi.staticfiles import StaticFiles
from starlette.requests import Request

# Local imports
from RelayChat import __version__ as __main_version__
from RelayChat.config import Config
from RelayChat.core.server.auth import AuthenticationGate, SessionCookieExtractor
from RelayChat.core.server.exceptions import StoreUnavailable
from RelayChat.core.server.session import InMemorySessionStore
from RelayChat.core.server.storage_sqlite import SQLiteStore
from RelayChat.core.server.websocket_manager import BroadcastHub
from .routes_web import STATIC_DIR, router

logger = logging.getLogger(__name__)


async def _store_unavailable_handler(request: Request, exc: StoreUnavailable):
    logger.error("Store unavailable while serving %s %s: %s", request.method, request.url.path, exc)
    return PlainTextResponse("Internal Server Error", status_code=500)


def create_app(
    config: Optional[Config] = None,
    store: Optional[SQLiteStore] = None,
    gate: Optional[AuthenticationGate] = None,
    hub: Optional[BroadcastHub] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings (read from the environment if omitted)
        store: Credential store, also holding sessions unless
            config.SESSION_STORE is "memory" (opened from config.DATABASE_URI
            if omitted)
        gate: Authentication gate (built from config and store if omitted)
        hub: Broadcast hub (built around the gate if omitted)
    """
    config = config or Config()
    owned_store = None
    if gate is None:
        if store is None:
            store = owned_store = SQLiteStore(config.database_path)
        sessions = InMemorySessionStore() if config.SESSION_STORE == "memory" else store
        gate = AuthenticationGate.from_config(config, store, sessions)
    if hub is None:
        hub = BroadcastHub(gate, SessionCookieExtractor(config.SESSION_COOKIE_NAME))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if store is not None:
            await asyncio.to_thread(store.purge_expired)
        logger.info("RelayChat %s ready", __main_version__)
        yield
        await hub.close_all()
        if owned_store is not None:
            owned_store.close()

    app = FastAPI(title="RelayChat", version=__main_version__, lifespan=lifespan)
    app.state.config = config
    app.state.gate = gate
    app.state.hub = hub

    app.add_exception_handler(StoreUnavailable, _store_unavailable_handler)
    app.mount("/static",
              StaticFiles(directory=str(STATIC_DIR), html=False, check_dir=True),
              name="static")
    app.include_router(router)
    return app


def run(config: Optional[Config] = None, host: Optional[str] = None, port: Optional[int] = None):
    """
    Run the application with Uvicorn.

    Args:
        config: Settings (read from the environment if omitted)
        host: Bind address override
        port: Listening port override
    """
    config = config or Config()
    app = create_app(config)
    uvicorn.run(
        app,
        host=host or config.HOST,
        port=port or config.PORT,
        log_config=None,
    )
