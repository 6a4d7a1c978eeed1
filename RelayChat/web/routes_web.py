# Standard library imports
import logging
from pathlib import Path

# Third-party imports
from fastapi import APIRouter, Depends, Form
from fastapi.responses import FileResponse, PlainTextResponse, RedirectResponse
from starlette.requests import Request
from starlette.websockets import WebSocket

# Local imports
from RelayChat.config import Config
from RelayChat.core.server.auth import AuthenticationGate
from RelayChat.core.server.exceptions import AuthError, DuplicateUsername
from RelayChat.core.server.websocket_manager import BroadcastHub

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"

router = APIRouter()


def get_config(request: Request) -> Config:
    return request.app.state.config


def get_gate(request: Request) -> AuthenticationGate:
    return request.app.state.gate


def _redirect(location: str) -> RedirectResponse:
    # 302 so browsers follow POST -> GET
    return RedirectResponse(location, status_code=302)


def _session_cookie(request: Request, config: Config):
    return request.cookies.get(config.SESSION_COOKIE_NAME)


@router.get("/")
async def read_root():
    return FileResponse(STATIC_DIR / "index.html")


@router.get("/login")
async def read_login():
    return FileResponse(STATIC_DIR / "login.html")


@router.get("/register")
async def read_register():
    return FileResponse(STATIC_DIR / "register.html")


@router.post("/register")
async def register(
    username: str = Form(""),
    password: str = Form(""),
    gate: AuthenticationGate = Depends(get_gate),
):
    username = username.strip()
    if not username or not password:
        return PlainTextResponse("Username and password are required", status_code=400)

    try:
        await gate.register(username, password)
    except DuplicateUsername as e:
        # Kept as a server error for compatibility with existing clients
        return PlainTextResponse(f"Error registering new user: {e.message}", status_code=500)

    return _redirect("/login")


@router.post("/login")
async def login(
    username: str = Form(""),
    password: str = Form(""),
    gate: AuthenticationGate = Depends(get_gate),
    config: Config = Depends(get_config),
):
    # Every failure looks the same to the caller
    if not username or not password:
        return _redirect("/login")

    try:
        session = await gate.login(username.strip(), password)
    except AuthError:
        return _redirect("/login")

    response = _redirect("/chat")
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        gate.cookie_value(session),
        max_age=gate.session_max_age,
        httponly=True,
        samesite="lax",
        path="/",
    )
    return response


@router.get("/logout")
async def logout(
    request: Request,
    gate: AuthenticationGate = Depends(get_gate),
    config: Config = Depends(get_config),
):
    await gate.logout(gate.token_from_cookie(_session_cookie(request, config)))
    response = _redirect("/")
    response.delete_cookie(config.SESSION_COOKIE_NAME, path="/")
    return response


@router.get("/chat")
async def read_chat(
    request: Request,
    gate: AuthenticationGate = Depends(get_gate),
    config: Config = Depends(get_config),
):
    if await gate.identity_from_cookie(_session_cookie(request, config)) is None:
        return _redirect("/login")
    return FileResponse(STATIC_DIR / "chat.html")


@router.websocket("/socket")
async def chat_socket(websocket: WebSocket):
    hub: BroadcastHub = websocket.app.state.hub
    await hub.handle(websocket)
