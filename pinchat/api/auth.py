from fastapi import APIRouter, Depends, Request, Response, status

from pinchat.core.config import settings
from pinchat.core.log_config import logger
from pinchat.database.redis import SessionStore
from pinchat.dependencies.auth_dependencies import set_session_cookie, clear_session_cookie
from pinchat.dependencies.service_dependencies import get_auth_service, get_session_store
from pinchat.schemas.auth import RegisterRequest, LoginRequest, RedirectResponse
from pinchat.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["auth"])

async def _start_session(request: Request, response: Response, store: SessionStore, user) -> None:
    # A fresh login never inherits the previous session's pinned room
    await store.destroy(request.cookies.get(settings.session_cookie_name))
    session = await store.create(user.id, user.username)
    set_session_cookie(response, session.session_id)

@router.post("/register", response_model=RedirectResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    store: SessionStore = Depends(get_session_store),
):
    """
    Register a new user and log them in.
    """
    user = await auth_service.register_user(payload)
    await _start_session(request, response, store, user)
    return RedirectResponse(message="Registration successful!", redirect="/chat-rooms")

@router.post("/login", response_model=RedirectResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    store: SessionStore = Depends(get_session_store),
):
    """
    Authenticate a user with username and PIN and start a session.
    """
    user = await auth_service.login_user(payload)
    await _start_session(request, response, store, user)
    logger.info(f"User {user.username} logged in")
    return RedirectResponse(message="Login successful!", redirect="/chat-rooms")

@router.post("/logout", response_model=RedirectResponse)
async def logout(
    request: Request,
    response: Response,
    store: SessionStore = Depends(get_session_store),
):
    """
    Destroy the current session. Succeeds even without one.
    """
    await store.destroy(request.cookies.get(settings.session_cookie_name))
    clear_session_cookie(response)
    return RedirectResponse(message="Logged out successfully!", redirect="/")
