from typing import List, Optional
from uuid import UUID

import httpx

from pinchat.schemas.auth import CurrentUserResponse, RedirectResponse
from pinchat.schemas.message import (
    ImageUploadResponse,
    MessageCreatedResponse,
    MessageCreateRequest,
    MessageListResponse,
    MessageResponse,
)
from pinchat.schemas.room import OnlineUserResponse, OnlineUsersResponse
from .config import client_settings


class ApiError(Exception):
    """
    A failed API call. ``status_code`` is None when the request never got a
    response (connection error, timeout).
    """

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    @property
    def is_auth_required(self) -> bool:
        return self.status_code == 401

    @property
    def is_forbidden(self) -> bool:
        return self.status_code == 403


class ChatApiClient:
    """
    Thin async wrapper over the pinchat HTTP API.

    The session cookie lives in the underlying httpx client's cookie jar, so
    one instance corresponds to one logged-in browser.
    """

    def __init__(
        self,
        base_url: str = None,
        *,
        http_client: httpx.AsyncClient = None,
        timeout: float = None,
    ):
        self._owns_client = http_client is None
        self.http = http_client or httpx.AsyncClient(
            base_url=base_url or client_settings.base_url,
            timeout=timeout or client_settings.request_timeout,
        )

    async def close(self):
        if self._owns_client:
            await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = await self.http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(None, f"Network error: {e}") from e

        if response.is_error:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            raise ApiError(response.status_code, message or response.reason_phrase)
        return response.json()

    async def register(self, username: str, pin: str) -> RedirectResponse:
        data = await self._request("POST", "/api/auth/register", json={"username": username, "pin": pin})
        return RedirectResponse.model_validate(data)

    async def login(self, username: str, pin: str) -> RedirectResponse:
        data = await self._request("POST", "/api/auth/login", json={"username": username, "pin": pin})
        return RedirectResponse.model_validate(data)

    async def logout(self) -> RedirectResponse:
        data = await self._request("POST", "/api/auth/logout")
        return RedirectResponse.model_validate(data)

    async def me(self) -> CurrentUserResponse:
        data = await self._request("GET", "/api/user/me")
        return CurrentUserResponse.model_validate(data)

    async def create_room(self, name: str, pin: str) -> RedirectResponse:
        data = await self._request("POST", "/api/chatrooms/create", json={"name": name, "pin": pin})
        return RedirectResponse.model_validate(data)

    async def join_room(self, name: str, pin: str) -> RedirectResponse:
        data = await self._request("POST", "/api/chatrooms/join", json={"name": name, "pin": pin})
        return RedirectResponse.model_validate(data)

    async def fetch_online_users(self, room_id: UUID) -> List[OnlineUserResponse]:
        data = await self._request("GET", f"/api/chatrooms/{room_id}/online-users")
        return OnlineUsersResponse.model_validate(data).online_users

    async def fetch_room_messages(self, room_id: UUID) -> List[MessageResponse]:
        """The room's full history, oldest first. Requires a session pinned to the room."""
        data = await self._request("GET", f"/api/messages/{room_id}")
        return MessageListResponse.model_validate(data).messages

    async def send_message(
        self,
        room_id: UUID,
        content: str = "",
        *,
        reply_to: Optional[UUID] = None,
        image: Optional[ImageUploadResponse] = None,
    ) -> MessageResponse:
        request = MessageCreateRequest(
            content=content,
            reply_to=reply_to,
            image_data=image.image_data if image else None,
            content_type=image.content_type if image else None,
        )
        data = await self._request(
            "POST",
            f"/api/messages/{room_id}",
            json=request.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
        return MessageCreatedResponse.model_validate(data).new_message

    async def upload_image(self, data: bytes, content_type: str, filename: str = "image") -> ImageUploadResponse:
        payload = await self._request(
            "POST",
            "/api/upload-image",
            files={"image": (filename, data, content_type)},
        )
        return ImageUploadResponse.model_validate(payload)
