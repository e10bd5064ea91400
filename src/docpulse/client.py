"""Async client for the dashboard backend API."""

import logging
from typing import Any, Awaitable, Callable, TypeVar

import httpx
import pydantic
from pydantic import TypeAdapter

from docpulse.config import settings
from docpulse.errors import AuthError, NetworkError, ReconciliationError
from docpulse.events import EventType, NotificationBus
from docpulse.models import (
    AnalysisReply,
    Comment,
    ComparisonEntry,
    ComparisonReply,
    Document,
    InteractAction,
    LikeResult,
    LocalFile,
    Message,
    Note,
    Post,
    SaveResult,
    UploadResult,
    UserProfile,
    profile_form_fields,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

RefreshCredential = Callable[[], Awaitable[str]]


def _get_headers(token: str) -> dict:
    """Get headers for backend API requests."""
    headers = {"Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _validate(type_: Any, data: Any, what: str) -> Any:
    """Validate a response payload, mapping schema failures to ReconciliationError."""
    try:
        return TypeAdapter(type_).validate_python(data)
    except pydantic.ValidationError as e:
        raise ReconciliationError(f"Malformed {what} response: {e.error_count()} error(s)") from e


class BackendClient:
    """Client for the dashboard REST API.

    Every call takes the bearer credential explicitly. A 401 is handed to the
    ``refresh_credential`` collaborator once; the request is retried with the
    token it returns.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        refresh_credential: RefreshCredential | None = None,
        bus: NotificationBus | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: API root. Defaults to settings.api_base_url.
            timeout: Request timeout in seconds. Defaults to settings.request_timeout.
            transport: Optional httpx transport (tests use httpx.MockTransport).
            refresh_credential: Async callable returning a fresh access token.
            bus: Notification bus for session-expiry notices.

        """
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout,
            transport=transport,
        )
        self._refresh_credential = refresh_credential
        self.bus = bus

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ==================== Transport ====================

    async def _send(self, method: str, path: str, token: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, path, headers=_get_headers(token), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} transport failure: {e}")
            raise NetworkError(f"{method} {path} failed: {e}") from e

    async def _refreshed_token(self) -> str:
        if self._refresh_credential is None:
            self._session_expired()
            raise AuthError("Credential rejected and no refresh collaborator configured")
        try:
            return await self._refresh_credential()
        except Exception as e:
            self._session_expired()
            raise AuthError(f"Credential refresh failed: {e}") from e

    def _session_expired(self) -> None:
        logger.warning("Access credential rejected; session expired")
        if self.bus is not None:
            self.bus.publish(EventType.SESSION_EXPIRED, "Session expired. Please log in again.")

    async def _request(self, method: str, path: str, token: str, **kwargs) -> Any:
        response = await self._send(method, path, token, **kwargs)

        if response.status_code == 401:
            response = await self._send(method, path, await self._refreshed_token(), **kwargs)
            if response.status_code == 401:
                self._session_expired()
                raise AuthError("Credential rejected after refresh")

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            logger.error(f"{method} {path} failed with HTTP {response.status_code}")
            raise NetworkError(
                f"{method} {path} failed with HTTP {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ReconciliationError(f"{method} {path} returned a non-JSON body") from e

    # ==================== Documents ====================

    async def fetch_documents(self, token: str) -> list[Document]:
        data = await self._request("GET", "/documents/", token)
        return _validate(list[Document], data, "document list")

    async def upload_documents(self, files: list[LocalFile], token: str) -> list[UploadResult]:
        """Upload files as one multipart batch under the ``files`` field."""
        multipart = [("files", (f.name, f.content, f.content_type)) for f in files]
        data = await self._request("POST", "/documents/upload/", token, files=multipart)
        return _validate(list[UploadResult], data, "upload")

    # ==================== Analysis ====================

    async def fetch_chat_history(self, document_id: int | str, token: str) -> list[Message]:
        """Get the chat history for a document, unwrapping ``{message: ...}`` records."""
        data = await self._request("GET", f"/chat-history/{document_id}/", token)
        if not isinstance(data, list):
            raise ReconciliationError("Malformed chat history response: expected a list")
        records = [item.get("message", item) if isinstance(item, dict) else item for item in data]
        return _validate(list[Message], records, "chat history")

    async def analyze_document(
        self,
        document_id: int | str,
        query: Any,
        chat_history: list[dict[str, str]],
        token: str,
        **extra: Any,
    ) -> AnalysisReply:
        body = {"document_id": document_id, "query": query, "chat_history": chat_history, **extra}
        data = await self._request("POST", "/analyze/", token, json=body)
        return _validate(AnalysisReply, data, "analysis")

    async def compare_documents(
        self,
        document1_id: int | str,
        document2_id: int | str,
        token: str,
        **extra: Any,
    ) -> ComparisonReply:
        body = {"document1_id": document1_id, "document2_id": document2_id, **extra}
        data = await self._request("POST", "/compare/", token, json=body)
        return _validate(ComparisonReply, data, "comparison")

    async def fetch_comparison_history(self, token: str) -> list[ComparisonEntry]:
        data = await self._request("GET", "/comparison-history/", token)
        return _validate(list[ComparisonEntry], data, "comparison history")

    # ==================== Notes ====================

    async def fetch_notes(self, token: str) -> list[Note]:
        data = await self._request("GET", "/notes/", token)
        return _validate(list[Note], data, "note list")

    async def save_note(self, data: dict[str, Any], token: str) -> Note:
        response = await self._request("POST", "/notes/", token, json=data)
        return _validate(Note, response, "note")

    async def update_note(self, note_id: int | str, data: dict[str, Any], token: str) -> Any:
        return await self._request("PUT", f"/notes/{note_id}/", token, json=data)

    async def delete_note(self, note_id: int | str, token: str) -> None:
        await self._request("DELETE", f"/notes/{note_id}/", token)

    # ==================== Feed ====================

    async def fetch_posts(self, token: str) -> list[Post]:
        data = await self._request("GET", "/posts/", token)
        if not isinstance(data, list):
            raise ReconciliationError("Malformed post list response: expected a list")
        return _validate(list[Post], data, "post list")

    async def create_post(self, data: dict[str, Any], token: str) -> Post:
        response = await self._request("POST", "/posts/", token, json=data)
        return _validate(Post, response, "post")

    async def interact_with_post(
        self, post_id: int | str, action: InteractAction, token: str
    ) -> LikeResult | SaveResult:
        """Like/unlike or save/unsave a post; returns the authoritative state."""
        data = await self._request(
            "POST", f"/posts/{post_id}/interact/", token, json={"action": action.value}
        )
        if action in (InteractAction.LIKE, InteractAction.UNLIKE):
            return _validate(LikeResult, data, "like")
        return _validate(SaveResult, data, "save")

    async def fetch_comments(self, post_id: int | str, token: str) -> list[Comment]:
        data = await self._request("GET", f"/posts/{post_id}/comments/", token)
        return _validate(list[Comment], data or [], "comment list")

    async def create_comment(self, post_id: int | str, content: str, token: str) -> Comment:
        data = await self._request(
            "POST", f"/posts/{post_id}/comments/", token, json={"content": content}
        )
        return _validate(Comment, data, "comment")

    # ==================== Profile ====================

    async def fetch_user(self, token: str) -> UserProfile:
        data = await self._request("GET", "/user/", token)
        return _validate(UserProfile, data, "user")

    async def update_user(
        self, fields: dict[str, Any], token: str, avatar: LocalFile | None = None
    ) -> UserProfile | None:
        """Update the signed-in user as form data; unset fields are not sent."""
        files = None
        if avatar is not None:
            files = [("avatar", (avatar.name, avatar.content, avatar.content_type))]
        data = await self._request(
            "PUT", "/users/me/", token, data=profile_form_fields(fields), files=files
        )
        return _validate(UserProfile, data, "user") if data else None

    async def fetch_user_comments(self, token: str) -> list[Comment]:
        data = await self._request("GET", "/comments/", token)
        return _validate(list[Comment], data or [], "comment list")
