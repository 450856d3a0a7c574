"""REST wrappers for chat session endpoints."""

import logging

from src.client.api import ApiClient
from src.client.errors import MessageValidationError
from src.models.schemas import (
    ChatSession,
    CreateSessionResponse,
    Message,
    SendMessageResponse,
    UserSessionsResponse,
)

logger = logging.getLogger(__name__)

SESSIONS_PATH = "/api/chat/sessions"


class ChatService:
    """Session CRUD and non-streaming messaging."""

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    async def create_session(self, token_address: str) -> CreateSessionResponse:
        """Create a chat session for a token; the backend runs the analysis first.

        Args:
            token_address: Address of the token to analyze.

        Returns:
            The new session id and its welcome message.
        """
        data = await self._api.request(
            "POST", SESSIONS_PATH, json={"tokenAddress": token_address.strip()}
        )
        response = CreateSessionResponse.model_validate(data)
        logger.info(f"Created session {response.session_id} for {response.token_address}")
        return response

    async def get_session(self, session_id: str) -> ChatSession:
        data = await self._api.request("GET", f"{SESSIONS_PATH}/{session_id}")
        return ChatSession.model_validate(data)

    async def send_message(self, session_id: str, message: str) -> Message:
        """Send a message and wait for the complete reply.

        Raises:
            MessageValidationError: If the message is blank.
        """
        if not message.strip():
            raise MessageValidationError("Message must not be empty")
        data = await self._api.request(
            "POST", f"{SESSIONS_PATH}/{session_id}/messages", json={"message": message}
        )
        return SendMessageResponse.model_validate(data).message

    async def list_sessions(self, limit: int = 10) -> UserSessionsResponse:
        """List the signed-in user's recent sessions."""
        data = await self._api.request("GET", SESSIONS_PATH, params={"limit": limit})
        return UserSessionsResponse.model_validate(data)

    async def end_session(self, session_id: str) -> str:
        data = await self._api.request("DELETE", f"{SESSIONS_PATH}/{session_id}")
        return data.get("message", "") if isinstance(data, dict) else str(data)
