"""httpx clients for the liquidity analysis backend.

Handles REST calls and Server-Sent Events reply streams.

Responsibilities:
    - Bearer credential handling via an injected TokenStore
    - Session, analysis and sign-in endpoints
    - Streamed assistant replies with typed chunk/done events

Holds no UI state. The chat controller drives these clients.
"""

from src.client.analysis_service import AnalysisService
from src.client.api import ApiClient
from src.client.auth_service import AuthService
from src.client.chat_service import ChatService
from src.client.config import ClientConfig, get_client_config
from src.client.credentials import CredentialProvider, TokenStore
from src.client.errors import (
    ApiError,
    LoadError,
    MessageValidationError,
    ReplyTimeoutError,
    TransportError,
)
from src.client.stream import StreamHandle, StreamTransport

__all__ = [
    "AnalysisService",
    "ApiClient",
    "ApiError",
    "AuthService",
    "ChatService",
    "ClientConfig",
    "CredentialProvider",
    "LoadError",
    "MessageValidationError",
    "ReplyTimeoutError",
    "StreamHandle",
    "StreamTransport",
    "TokenStore",
    "TransportError",
    "get_client_config",
]
