"""Pydantic models for backend payloads.

Provides type safety and validation for everything decoded off the wire.

Models:
    - Message: Individual message in a conversation
    - ChatSession: Session details with authoritative history
    - CreateSessionResponse: New session with its welcome message
    - ChunkEvent / DoneEvent: Reply stream envelopes
    - Analysis: Token-liquidity analysis record
    - LoginResponse: Bearer token issued by the OTP flow
"""

from src.models.analysis import Analysis, HistoryResponse
from src.models.auth import LoginResponse, OtpSentResponse, User
from src.models.schemas import (
    ChatSession,
    ChatSessionSummary,
    ChunkEvent,
    CreateSessionResponse,
    DoneEvent,
    Message,
    SendMessageResponse,
    UserSessionsResponse,
)

__all__ = [
    "Analysis",
    "ChatSession",
    "ChatSessionSummary",
    "ChunkEvent",
    "CreateSessionResponse",
    "DoneEvent",
    "HistoryResponse",
    "LoginResponse",
    "Message",
    "OtpSentResponse",
    "SendMessageResponse",
    "User",
    "UserSessionsResponse",
]
