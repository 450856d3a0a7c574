from datetime import datetime, timezone
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for backend payloads, which use camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def utc_timestamp() -> str:
    """Return the current time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Message(CamelModel):
    """A single chat message in the conversation.

    Attributes:
        role: The speaker, either user or assistant.
        content: The message text.
        timestamp: ISO-8601 creation time.
    """

    role: Literal["user", "assistant"]
    content: str
    timestamp: str = Field(default_factory=utc_timestamp)


class PoolDataContext(CamelModel):
    """Liquidity figures the backend attached to a session."""

    total_liquidity_usd: float = Field(0.0, alias="totalLiquidityUSD")
    total_volume_usd: float = Field(0.0, alias="totalVolumeUSD")
    pair_count: int = 0
    aggregated_metrics: dict[str, Any] | None = None


class ChatSession(CamelModel):
    """Full chat session including its authoritative message history."""

    session_id: str
    token_address: str = ""
    messages: list[Message] = Field(default_factory=list)
    pool_data_context: PoolDataContext | None = None
    is_active: bool = True
    expires_at: str | None = None
    created_at: str | None = None


class CreateSessionResponse(CamelModel):
    """Response after a new analysis session is created."""

    session_id: str
    token_address: str = ""
    welcome_message: Message
    expires_at: str | None = None


class SendMessageResponse(CamelModel):
    """Response from the non-streaming message endpoint."""

    message: Message


class ChatSessionSummary(CamelModel):
    """Row in the user's session listing."""

    id: str
    token_address: str
    last_message_at: str | None = None
    message_count: int = Field(0, ge=0)
    created_at: str | None = None


class UserSessionsResponse(CamelModel):
    sessions: list[ChatSessionSummary] = Field(default_factory=list)


class ChunkEvent(BaseModel):
    """Incremental fragment of the assistant's reply."""

    type: Literal["chunk"]
    content: str


class DoneEvent(BaseModel):
    """Terminal stream event carrying the full final reply."""

    type: Literal["done"]
    content: str


StreamEvent = Annotated[ChunkEvent | DoneEvent, Field(discriminator="type")]

stream_event_adapter: TypeAdapter[ChunkEvent | DoneEvent] = TypeAdapter(StreamEvent)
