"""Server-Sent Events transport for streamed assistant replies.

Each outgoing message opens its own event stream. Events carry a JSON
envelope, either {"type": "chunk", "content": ...} repeated zero or more
times or a single terminal {"type": "done", "content": <full reply>}.
Everything else (HTTP errors, dropped connections, plain-text payloads,
explicit ``event: error`` frames) is reported through the error callback.

Exactly one of on_done / on_error fires per stream unless the caller
cancels it first, and nothing fires after the terminal callback.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from src.client.config import ClientConfig
from src.client.credentials import CredentialProvider
from src.client.errors import MessageValidationError, TransportError
from src.models.schemas import DoneEvent, stream_event_adapter

logger = logging.getLogger(__name__)

CONNECTION_LOST = "Connection to server lost. Please try again."
STREAM_FAILED = "An error occurred during streaming."


@dataclass
class SSEEvent:
    """One dispatched Server-Sent Event."""

    event: str
    data: str


async def iter_sse_events(lines: AsyncIterator[str]) -> AsyncIterator[SSEEvent]:
    """Group raw event-stream lines into events.

    Multiple ``data:`` lines are joined with newlines, comment lines are
    ignored, and events with no data are not dispatched. A trailing event
    without its blank-line terminator is still dispatched at end of stream.
    """
    event_type = "message"
    data_lines: list[str] = []

    async for line in lines:
        if not line:
            if data_lines:
                yield SSEEvent(event=event_type, data="\n".join(data_lines))
            event_type = "message"
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        value = value.removeprefix(" ")
        if field == "data":
            data_lines.append(value)
        elif field == "event":
            event_type = value or "message"

    if data_lines:
        yield SSEEvent(event=event_type, data="\n".join(data_lines))


class StreamHandle:
    """Cancellation handle for one reply stream."""

    def __init__(self) -> None:
        self._closed = False
        self._task: asyncio.Task | None = None

    @property
    def closed(self) -> bool:
        return self._closed

    def mark_closed(self) -> bool:
        """Close the handle without cancelling its task.

        Returns:
            True if this call closed the handle, False if it was already closed.
        """
        if self._closed:
            return False
        self._closed = True
        return True

    def cancel(self) -> None:
        """Close the connection and silence every further callback."""
        if self._closed:
            return
        self._closed = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the underlying connection task to finish."""
        if self._task is not None:
            await asyncio.wait([self._task])


def _error_from_body(status_code: int, body: str) -> str:
    try:
        data = json.loads(body)
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"HTTP {status_code}"


class StreamTransport:
    """Opens reply streams against /api/chat/sessions/{id}/stream."""

    def __init__(
        self,
        config: ClientConfig,
        credentials: CredentialProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._credentials = credentials
        self._transport = transport

    def open(
        self,
        session_id: str,
        message: str,
        on_chunk: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> StreamHandle:
        """Start streaming the reply to ``message``.

        Args:
            session_id: Session the message belongs to.
            message: The user's message, non-empty after trimming.
            on_chunk: Called with each incremental fragment, in order.
            on_done: Called once with the server's full final text.
            on_error: Called once with a human-readable error.

        Returns:
            Handle whose cancel() closes the stream without further callbacks.

        Raises:
            MessageValidationError: If the message is blank.
            TransportError: If no event loop is running.
        """
        if not session_id:
            raise TransportError("A session id is required to open a stream")
        if not message.strip():
            raise MessageValidationError("Message must not be empty")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise TransportError("Reply streams require a running event loop") from e

        handle = StreamHandle()
        handle._task = loop.create_task(
            self._consume(handle, session_id, message, on_chunk, on_done, on_error)
        )
        return handle

    async def _consume(
        self,
        handle: StreamHandle,
        session_id: str,
        message: str,
        on_chunk: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        def finish(callback: Callable[[str], None], value: str) -> None:
            if handle.mark_closed():
                callback(value)

        params = {"message": message}
        token = self._credentials.get_token()
        if token:
            # EventSource-style streams cannot carry an Authorization header
            params["token"] = token

        path = f"/api/chat/sessions/{session_id}/stream"
        logger.info(f"Opening reply stream for session {session_id} (authenticated={bool(token)})")

        try:
            async with (
                httpx.AsyncClient(
                    base_url=self._config.api_base_url,
                    timeout=httpx.Timeout(self._config.request_timeout, read=None),
                    transport=self._transport,
                ) as client,
                client.stream(
                    "GET", path, params=params, headers={"Accept": "text/event-stream"}
                ) as response,
            ):
                if response.is_error:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.warning(f"Reply stream rejected with HTTP {response.status_code}")
                    finish(on_error, _error_from_body(response.status_code, body))
                    return

                async for event in iter_sse_events(response.aiter_lines()):
                    if handle.closed:
                        return
                    if event.event == "error":
                        finish(on_error, event.data or STREAM_FAILED)
                        return

                    try:
                        envelope = stream_event_adapter.validate_json(event.data)
                    except ValidationError:
                        if not event.data.lstrip().startswith("{"):
                            # The backend reports failures as plain-text payloads
                            logger.warning(f"Plain-text error on reply stream: {event.data}")
                            finish(on_error, event.data)
                            return
                        logger.warning(f"Skipping malformed stream event: {event.data}")
                        continue

                    if isinstance(envelope, DoneEvent):
                        logger.info(f"Reply stream for session {session_id} completed")
                        finish(on_done, envelope.content)
                        return
                    try:
                        on_chunk(envelope.content)
                    except Exception as e:
                        logger.exception(f"Chunk handler failed for session {session_id}: {e}")
                        finish(on_error, STREAM_FAILED)
                        return
        except httpx.RequestError as e:
            logger.error(f"Reply stream for session {session_id} failed: {e}")
            finish(on_error, f"Connection failed: {e}")
            return

        logger.warning(f"Reply stream for session {session_id} ended without a done event")
        finish(on_error, CONNECTION_LOST)
