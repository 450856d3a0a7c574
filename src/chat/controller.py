"""Chat session controller.

Owns the current session identity, its message list and the streaming
status, and is the single place where reply stream events are folded into
the visible conversation. The presentation layer reads ``messages``,
``is_streaming``, ``is_loading`` and ``last_error`` and re-renders from a
change listener.

Every exchange (one user message and its reply) is tracked by an
``_Exchange`` object. Callbacks from an exchange that is no longer the
active one, because it timed out, failed, or the session changed, are
ignored.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from src.client.config import ClientConfig, get_client_config
from src.client.errors import ApiError, LoadError, ReplyTimeoutError, TransportError
from src.client.stream import StreamHandle
from src.models.schemas import ChatSession, CreateSessionResponse, Message, utc_timestamp

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Sorry, I didn't get that. Can you ask again?"


class StreamStatus(str, Enum):
    IDLE = "idle"
    STREAMING = "streaming"


class ReplyTransport(Protocol):
    def open(
        self,
        session_id: str,
        message: str,
        on_chunk: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> StreamHandle: ...


class SessionSource(Protocol):
    async def get_session(self, session_id: str) -> ChatSession: ...

    async def create_session(self, token_address: str) -> CreateSessionResponse: ...


@dataclass
class LoadStatus:
    last_loaded_identity: str | None = None
    loaded: bool = False


@dataclass
class _Exchange:
    identity: str
    user_index: int
    reply: str = ""
    assistant_index: int | None = None
    handle: StreamHandle | None = None
    timer: asyncio.TimerHandle | None = field(default=None, repr=False)


class ChatSessionController:
    """State machine behind one chat view."""

    def __init__(
        self,
        sessions: SessionSource,
        transport: ReplyTransport,
        config: ClientConfig | None = None,
        identity: str | None = None,
        seed_messages: Sequence[Message] | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            sessions: Backend session API used to fetch and create sessions.
            transport: Opens reply streams.
            config: Optional configuration; loads from environment if omitted.
            identity: Session to bind to initially.
            seed_messages: Messages the caller already holds for ``identity``,
                e.g. a new session's welcome message. When non-empty, the session
                counts as loaded and no fetch is issued. Otherwise the history
                load starts as soon as an event loop is running.
        """
        self._sessions = sessions
        self._transport = transport
        self._config = config or get_client_config()

        self._identity = identity
        self._messages: list[Message] = []
        self._status = StreamStatus.IDLE
        self._load_status = LoadStatus()
        self._last_error: str | None = None
        self._is_loading = False
        self._session: ChatSession | None = None

        self._exchange: _Exchange | None = None
        self._load_task: asyncio.Task | None = None
        self._listeners: list[Callable[[], None]] = []
        self._idle = asyncio.Event()
        self._idle.set()

        if identity and seed_messages:
            self._messages = list(seed_messages)
            self._load_status = LoadStatus(identity, True)
        elif identity:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                logger.debug(f"No running loop; history for {identity} loads on first set_identity")
            else:
                self._start_load(identity)

    # State exposed to the presentation layer

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    @property
    def stream_status(self) -> StreamStatus:
        return self._status

    @property
    def is_streaming(self) -> bool:
        return self._status is StreamStatus.STREAMING

    @property
    def load_status(self) -> LoadStatus:
        return LoadStatus(self._load_status.last_loaded_identity, self._load_status.loaded)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def session(self) -> ChatSession | None:
        """The last history fetched for the current identity, with its token and pool context."""
        return self._session

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a listener called after every state change.

        Returns:
            A function that removes the listener.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    async def wait_idle(self) -> None:
        """Wait until no reply stream is active."""
        await self._idle.wait()

    # Sending

    def send_message(self, identity: str, text: str) -> bool:
        """Send ``text`` and stream the assistant's reply into ``messages``.

        Blank text is ignored, as is a send while a reply is streaming or the
        history is loading, or one for a session other than the current one.

        Returns:
            True if the reply stream was opened.
        """
        if not text.strip():
            logger.debug("Ignoring blank message")
            return False
        if self.is_streaming:
            logger.debug("Ignoring message while a reply is streaming")
            return False
        if self._is_loading:
            logger.debug("Ignoring message while the session history is loading")
            return False
        if identity != self._identity:
            logger.warning(f"Ignoring message for {identity}; current session is {self._identity}")
            return False

        self._messages.append(Message(role="user", content=text, timestamp=utc_timestamp()))
        exchange = _Exchange(identity=identity, user_index=len(self._messages) - 1)
        self._exchange = exchange
        self._status = StreamStatus.STREAMING
        self._last_error = None
        self._idle.clear()

        loop = asyncio.get_running_loop()
        exchange.timer = loop.call_later(self._config.reply_timeout, self._on_timeout, exchange)
        self._notify()

        try:
            exchange.handle = self._transport.open(
                identity,
                text,
                on_chunk=lambda delta: self._on_chunk(exchange, delta),
                on_done=lambda final: self._on_done(exchange, final),
                on_error=lambda message: self._on_error(exchange, message),
            )
        except TransportError as e:
            self._on_error(exchange, str(e))
            return False
        return True

    def _on_chunk(self, exchange: _Exchange, delta: str) -> None:
        if exchange is not self._exchange:
            return
        exchange.reply += delta
        if exchange.assistant_index is None:
            self._messages.append(
                Message(role="assistant", content=exchange.reply, timestamp=utc_timestamp())
            )
            exchange.assistant_index = len(self._messages) - 1
        else:
            self._replace_content(exchange.assistant_index, exchange.reply)
        self._notify()

    def _on_done(self, exchange: _Exchange, final: str) -> None:
        if exchange is not self._exchange:
            return
        if not final.strip():
            logger.warning("Empty reply received, using fallback message")
            final = FALLBACK_REPLY

        # The server's final text wins over the accumulated chunks
        if exchange.assistant_index is None:
            self._messages.append(
                Message(role="assistant", content=final, timestamp=utc_timestamp())
            )
        else:
            self._replace_content(exchange.assistant_index, final)
        self._finish(exchange)

    def _on_error(self, exchange: _Exchange, message: str) -> None:
        if exchange is not self._exchange:
            return
        logger.error(f"Reply stream for session {exchange.identity} failed: {message}")
        self._last_error = message
        if exchange.assistant_index is None:
            # Nothing was answered, so treat the message as not sent
            del self._messages[exchange.user_index]
        self._finish(exchange)

    def _on_timeout(self, exchange: _Exchange) -> None:
        if exchange is not self._exchange:
            return
        error = ReplyTimeoutError(
            f"No reply within {self._config.reply_timeout:g}s for session {exchange.identity}"
        )
        logger.warning(f"{error}; forcing completion with fallback message")
        exchange.timer = None
        if exchange.handle is not None:
            exchange.handle.cancel()

        last = self._messages[-1] if self._messages else None
        if last is None or last.role == "user":
            self._messages.append(
                Message(role="assistant", content=FALLBACK_REPLY, timestamp=utc_timestamp())
            )
        elif not last.content.strip():
            self._replace_content(len(self._messages) - 1, FALLBACK_REPLY)
        self._last_error = str(error)
        self._finish(exchange)

    def _replace_content(self, index: int, content: str) -> None:
        self._messages[index] = self._messages[index].model_copy(update={"content": content})

    def _finish(self, exchange: _Exchange) -> None:
        if exchange.timer is not None:
            exchange.timer.cancel()
            exchange.timer = None
        self._exchange = None
        self._status = StreamStatus.IDLE
        self._idle.set()
        self._notify()

    def _abort_exchange(self) -> None:
        exchange = self._exchange
        if exchange is None:
            return
        logger.info(f"Cancelling reply stream for session {exchange.identity}")
        if exchange.handle is not None:
            exchange.handle.cancel()
        if exchange.timer is not None:
            exchange.timer.cancel()
            exchange.timer = None
        self._exchange = None
        self._status = StreamStatus.IDLE
        self._idle.set()

    # Session identity

    def set_identity(
        self,
        identity: str | None,
        seed_messages: Sequence[Message] | None = None,
    ) -> asyncio.Task | None:
        """Switch the controller to another session.

        Args:
            identity: The new session, or None to clear.
            seed_messages: Authoritative initial messages for a new session.

        Returns:
            The background history load task, if one was started.
        """
        if identity == self._identity:
            return self._resume_identity(seed_messages)

        self._abort_exchange()
        self._cancel_load()
        logger.info(f"Session changed from {self._identity} to {identity}")

        self._identity = identity
        self._messages = []
        self._session = None
        self._last_error = None
        self._load_status = LoadStatus(None, False)

        if identity is None:
            self._notify()
            return None

        if seed_messages:
            self._messages = list(seed_messages)
            self._load_status = LoadStatus(identity, True)
            self._notify()
            return None

        task = self._start_load(identity)
        self._notify()
        return task

    def _resume_identity(self, seed_messages: Sequence[Message] | None) -> asyncio.Task | None:
        identity = self._identity
        if identity is None or self._load_status.loaded or self.is_streaming:
            return None
        if self._load_task is not None and not self._load_task.done():
            return None
        if seed_messages:
            self._messages = list(seed_messages)
            self._load_status = LoadStatus(identity, True)
            self._notify()
            return None
        task = self._start_load(identity)
        self._notify()
        return task

    def _start_load(self, identity: str) -> asyncio.Task:
        # Sends are refused from here until the history is in place
        self._is_loading = True
        self._load_task = asyncio.get_running_loop().create_task(self._load_in_background(identity))
        return self._load_task

    async def _load_in_background(self, identity: str) -> None:
        try:
            await self.load_session(identity)
        except LoadError:
            # Already recorded in last_error; a later load_session() retries
            pass

    def _cancel_load(self) -> None:
        if self._load_task is not None and not self._load_task.done():
            self._load_task.cancel()
        self._load_task = None
        self._is_loading = False

    async def load_session(self, identity: str | None = None, force: bool = False) -> None:
        """Fetch the authoritative history for a session.

        A session that is already loaded is not fetched again unless
        ``force`` is set. Results for a session that is no longer current
        are discarded.

        Args:
            identity: Session to load; defaults to the current one.
            force: Reload even if already loaded.

        Raises:
            LoadError: If the history could not be fetched.
        """
        identity = identity or self._identity
        if identity is None:
            return
        if (
            not force
            and self._load_status.loaded
            and self._load_status.last_loaded_identity == identity
        ):
            logger.debug(f"Session {identity} already loaded, skipping")
            return

        logger.info(f"Loading session {identity} (force={force})")
        if identity == self._identity:
            self._is_loading = True
            self._last_error = None
            self._notify()

        try:
            session = await self._sessions.get_session(identity)
        except ApiError as e:
            if identity == self._identity:
                self._last_error = e.message
                self._load_status = LoadStatus(None, False)
                self._is_loading = False
                self._notify()
            logger.error(f"Failed to load session {identity}: {e.message}")
            raise LoadError(f"Failed to load session {identity}: {e.message}") from e

        if identity != self._identity:
            logger.info(f"Discarding history for {identity}; session changed meanwhile")
            return

        # A reload replaces the list the active exchange points into
        self._abort_exchange()
        self._messages = list(session.messages)
        self._session = session
        self._load_status = LoadStatus(identity, True)
        self._is_loading = False
        logger.info(f"Session {identity} loaded with {len(self._messages)} messages")
        self._notify()

    async def create_session(self, token_address: str) -> str:
        """Create an analysis session for a token and make it current.

        The welcome message from the backend seeds the conversation, so no
        history fetch follows.

        Returns:
            The new session id.

        Raises:
            ApiError: If the backend could not create the session.
        """
        self._is_loading = True
        self._last_error = None
        self._notify()
        try:
            response = await self._sessions.create_session(token_address)
        except ApiError as e:
            self._last_error = e.message or "Failed to create session"
            self._is_loading = False
            self._notify()
            raise
        self._is_loading = False
        self.set_identity(response.session_id, [response.welcome_message])
        return response.session_id

    def close(self) -> None:
        """Release the active stream, its timer and any pending load."""
        self._abort_exchange()
        self._cancel_load()
        self._listeners.clear()
