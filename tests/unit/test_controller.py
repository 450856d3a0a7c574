"""Unit tests for ChatSessionController.

Drives the state machine with a scripted transport and an in-memory
session source, so every callback ordering can be exercised directly.
"""

import asyncio
from collections.abc import Callable

import pytest
import pytest_check as check

from src.chat import FALLBACK_REPLY, ChatSessionController, StreamStatus
from src.client import ApiError, ClientConfig, LoadError, StreamHandle, TransportError
from src.models.schemas import ChatSession, CreateSessionResponse, Message

WELCOME = Message(role="assistant", content="Welcome!", timestamp="2026-01-05T10:00:00Z")
M1 = Message(role="assistant", content="Welcome back", timestamp="2026-01-05T10:00:00Z")
M2 = Message(role="user", content="Is it safe?", timestamp="2026-01-05T10:01:00Z")


class FakeStream:
    """One scripted stream; honours cancellation like the real transport."""

    def __init__(
        self,
        on_chunk: Callable[[str], None],
        on_done: Callable[[str], None],
        on_error: Callable[[str], None],
    ) -> None:
        self.on_chunk = on_chunk
        self.on_done = on_done
        self.on_error = on_error
        self.handle = StreamHandle()

    def chunk(self, text: str) -> None:
        if not self.handle.closed:
            self.on_chunk(text)

    def done(self, text: str) -> None:
        if self.handle.mark_closed():
            self.on_done(text)

    def error(self, message: str) -> None:
        if self.handle.mark_closed():
            self.on_error(message)


class FakeTransport:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.streams: list[FakeStream] = []
        self.calls: list[tuple[str, str]] = []
        self._fail_with = fail_with

    def open(self, session_id, message, on_chunk, on_done, on_error) -> StreamHandle:
        self.calls.append((session_id, message))
        if self._fail_with is not None:
            raise self._fail_with
        stream = FakeStream(on_chunk, on_done, on_error)
        self.streams.append(stream)
        return stream.handle

    @property
    def last(self) -> FakeStream:
        return self.streams[-1]


class FakeSessions:
    def __init__(self, histories: dict[str, list[Message]] | None = None) -> None:
        self.histories = histories or {}
        self.fetches: list[str] = []
        self.failing: set[str] = set()
        self.create_error: ApiError | None = None
        self.gate: asyncio.Event | None = None

    async def get_session(self, session_id: str) -> ChatSession:
        self.fetches.append(session_id)
        if self.gate is not None:
            await self.gate.wait()
        if session_id in self.failing:
            raise ApiError("Session not found", status_code=404)
        return ChatSession(session_id=session_id, messages=self.histories.get(session_id, []))

    async def create_session(self, token_address: str) -> CreateSessionResponse:
        if self.create_error is not None:
            raise self.create_error
        return CreateSessionResponse(
            session_id="new-session", token_address=token_address, welcome_message=WELCOME
        )


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_base_url="http://test", reply_timeout=0.05)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def sessions() -> FakeSessions:
    return FakeSessions({"s1": [M1, M2], "s2": [M1]})


@pytest.fixture
def controller(sessions, transport, config) -> ChatSessionController:
    """Controller bound to s1 with a welcome message already loaded."""
    return ChatSessionController(
        sessions, transport, config=config, identity="s1", seed_messages=[WELCOME]
    )


def contents(controller: ChatSessionController) -> list[tuple[str, str]]:
    return [(m.role, m.content) for m in controller.messages]


class TestSendMessage:
    """Tests for streaming a reply into the message list."""

    async def test_chunks_then_done(self, controller, transport) -> None:
        """Chunks grow a single assistant message; done finalizes it."""
        assert controller.send_message("s1", "hello") is True
        check.equal(controller.stream_status, StreamStatus.STREAMING)
        check.equal(transport.calls, [("s1", "hello")])

        transport.last.chunk("Hi")
        check.equal(controller.messages[-1].content, "Hi")
        transport.last.chunk(" there")
        check.equal(controller.messages[-1].content, "Hi there")
        check.equal(len(controller.messages), 3)

        transport.last.done("Hi there")

        assert contents(controller) == [
            ("assistant", "Welcome!"),
            ("user", "hello"),
            ("assistant", "Hi there"),
        ]
        assert controller.is_streaming is False
        assert controller.last_error is None

    async def test_done_text_replaces_accumulated_chunks(self, controller, transport) -> None:
        """The server's final text wins over the client's accumulation."""
        controller.send_message("s1", "hello")
        transport.last.chunk("Hi")
        transport.last.done("Hello, formatted.")

        assert controller.messages[-1].content == "Hello, formatted."
        assert len(controller.messages) == 3

    async def test_done_without_chunks_appends_reply(self, controller, transport) -> None:
        """A stream that only emits done still yields one assistant message."""
        controller.send_message("s1", "hello")
        transport.last.done("Final answer")

        assert contents(controller)[-2:] == [("user", "hello"), ("assistant", "Final answer")]

    @pytest.mark.parametrize("final", ["", "   "])
    async def test_blank_final_uses_fallback(self, controller, transport, final) -> None:
        controller.send_message("s1", "hello")
        transport.last.chunk("Hi")
        transport.last.done(final)

        assert controller.messages[-1].content == FALLBACK_REPLY

    async def test_assistant_timestamp_survives_updates(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        transport.last.chunk("Hi")
        started = controller.messages[-1].timestamp
        transport.last.chunk(" there")
        transport.last.done("Hi there")

        assert controller.messages[-1].timestamp == started
        assert controller.messages[-1].role == "assistant"

    async def test_send_while_streaming_is_ignored(self, controller, transport) -> None:
        controller.send_message("s1", "first")
        count = len(controller.messages)

        assert controller.send_message("s1", "second") is False
        assert len(controller.messages) == count
        assert len(transport.calls) == 1

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    async def test_blank_message_is_ignored(self, controller, transport, text) -> None:
        assert controller.send_message("s1", text) is False
        assert transport.calls == []
        assert len(controller.messages) == 1

    async def test_message_for_other_session_is_ignored(self, controller, transport) -> None:
        assert controller.send_message("other", "hello") is False
        assert transport.calls == []

    async def test_can_send_again_after_completion(self, controller, transport) -> None:
        controller.send_message("s1", "one")
        transport.last.done("1")
        assert controller.send_message("s1", "two") is True
        transport.last.done("2")

        assert [c for _, c in contents(controller)] == ["Welcome!", "one", "1", "two", "2"]


class TestStreamErrors:
    """Tests for error reconciliation."""

    async def test_error_before_any_chunk_removes_user_message(self, controller, transport) -> None:
        before = controller.messages
        controller.send_message("s1", "x")
        transport.last.error("boom")

        assert controller.messages == before
        assert controller.last_error == "boom"
        assert controller.is_streaming is False

    async def test_error_after_partial_keeps_partial_answer(self, controller, transport) -> None:
        controller.send_message("s1", "x")
        transport.last.chunk("Partial")
        transport.last.error("Connection lost")

        assert contents(controller)[-2:] == [("user", "x"), ("assistant", "Partial")]
        assert controller.last_error == "Connection lost"
        assert controller.is_streaming is False

    async def test_new_send_clears_last_error(self, controller, transport) -> None:
        controller.send_message("s1", "x")
        transport.last.error("boom")
        controller.send_message("s1", "y")

        assert controller.last_error is None

    async def test_transport_refusing_to_open(self, sessions, config) -> None:
        transport = FakeTransport(fail_with=TransportError("no event loop"))
        controller = ChatSessionController(
            sessions, transport, config=config, identity="s1", seed_messages=[WELCOME]
        )

        assert controller.send_message("s1", "hello") is False

        assert contents(controller) == [("assistant", "Welcome!")]
        assert controller.last_error == "no event loop"
        assert controller.is_streaming is False

    async def test_callbacks_after_terminal_are_ignored(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        stream = transport.last
        stream.done("Hi")
        snapshot = controller.messages

        stream.on_error("late")
        stream.on_chunk("late")

        assert controller.messages == snapshot
        assert controller.last_error is None


class TestReplyTimeout:
    """Tests for the fallback timer."""

    async def test_silent_transport_times_out(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        await asyncio.wait_for(controller.wait_idle(), timeout=1)

        assert controller.is_streaming is False
        assert contents(controller)[-1] == ("assistant", FALLBACK_REPLY)
        assert transport.last.handle.closed is True
        assert "No reply" in controller.last_error

    async def test_timeout_replaces_empty_assistant_message(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        transport.last.chunk("")
        count = len(controller.messages)
        await asyncio.wait_for(controller.wait_idle(), timeout=1)

        assert len(controller.messages) == count
        assert controller.messages[-1].content == FALLBACK_REPLY

    async def test_timeout_keeps_partial_content(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        transport.last.chunk("Partial")
        await asyncio.wait_for(controller.wait_idle(), timeout=1)

        assert contents(controller)[-1] == ("assistant", "Partial")

    async def test_late_done_after_timeout_is_ignored(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        stream = transport.last
        await asyncio.wait_for(controller.wait_idle(), timeout=1)
        snapshot = controller.messages

        stream.on_done("too late")

        assert controller.messages == snapshot

    async def test_completion_cancels_timer(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        transport.last.done("Hi")
        await asyncio.sleep(0.1)

        assert contents(controller)[-1] == ("assistant", "Hi")
        assert controller.last_error is None


class TestSessionIdentity:
    """Tests for session switching and history loading."""

    async def test_load_then_repeat_is_noop(self, sessions, transport, config) -> None:
        controller = ChatSessionController(sessions, transport, config=config)

        task = controller.set_identity("s1")
        assert task is not None
        await task

        assert controller.messages == [M1, M2]
        assert controller.load_status.loaded is True
        assert controller.load_status.last_loaded_identity == "s1"

        assert controller.set_identity("s1") is None
        await controller.load_session("s1")
        assert sessions.fetches == ["s1"]

    async def test_forced_reload_fetches_again(self, sessions, transport, config) -> None:
        controller = ChatSessionController(sessions, transport, config=config)
        await controller.set_identity("s1")
        await controller.load_session(force=True)

        assert sessions.fetches == ["s1", "s1"]

    async def test_seed_messages_skip_fetch(self, sessions, transport, config) -> None:
        controller = ChatSessionController(sessions, transport, config=config)

        assert controller.set_identity("s9", [WELCOME]) is None
        await controller.load_session()

        assert controller.messages == [WELCOME]
        assert controller.load_status.loaded is True
        assert sessions.fetches == []

    async def test_page_restore_fetches_history_once(self, sessions, transport, config) -> None:
        """Binding to an existing session exposes the fetched record without a second fetch."""
        controller = ChatSessionController(sessions, transport, config=config)
        sessions.histories["s9"] = []

        await controller.set_identity("s9")
        assert controller.set_identity("s9") is None

        assert controller.session is not None
        assert controller.session.session_id == "s9"
        assert controller.load_status.loaded is True
        assert sessions.fetches == ["s9"]

    async def test_switching_clears_session_record(self, sessions, transport, config) -> None:
        controller = ChatSessionController(sessions, transport, config=config)
        await controller.set_identity("s1")

        controller.set_identity("s2", [WELCOME])

        assert controller.session is None

    async def test_identity_from_constructor_loads_history(
        self, sessions, transport, config
    ) -> None:
        controller = ChatSessionController(sessions, transport, config=config, identity="s1")
        assert controller.is_loading is True

        assert controller.set_identity("s1") is None
        await asyncio.sleep(0.01)

        assert controller.messages == [M1, M2]
        assert controller.load_status.loaded is True
        assert sessions.fetches == ["s1"]

    async def test_same_identity_retries_unloaded_session(
        self, sessions, transport, config
    ) -> None:
        sessions.failing.add("s1")
        controller = ChatSessionController(sessions, transport, config=config)
        await controller.set_identity("s1")
        sessions.failing.clear()

        task = controller.set_identity("s1")
        assert task is not None
        await task

        assert controller.messages == [M1, M2]
        assert sessions.fetches == ["s1", "s1"]

    async def test_send_during_history_load_is_refused(
        self, sessions, transport, config
    ) -> None:
        """A message typed before the history arrives is not sent and then lost."""
        sessions.gate = asyncio.Event()
        controller = ChatSessionController(sessions, transport, config=config)
        task = controller.set_identity("s1")

        check.is_true(controller.is_loading)
        check.is_false(controller.send_message("s1", "quick question"))
        check.equal(transport.calls, [])

        sessions.gate.set()
        await task

        check.equal(controller.messages, [M1, M2])
        check.is_false(controller.is_loading)
        check.is_true(controller.send_message("s1", "quick question"))
        check.equal(transport.calls, [("s1", "quick question")])

    async def test_clearing_identity_resets_state(self, controller) -> None:
        controller.set_identity(None)

        assert controller.identity is None
        assert controller.messages == []
        assert controller.load_status.loaded is False
        assert controller.load_status.last_loaded_identity is None

    async def test_switching_cancels_active_stream(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        stream = transport.last
        task = controller.set_identity("s2")

        assert stream.handle.closed is True
        assert controller.is_streaming is False

        await task
        stream.on_chunk("stale reply")
        assert controller.messages == [M1]

    async def test_load_failure_is_retryable(self, sessions, transport, config) -> None:
        sessions.failing.add("s1")
        controller = ChatSessionController(sessions, transport, config=config)

        await controller.set_identity("s1")
        check.equal(controller.last_error, "Session not found")
        check.is_false(controller.load_status.loaded)
        check.is_false(controller.is_loading)

        sessions.failing.clear()
        await controller.load_session()
        check.equal(controller.messages, [M1, M2])
        check.is_true(controller.load_status.loaded)
        check.is_none(controller.last_error)

    async def test_explicit_load_failure_raises(self, sessions, transport, config) -> None:
        sessions.failing.add("s1")
        controller = ChatSessionController(sessions, transport, config=config, identity="s1")

        with pytest.raises(LoadError):
            await controller.load_session()

    async def test_history_for_previous_session_is_discarded(self, controller) -> None:
        await controller.load_session("s2")

        assert controller.identity == "s1"
        assert controller.messages == [WELCOME]

    async def test_create_session_adopts_welcome(self, sessions, transport, config) -> None:
        controller = ChatSessionController(sessions, transport, config=config)

        session_id = await controller.create_session("0xabc")

        assert session_id == "new-session"
        assert controller.identity == "new-session"
        assert controller.messages == [WELCOME]
        assert controller.load_status.loaded is True
        assert sessions.fetches == []

    async def test_create_session_failure(self, sessions, transport, config) -> None:
        sessions.create_error = ApiError("Invalid token address", status_code=400)
        controller = ChatSessionController(sessions, transport, config=config)

        with pytest.raises(ApiError):
            await controller.create_session("nope")

        assert controller.last_error == "Invalid token address"
        assert controller.identity is None
        assert controller.is_loading is False


class TestLifecycle:
    async def test_listeners_notified_on_each_change(self, controller, transport) -> None:
        calls: list[bool] = []
        unsubscribe = controller.subscribe(lambda: calls.append(controller.is_streaming))

        controller.send_message("s1", "hello")
        transport.last.chunk("Hi")
        transport.last.done("Hi")

        assert calls == [True, True, False]

        unsubscribe()
        controller.send_message("s1", "again")
        assert len(calls) == 3

    async def test_close_releases_stream_and_timer(self, controller, transport) -> None:
        controller.send_message("s1", "hello")
        count = len(controller.messages)

        controller.close()
        await asyncio.sleep(0.1)

        assert transport.last.handle.closed is True
        assert controller.is_streaming is False
        assert len(controller.messages) == count
