"""NiceGUI chat interface driven by the chat session controller."""

import logging
from datetime import datetime

from nicegui import app, ui

from src.chat import ChatSessionController
from src.client import (
    ApiClient,
    ApiError,
    ChatService,
    StreamTransport,
    TokenStore,
    get_client_config,
)
from src.models.schemas import ChatSessionSummary, Message

logger = logging.getLogger(__name__)

QUICK_ACTIONS = [
    "What are the risks?",
    "Should I invest?",
    "Is this good for LPs?",
    "Tell me about liquidity",
]

CUSTOM_CSS = """
<link href="https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&display=swap"
      rel="stylesheet">
<style>
    * { font-family: 'Inter', sans-serif; }

    body { background: #f5f5f5; min-height: 100vh; }

    .app-container {
        background: white;
        border-radius: 12px;
        box-shadow: 0 2px 8px rgba(0, 0, 0, 0.1);
        overflow: hidden;
    }

    .header { background: linear-gradient(135deg, #0f766e 0%, #1e3a8a 100%); }

    .message-user {
        background: linear-gradient(135deg, #0f766e 0%, #1e3a8a 100%);
        color: white;
        border-radius: 18px 18px 4px 18px;
    }

    .message-assistant {
        background: #f3f4f6;
        color: #1f2937;
        border-radius: 18px 18px 18px 4px;
    }

    .session-item:hover { background: #eef2ff; }
    .session-active { background: #e0e7ff; }

    .typing-dot {
        width: 8px; height: 8px;
        background: #0f766e;
        border-radius: 50%;
        animation: bounce 1.4s infinite ease-in-out;
    }
    .typing-dot:nth-child(2) { animation-delay: 0.2s; }
    .typing-dot:nth-child(3) { animation-delay: 0.4s; }

    @keyframes bounce {
        0%, 60%, 100% { transform: translateY(0); }
        30% { transform: translateY(-6px); }
    }
</style>
"""


def format_time(timestamp: str) -> str:
    """Render an ISO-8601 timestamp as a short local clock time."""
    try:
        return datetime.fromisoformat(timestamp).astimezone().strftime("%I:%M %p")
    except ValueError:
        return ""


def short_address(address: str) -> str:
    if len(address) <= 12:
        return address
    return f"{address[:6]}...{address[-4:]}"


@ui.page("/")
async def chat_page(session: str | None = None) -> None:
    """Main chat page.

    Args:
        session: Optional session id from the ``?session=`` query parameter.
    """
    ui.add_head_html(CUSTOM_CSS)

    config = get_client_config()
    credentials = TokenStore(app.storage.user.get("token") or config.api_token)
    chat_service = ChatService(ApiClient(config, credentials))
    controller = ChatSessionController(
        chat_service, StreamTransport(config, credentials), config=config
    )
    client = ui.context.client
    client.on_disconnect(controller.close)

    token_address = {"value": ""}
    shown_error = {"value": None}

    def render_message(msg: Message) -> None:
        is_user = msg.role == "user"
        align = "justify-end" if is_user else "justify-start"
        bubble = "message-user" if is_user else "message-assistant"

        with ui.row().classes(f"w-full {align} gap-3 items-end"):
            if not is_user:
                ui.icon("smart_toy").classes("text-2xl text-gray-500")
            with ui.column().classes("max-w-[75%] gap-1"):
                with ui.element("div").classes(f"px-4 py-3 {bubble}"):
                    if is_user:
                        ui.label(msg.content).classes("text-sm whitespace-pre-wrap")
                    else:
                        ui.markdown(msg.content).classes("text-sm leading-relaxed")
                ui.label(format_time(msg.timestamp)).classes(
                    f"text-[10px] text-gray-400 {'self-end' if is_user else 'self-start'}"
                )

    def render_typing_indicator() -> None:
        with ui.row().classes("w-full justify-start gap-3 items-end"):
            ui.icon("smart_toy").classes("text-2xl text-gray-500")
            with ui.element("div").classes("message-assistant px-4 py-3"):
                with ui.row().classes("gap-1"):
                    for _ in range(3):
                        ui.element("div").classes("typing-dot")

    def refresh_messages() -> None:
        messages_container.clear()
        messages = controller.messages
        with messages_container:
            if not messages:
                with ui.column().classes("w-full h-64 items-center justify-center gap-3"):
                    if controller.is_loading:
                        ui.spinner(size="lg")
                        ui.label("Loading chat history...").classes("text-sm text-gray-400")
                    else:
                        ui.icon("forum").classes("text-5xl text-gray-300")
                        ui.label("No messages yet").classes("text-lg text-gray-400")
            for msg in messages:
                render_message(msg)
            if controller.is_streaming and (not messages or messages[-1].role == "user"):
                render_typing_indicator()
        scroll_area.scroll_to(percent=1.0)

    def on_state_change() -> None:
        # Listeners also fire from stream tasks that carry no slot context
        with client:
            update_view()

    def update_view() -> None:
        has_session = controller.identity is not None
        if controller.session is not None:
            token_address["value"] = controller.session.token_address
        welcome_panel.set_visibility(not has_session)
        chat_panel.set_visibility(has_session)
        session_label.set_text(short_address(token_address["value"]) if has_session else "")
        if controller.is_streaming or controller.is_loading:
            send_btn.disable()
        else:
            send_btn.enable()
        refresh_messages()

        error = controller.last_error
        if error and error != shown_error["value"]:
            ui.notify(error, type="negative")
        shown_error["value"] = error

    controller.subscribe(on_state_change)

    def send_message() -> None:
        if controller.identity is None:
            return
        if controller.send_message(controller.identity, input_field.value or ""):
            input_field.value = ""

    def select_session(summary: ChatSessionSummary) -> None:
        token_address["value"] = summary.token_address
        controller.set_identity(summary.id)
        refresh_sidebar.refresh()

    def new_chat() -> None:
        token_address["value"] = ""
        controller.set_identity(None)
        refresh_sidebar.refresh()

    async def start_analysis() -> None:
        address = (token_input.value or "").strip()
        if not address:
            ui.notify("Enter a token address", type="warning")
            return

        analyze_btn.disable()
        ui.notify("Creating analysis session... This may take 5-30 seconds", type="info")
        token_address["value"] = address
        try:
            await controller.create_session(address)
        except ApiError as e:
            logger.warning(f"Session creation failed for {address}: {e.message}")
            token_address["value"] = ""
            return
        finally:
            analyze_btn.enable()

        token_input.value = ""
        ui.notify("Analysis complete! You can now chat about this token", type="positive")
        refresh_sidebar.refresh()

    def logout() -> None:
        app.storage.user.pop("token", None)
        credentials.clear()
        ui.navigate.to("/login")

    @ui.refreshable
    async def refresh_sidebar() -> None:
        if not credentials.is_authenticated:
            ui.label("Sign in to see your sessions").classes("text-xs text-gray-500")
            ui.button("Sign in", on_click=lambda: ui.navigate.to("/login")).props("flat dense")
            return
        try:
            listing = await chat_service.list_sessions(config.session_list_limit)
        except ApiError as e:
            ui.label(f"Could not load sessions: {e.message}").classes("text-xs text-red-500")
            return
        if not listing.sessions:
            ui.label("No sessions yet").classes("text-xs text-gray-500")
        for summary in listing.sessions:
            active = "session-active" if summary.id == controller.identity else ""
            with (
                ui.column()
                .classes(f"w-full px-3 py-2 rounded-lg cursor-pointer gap-0 session-item {active}")
                .on("click", lambda s=summary: select_session(s))
            ):
                ui.label(short_address(summary.token_address)).classes("text-sm font-mono")
                ui.label(f"{summary.message_count} messages").classes("text-[10px] text-gray-400")

    # === UI Layout ===
    with ui.row().classes("w-full min-h-screen p-4 md:p-8 gap-4 no-wrap"):
        with ui.column().classes("w-64 app-container p-3 gap-2 hidden md:flex").style(
            "height: calc(100vh - 4rem)"
        ):
            ui.button("New analysis", icon="add", on_click=new_chat).props(
                "unelevated color=teal"
            ).classes("w-full")
            ui.button(
                "Past analyses", icon="history", on_click=lambda: ui.navigate.to("/analyses")
            ).props("flat color=teal").classes("w-full")
            ui.label("Recent sessions").classes("text-xs uppercase text-gray-400 mt-2")
            await refresh_sidebar()

        with ui.column().classes("flex-grow max-w-4xl app-container gap-0").style(
            "height: calc(100vh - 4rem)"
        ):
            # Header
            with ui.row().classes("w-full header px-5 py-4 items-center justify-between"):
                with ui.row().classes("items-center gap-3"):
                    ui.icon("query_stats").classes("text-white text-3xl")
                    ui.label("Liquidity Assistant").classes("text-lg font-semibold text-white")
                with ui.row().classes("items-center gap-3"):
                    session_label = ui.label().classes("text-xs text-white/80 font-mono")
                    if credentials.is_authenticated:
                        ui.button(icon="logout", on_click=logout).props("flat round color=white")

            # Token input, shown when no session is active
            with ui.column().classes("w-full flex-grow items-center justify-center gap-4 p-8") as welcome_panel:
                ui.icon("water_drop").classes("text-5xl text-teal-600")
                ui.label("Analyze a token's liquidity").classes("text-xl font-semibold")
                ui.label(
                    "Paste a token address to run an analysis and chat with the assistant about it."
                ).classes("text-sm text-gray-500 text-center")
                with ui.row().classes("w-full max-w-xl gap-2 items-center no-wrap"):
                    token_input = (
                        ui.input(placeholder="0x...")
                        .props("outlined dense")
                        .classes("flex-grow font-mono")
                        .on("keydown.enter", start_analysis)
                    )
                    analyze_btn = ui.button("Analyze", on_click=start_analysis).props(
                        "unelevated color=teal"
                    )

            with ui.column().classes("w-full flex-grow gap-0") as chat_panel:
                # Messages
                with ui.scroll_area().classes("flex-grow w-full bg-gray-50") as scroll_area:
                    messages_container = ui.column().classes("w-full gap-4 p-5")

                # Quick actions
                with ui.row().classes("w-full px-4 pt-3 gap-2 bg-white"):
                    for action in QUICK_ACTIONS:
                        ui.chip(
                            action,
                            on_click=lambda a=action: input_field.set_value(a),
                        ).props("outline color=teal clickable")

                # Input
                with ui.row().classes("w-full p-4 gap-3 items-end bg-white border-t no-wrap"):
                    input_field = (
                        ui.textarea(placeholder="Ask about this token...")
                        .props("autogrow outlined dense rows=1")
                        .classes("flex-grow")
                        .on("keydown.enter.prevent", send_message)
                    )
                    send_btn = ui.button(icon="send", on_click=send_message).props(
                        "round unelevated color=teal"
                    )

    on_state_change()

    if session:
        controller.set_identity(session)
