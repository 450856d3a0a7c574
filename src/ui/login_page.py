"""NiceGUI sign-in page for the e-mail one-time-code flow."""

import logging

from nicegui import app, ui

from src.client import ApiClient, ApiError, AuthService, TokenStore, get_client_config

logger = logging.getLogger(__name__)


@ui.page("/login")
def login_page() -> None:
    """Request a one-time code by e-mail, then exchange it for a bearer token."""
    config = get_client_config()
    tokens = TokenStore()
    auth = AuthService(ApiClient(config, tokens), tokens)

    async def request_code() -> None:
        email = (email_input.value or "").strip()
        if not email:
            ui.notify("Enter your e-mail address", type="warning")
            return
        try:
            response = await auth.send_otp(email)
        except ApiError as e:
            ui.notify(e.message, type="negative")
            return
        ui.notify(response.message or f"Code sent to {response.email}", type="positive")
        code_row.set_visibility(True)

    async def verify_code() -> None:
        try:
            await auth.verify_otp((email_input.value or "").strip(), code_input.value or "")
        except ApiError as e:
            ui.notify(e.message, type="negative")
            return
        app.storage.user["token"] = tokens.get_token()
        ui.navigate.to("/")

    with ui.column().classes("w-full min-h-screen items-center justify-center"):
        with ui.card().classes("w-96 p-6 gap-4"):
            ui.label("Sign in").classes("text-xl font-semibold")
            email_input = ui.input("E-mail").props("outlined dense").classes("w-full")
            ui.button("Send code", on_click=request_code).props("unelevated color=teal")
            with ui.row().classes("w-full gap-2 items-center no-wrap") as code_row:
                code_input = (
                    ui.input("One-time code")
                    .props("outlined dense")
                    .classes("flex-grow")
                    .on("keydown.enter", verify_code)
                )
                ui.button("Verify", on_click=verify_code).props("unelevated color=teal")
            code_row.set_visibility(False)
            ui.link("Continue without signing in", "/").classes("text-xs")
