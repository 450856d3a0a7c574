"""NiceGUI pages for past token-liquidity analyses."""

import logging

from nicegui import app, ui

from src.client import AnalysisService, ApiClient, ApiError, TokenStore, get_client_config
from src.models.analysis import Analysis
from src.ui.chat_page import CUSTOM_CSS, format_time, short_address

logger = logging.getLogger(__name__)

HISTORY_PAGE_SIZE = 20

RISK_COLORS = {"Low": "green", "Medium": "amber", "High": "red"}


def format_currency(value: float) -> str:
    """Render a USD amount with a B/M/K suffix."""
    for threshold, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if value >= threshold:
            return f"${value / threshold:.2f}{suffix}"
    return f"${value:.2f}"


def _analysis_service() -> tuple[AnalysisService, TokenStore]:
    config = get_client_config()
    tokens = TokenStore(app.storage.user.get("token") or config.api_token)
    return AnalysisService(ApiClient(config, tokens)), tokens


def render_bullets(title: str, items: list[str], icon: str, color: str) -> None:
    if not items:
        return
    with ui.card().classes("w-full"):
        with ui.row().classes("items-center gap-2"):
            ui.icon(icon).classes(f"text-{color}-500")
            ui.label(title).classes("font-semibold")
        for item in items:
            ui.label(f"• {item}").classes("text-sm")


def render_analysis(analysis: Analysis) -> None:
    """Score, risk, liquidity and the assistant's findings for one analysis."""
    ai = analysis.ai_analysis
    pool = analysis.pool_data

    with ui.row().classes("w-full gap-4"):
        with ui.card().classes("flex-1"):
            ui.label("Health score").classes("text-xs text-gray-500")
            ui.label(f"{ai.liquidity_health_score:g}/100").classes("text-3xl font-bold")
            ui.linear_progress(ai.liquidity_health_score / 100, show_value=False).props(
                "color=teal"
            )
        with ui.card().classes("flex-1"):
            ui.label("Risk level").classes("text-xs text-gray-500")
            ui.badge(ai.risk_level, color=RISK_COLORS.get(ai.risk_level, "grey")).classes(
                "text-lg px-4 py-2"
            )
        with ui.card().classes("flex-1"):
            ui.label("Total liquidity").classes("text-xs text-gray-500")
            ui.label(format_currency(pool.total_liquidity_usd)).classes("text-2xl font-bold")

    if ai.summary:
        with ui.card().classes("w-full"):
            ui.label("Summary").classes("font-semibold")
            ui.label(ai.summary).classes("text-sm")

    render_bullets("Key insights", ai.insights, "check_circle", "green")
    render_bullets("Red flags", ai.red_flags, "warning", "amber")
    render_bullets("Recommendations", ai.recommendations, "trending_up", "blue")

    metrics = pool.aggregated_metrics
    with ui.card().classes("w-full"):
        ui.label("Pool statistics").classes("font-semibold")
        with ui.grid(columns=2).classes("w-full gap-4"):
            for label, value in (
                ("Total volume", format_currency(pool.total_volume_usd)),
                ("Pool count", str(len(pool.pairs))),
                ("Total transactions", f"{metrics.total_transactions:,}"),
                ("Volume/liquidity ratio", f"{metrics.volume_to_liquidity_ratio:.2f}"),
            ):
                with ui.column().classes("gap-0"):
                    ui.label(label).classes("text-xs text-gray-500")
                    ui.label(value).classes("text-lg font-semibold")

    ui.label(
        f"Analyzed at {format_time(analysis.metadata.analyzed_at)} • "
        f"processing time {analysis.metadata.processing_time_ms / 1000:.2f}s"
    ).classes("text-xs text-gray-400 self-center")


@ui.page("/analyses")
async def analyses_page(token: str | None = None) -> None:
    """List past analyses, optionally filtered by ``?token=`` address."""
    ui.add_head_html(CUSTOM_CSS)
    service, tokens = _analysis_service()

    @ui.refreshable
    async def history_list() -> None:
        try:
            history = await service.get_history(limit=HISTORY_PAGE_SIZE, token_address=token)
        except ApiError as e:
            ui.label(f"Could not load analyses: {e.message}").classes("text-red-500")
            return
        if not history.data:
            ui.label("No analyses yet").classes("text-gray-500")
        for analysis in history.data:
            ai = analysis.ai_analysis
            with ui.row().classes("w-full items-center gap-3 px-3 py-2 rounded-lg session-item"):
                ui.label(short_address(analysis.token_address)).classes("font-mono text-sm")
                ui.badge(ai.risk_level, color=RISK_COLORS.get(ai.risk_level, "grey"))
                ui.label(f"{ai.liquidity_health_score:g}/100").classes("text-sm")
                ui.label(format_time(analysis.created_at)).classes("text-xs text-gray-400")
                ui.space()
                ui.button(
                    icon="open_in_new",
                    on_click=lambda a=analysis: ui.navigate.to(f"/analyses/{a.id}"),
                ).props("flat round dense")
                if tokens.is_authenticated:
                    ui.button(
                        icon="delete", on_click=lambda a=analysis: delete(a.id)
                    ).props("flat round dense color=red")
        if history.pagination.has_more:
            ui.label(f"Showing {len(history.data)} of {history.pagination.total}").classes(
                "text-xs text-gray-400"
            )

    async def delete(analysis_id: str) -> None:
        try:
            await service.delete_analysis(analysis_id)
        except ApiError as e:
            ui.notify(e.message, type="negative")
            return
        ui.notify("Analysis deleted", type="positive")
        history_list.refresh()

    with ui.column().classes("w-full max-w-3xl mx-auto p-4 md:p-8 gap-4"):
        with ui.row().classes("w-full items-center justify-between"):
            ui.label("Past analyses").classes("text-xl font-semibold")
            ui.button("Back to chat", icon="chat", on_click=lambda: ui.navigate.to("/")).props(
                "flat color=teal"
            )
        with ui.column().classes("w-full app-container p-3 gap-1"):
            await history_list()


@ui.page("/analyses/{analysis_id}")
async def analysis_detail_page(analysis_id: str) -> None:
    ui.add_head_html(CUSTOM_CSS)
    service, _ = _analysis_service()

    with ui.column().classes("w-full max-w-4xl mx-auto p-4 md:p-8 gap-4"):
        ui.button("All analyses", icon="arrow_back", on_click=lambda: ui.navigate.to("/analyses")).props(
            "flat color=teal"
        )
        try:
            analysis = await service.get_analysis(analysis_id)
        except ApiError as e:
            logger.warning(f"Failed to load analysis {analysis_id}: {e.message}")
            ui.label(f"Could not load analysis: {e.message}").classes("text-red-500")
            return
        ui.label(f"Analysis for {analysis.token_address}").classes("text-lg font-mono")
        render_analysis(analysis)
