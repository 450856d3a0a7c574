"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with live streaming updates
    - Token address input that starts a new analysis session
    - Session sidebar and history navigation
    - Past analyses with score, risk and pool statistics
    - E-mail one-time-code sign-in

Contains no business logic. Renders the chat controller's state and
forwards user actions to it.
"""

from src.ui.analysis_page import analyses_page, analysis_detail_page
from src.ui.chat_page import chat_page
from src.ui.login_page import login_page

__all__ = ["analyses_page", "analysis_detail_page", "chat_page", "login_page"]
