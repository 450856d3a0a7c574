"""Chat session state for the presentation layer.

The controller tracks the current session, loads its history once per
session change, and folds streamed replies into an ordered message list.
"""

from src.chat.controller import FALLBACK_REPLY, ChatSessionController, LoadStatus, StreamStatus

__all__ = ["FALLBACK_REPLY", "ChatSessionController", "LoadStatus", "StreamStatus"]
