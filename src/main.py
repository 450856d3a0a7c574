"""Application entry point.

Runs the NiceGUI chat interface against the analysis backend configured
by API_URL. Environment variables are loaded from .env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the chat UI server."""
    from nicegui import ui

    import src.ui  # noqa: F401 - Registers the pages
    from src.client import get_client_config

    config = get_client_config()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))

    logger.info(f"Using analysis backend at {config.api_base_url}")
    logger.info(f"Chat UI available at http://localhost:{port}/")

    ui.run(
        title="Liquidity Assistant",
        host=host,
        port=port,
        reload=False,
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "liquidity-chat-secret"),
    )


if __name__ in {"__main__", "__mp_main__"}:
    main()
