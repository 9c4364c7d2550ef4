"""Process entry points for the chat bot and the HTTP surface."""
from __future__ import annotations

import logging

import uvicorn
from pydantic import ValidationError
from telegram import Update

from .assistant import build_runtime
from .bot import build_application
from .config import Settings, get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(format=LOG_FORMAT, level=level.upper())
    # one line per long-poll request otherwise
    logging.getLogger("httpx").setLevel(logging.WARNING)


def load_settings() -> Settings:
    """Return the settings or exit when required values are missing."""

    try:
        return get_settings()
    except ValidationError as exc:
        configure_logging()
        logger.critical(
            "Set TELEGRAM_BOT_TOKEN, COHERE_API_KEY and DATABASE_URL in the environment: %s",
            exc,
        )
        raise SystemExit(1) from exc


def run() -> None:
    """Start the Telegram bot in long polling mode."""

    settings = load_settings()
    configure_logging(settings.log_level)
    application = build_application(settings, build_runtime(settings))
    application.run_polling(allowed_updates=Update.ALL_TYPES)


def serve() -> None:
    """Convenience wrapper serving the HTTP surface with uvicorn."""

    settings = load_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "stock_assistant.api:create_app",
        factory=True,
        host=settings.http_host,
        port=settings.http_port,
        reload=settings.environment == "development",
    )


if __name__ == "__main__":
    run()
