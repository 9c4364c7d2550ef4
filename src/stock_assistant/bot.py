"""Telegram transport: long polling in, text/document/photo replies out."""
from __future__ import annotations

import logging

from telegram import Bot, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    ApplicationBuilder,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .assistant import ATTACHMENT_FAILURE, AssistantRuntime
from .config import Settings
from .errors import AttachmentError
from .export import StockExporter
from .schemas import IncomingMessage, Reply

logger = logging.getLogger(__name__)

RUNTIME_KEY = "runtime"

GREETING = (
    "¡Hola! Soy tu asistente de stock. Escribí por ejemplo \"agregar 3 leche\" "
    "o \"exportar stock\"."
)


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    if update.effective_message is not None:
        await update.effective_message.reply_text(GREETING)


async def handle_text(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    user = update.effective_user
    if message is None or message.text is None or user is None:
        return

    runtime: AssistantRuntime = context.bot_data[RUNTIME_KEY]
    incoming = IncomingMessage(user_id=user.id, chat_id=message.chat_id, text=message.text)
    reply = await runtime.assistant.handle(incoming)
    await deliver(context.bot, incoming.chat_id, reply)


async def _send_attachment(bot: Bot, chat_id: int, reply: Reply) -> None:
    if reply.path is None:
        raise AttachmentError(f"{reply.kind} reply without a file")
    try:
        with reply.path.open("rb") as handle:
            if reply.kind == "document":
                await bot.send_document(chat_id=chat_id, document=handle, filename=reply.filename)
            else:
                await bot.send_photo(chat_id=chat_id, photo=handle, filename=reply.filename)
    except (OSError, TelegramError) as exc:
        logger.error("Could not send %s %s to chat %s: %s", reply.kind, reply.path, chat_id, exc)
        raise AttachmentError(str(exc)) from exc


async def deliver(bot: Bot, chat_id: int, reply: Reply) -> None:
    """Send ``reply`` to ``chat_id`` and clean up any temporary artifact."""

    if reply.kind == "text":
        await bot.send_message(chat_id=chat_id, text=reply.text or "")
        return

    try:
        await _send_attachment(bot, chat_id, reply)
    except AttachmentError:
        await bot.send_message(chat_id=chat_id, text=ATTACHMENT_FAILURE)
    finally:
        if reply.remove_after_send and reply.path is not None:
            StockExporter.discard(reply.path)


async def on_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error("Unhandled error while processing an update", exc_info=context.error)


async def _post_init(application: Application) -> None:
    runtime: AssistantRuntime = application.bot_data[RUNTIME_KEY]
    await runtime.start()
    logger.info("Bot authorized as %s", application.bot.username)


async def _post_shutdown(application: Application) -> None:
    runtime: AssistantRuntime = application.bot_data[RUNTIME_KEY]
    await runtime.aclose()


def build_application(settings: Settings, runtime: AssistantRuntime) -> Application:
    """Wire the handlers; updates are processed one at a time in arrival order."""

    application = (
        ApplicationBuilder()
        .token(settings.telegram_bot_token)
        .post_init(_post_init)
        .post_shutdown(_post_shutdown)
        .build()
    )
    application.bot_data[RUNTIME_KEY] = runtime
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text))
    application.add_error_handler(on_error)
    return application


__all__ = ["build_application", "deliver", "handle_text", "start_command"]
