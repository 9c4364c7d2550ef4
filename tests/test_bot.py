from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock

from telegram.error import NetworkError

from stock_assistant.assistant import ATTACHMENT_FAILURE, AssistantRuntime
from stock_assistant.bot import RUNTIME_KEY, deliver, handle_text
from stock_assistant.schemas import Reply


def _bot() -> AsyncMock:
    return AsyncMock()


async def test_text_reply_is_sent() -> None:
    bot = _bot()
    await deliver(bot, 42, Reply.message("hola"))
    bot.send_message.assert_awaited_once_with(chat_id=42, text="hola")


async def test_document_is_sent_and_removed(tmp_path: Path) -> None:
    report = tmp_path / "stock_1.txt"
    report.write_text("pan: 1\n", encoding="utf-8")
    bot = _bot()

    await deliver(
        bot,
        42,
        Reply(kind="document", path=report, filename=report.name, remove_after_send=True),
    )

    bot.send_document.assert_awaited_once()
    assert bot.send_document.await_args.kwargs["filename"] == "stock_1.txt"
    bot.send_message.assert_not_awaited()
    assert not report.exists()


async def test_failed_send_reports_and_still_removes(tmp_path: Path) -> None:
    report = tmp_path / "stock_1.txt"
    report.write_text("pan: 1\n", encoding="utf-8")
    bot = _bot()
    bot.send_document.side_effect = NetworkError("timed out")

    await deliver(
        bot,
        42,
        Reply(kind="document", path=report, filename=report.name, remove_after_send=True),
    )

    bot.send_message.assert_awaited_once_with(chat_id=42, text=ATTACHMENT_FAILURE)
    assert not report.exists()


async def test_missing_image_reports_failure(tmp_path: Path) -> None:
    bot = _bot()
    image = tmp_path / "sorpresa.jpg"

    await deliver(bot, 42, Reply(kind="photo", path=image, filename=image.name))

    bot.send_photo.assert_not_awaited()
    bot.send_message.assert_awaited_once_with(chat_id=42, text=ATTACHMENT_FAILURE)


async def test_photo_is_sent_and_kept(tmp_path: Path) -> None:
    image = tmp_path / "sorpresa.jpg"
    image.write_bytes(b"\xff\xd8\xff")
    bot = _bot()

    await deliver(bot, 42, Reply(kind="photo", path=image, filename=image.name))

    bot.send_photo.assert_awaited_once()
    assert image.exists()


async def test_handle_text_dispatches_through_assistant(runtime: AssistantRuntime) -> None:
    bot = _bot()
    update = SimpleNamespace(
        effective_message=SimpleNamespace(text="agregar 3 pan", chat_id=77),
        effective_user=SimpleNamespace(id=9),
    )
    context = SimpleNamespace(bot=bot, bot_data={RUNTIME_KEY: runtime})

    await handle_text(update, context)

    bot.send_message.assert_awaited_once_with(chat_id=77, text="Se ha agregado 3 pan al stock.")
    assert await runtime.assistant.ledger.get_quantity(9, "pan") == 3


async def test_handle_text_ignores_updates_without_text(runtime: AssistantRuntime) -> None:
    bot = _bot()
    update = SimpleNamespace(
        effective_message=SimpleNamespace(text=None, chat_id=77),
        effective_user=SimpleNamespace(id=9),
    )
    context = SimpleNamespace(bot=bot, bot_data={RUNTIME_KEY: runtime})

    await handle_text(update, context)

    bot.send_message.assert_not_awaited()
