"""Message dispatch: parse, mutate the ledger, reply."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from .config import Settings
from .database import create_engine, create_session_factory
from .errors import AttachmentError, InvalidQuantity, ParseAmbiguous, StorageError
from .export import StockExporter
from .fallback import FallbackResponder
from .intents import ADD, REMOVE, Intent, IntentParser
from .ledger import StockLedger
from .management import init_database
from .schemas import IncomingMessage, Reply

logger = logging.getLogger(__name__)

ADDED = "Se ha agregado {quantity} {product} al stock."
INVALID_QUANTITY = "Por favor, proporciona una cantidad válida."
STORAGE_FAILURE = "Hubo un error al agregar al stock."
EXPORT_FAILURE = "No pude generar el archivo de stock."
ATTACHMENT_FAILURE = "No pude enviar el archivo."
REMOVAL_UNAVAILABLE = "Todavía no puedo quitar productos del stock."


class StockAssistant:
    """Turn one inbound chat message into one :class:`Reply`.

    Commands found by the parser go to the ledger. Otherwise the two literal
    commands (stock export and the image trigger) are checked, and anything
    left is answered by the generative fallback. Failures become polite
    replies; nothing is raised to the transport loop.
    """

    def __init__(
        self,
        parser: IntentParser,
        ledger: StockLedger,
        exporter: StockExporter,
        responder: FallbackResponder,
        *,
        export_command: str = "exportar stock",
        image_trigger: str = "sorpresa",
        image_path: str | Path = Path("assets/sorpresa.jpg"),
    ) -> None:
        self.parser = parser
        self.ledger = ledger
        self.exporter = exporter
        self.responder = responder
        self.export_command = export_command.strip().lower()
        self.image_trigger = image_trigger.strip().lower()
        self.image_path = Path(image_path)

    async def handle(self, message: IncomingMessage) -> Reply:
        try:
            intent = self.parser.parse(message.text)
        except ParseAmbiguous:
            return await self._handle_unparsed(message)

        if intent.action == ADD:
            return await self._add(message.user_id, intent)
        if intent.action == REMOVE:
            logger.info(
                "Removal of %r requested by user %s; removal is not supported.",
                intent.product,
                message.user_id,
            )
            return Reply.message(REMOVAL_UNAVAILABLE)

        logger.warning("No handler for action %r, using the fallback.", intent.action)
        return Reply.message(await self.responder.respond(message.text))

    async def _handle_unparsed(self, message: IncomingMessage) -> Reply:
        literal = message.text.strip().lower()
        if literal == self.export_command:
            return await self.export(message.user_id)
        if literal == self.image_trigger:
            return Reply(kind="photo", path=self.image_path, filename=self.image_path.name)
        return Reply.message(await self.responder.respond(message.text))

    async def _add(self, user_id: int, intent: Intent) -> Reply:
        try:
            quantity = intent.quantity
        except InvalidQuantity as exc:
            logger.info("Rejected quantity from user %s: %s", user_id, exc)
            return Reply.message(INVALID_QUANTITY)

        try:
            await self.ledger.upsert(user_id, intent.product, quantity)
        except StorageError:
            return Reply.message(STORAGE_FAILURE)
        return Reply.message(ADDED.format(quantity=quantity, product=intent.product))

    async def export(self, user_id: int) -> Reply:
        try:
            path = await self.exporter.export(user_id)
        except (StorageError, AttachmentError):
            return Reply.message(EXPORT_FAILURE)
        return Reply(kind="document", path=path, filename=path.name, remove_after_send=True)


@dataclass
class AssistantRuntime:
    """Assistant plus the resources it borrows, for start-up and shutdown."""

    assistant: StockAssistant
    engine: AsyncEngine
    http_client: httpx.AsyncClient

    async def start(self) -> None:
        await init_database(self.engine)

    async def aclose(self) -> None:
        await self.http_client.aclose()
        await self.engine.dispose()


def build_runtime(
    settings: Settings,
    *,
    engine: AsyncEngine | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AssistantRuntime:
    engine = engine or create_engine(settings)
    http_client = http_client or httpx.AsyncClient(timeout=settings.generation_timeout)
    ledger = StockLedger(create_session_factory(engine))
    assistant = StockAssistant(
        IntentParser(),
        ledger,
        StockExporter(ledger, settings.export_dir),
        FallbackResponder.from_settings(settings, http_client),
        export_command=settings.export_command,
        image_trigger=settings.image_trigger,
        image_path=settings.image_path,
    )
    return AssistantRuntime(assistant=assistant, engine=engine, http_client=http_client)


__all__ = [
    "ADDED",
    "ATTACHMENT_FAILURE",
    "EXPORT_FAILURE",
    "INVALID_QUANTITY",
    "REMOVAL_UNAVAILABLE",
    "STORAGE_FAILURE",
    "AssistantRuntime",
    "StockAssistant",
    "build_runtime",
]
