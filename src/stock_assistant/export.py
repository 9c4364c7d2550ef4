"""Flat text export of a user's stock."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import suppress
from collections.abc import Iterable
from pathlib import Path

from .errors import AttachmentError
from .ledger import StockLedger
from .schemas import StockLine

logger = logging.getLogger(__name__)


def render_report(lines: Iterable[StockLine]) -> bytes:
    """Render one ``"<product>: <quantity>"`` line per entry."""

    return "".join(f"{line.product}: {line.quantity}\n" for line in lines).encode("utf-8")


def report_filename(user_id: int) -> str:
    return f"stock_{user_id}.txt"


def _write_atomically(target: Path, content: bytes) -> None:
    temp_path = target.with_suffix(".tmp")
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        temp_path.write_bytes(content)
        temp_path.replace(target)
    except OSError:
        with suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


class StockExporter:
    def __init__(self, ledger: StockLedger, export_dir: str | Path) -> None:
        self.ledger = ledger
        self.export_dir = Path(export_dir)

    def artifact_path(self, user_id: int) -> Path:
        return self.export_dir / report_filename(user_id)

    async def render(self, user_id: int) -> bytes:
        lines = await self.ledger.list_entries(user_id)
        return render_report(lines)

    async def export(self, user_id: int) -> Path:
        """Write the user's report and return the artifact path.

        The whole listing is fetched before anything touches disk and the
        file is swapped in atomically, so a failed export never leaves a
        truncated report behind. A stale artifact for the same user is
        overwritten.
        """

        content = await self.render(user_id)
        target = self.artifact_path(user_id)
        try:
            await asyncio.to_thread(_write_atomically, target, content)
        except OSError as exc:
            logger.error("Could not write the stock report for user %s: %s", user_id, exc)
            raise AttachmentError(f"Export failed for user {user_id}") from exc
        return target

    @staticmethod
    def discard(path: str | Path) -> None:
        """Remove a delivered artifact; failures are only logged."""

        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("Could not remove export artifact %s: %s", path, exc)


__all__ = ["StockExporter", "render_report", "report_filename"]
