from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from stock_assistant import export as export_module
from stock_assistant.errors import AttachmentError, StorageError
from stock_assistant.export import StockExporter, render_report, report_filename
from stock_assistant.ledger import StockLedger
from stock_assistant.schemas import StockLine


def test_render_report_writes_one_line_per_product() -> None:
    content = render_report(
        [StockLine(product="arroz", quantity=2), StockLine(product="fideos", quantity=1)]
    )
    assert content == b"arroz: 2\nfideos: 1\n"


def test_render_report_of_empty_stock_is_empty() -> None:
    assert render_report([]) == b""


async def test_export_round_trip(ledger: StockLedger, exporter: StockExporter) -> None:
    await ledger.upsert(1, "arroz", 2)
    await ledger.upsert(1, "fideos", 1)
    await ledger.upsert(2, "pan", 9)

    path = await exporter.export(1)

    assert path.name == report_filename(1) == "stock_1.txt"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert sorted(lines) == ["arroz: 2", "fideos: 1"]


async def test_export_overwrites_stale_artifact(
    ledger: StockLedger, exporter: StockExporter
) -> None:
    stale = exporter.artifact_path(1)
    stale.parent.mkdir(parents=True, exist_ok=True)
    stale.write_text("viejo: 100\nviejo: 200\n", encoding="utf-8")
    await ledger.upsert(1, "pan", 3)

    path = await exporter.export(1)

    assert path == stale
    assert path.read_text(encoding="utf-8") == "pan: 3\n"
    assert not path.with_suffix(".tmp").exists()


async def test_artifacts_are_per_user(exporter: StockExporter) -> None:
    assert exporter.artifact_path(1) != exporter.artifact_path(2)
    assert exporter.artifact_path(1) == exporter.artifact_path(1)


async def test_failed_listing_writes_nothing(exporter: StockExporter, monkeypatch) -> None:
    async def broken_listing(user_id: int):
        raise StorageError("connection lost")

    monkeypatch.setattr(exporter.ledger, "list_entries", broken_listing)

    with pytest.raises(StorageError):
        await exporter.export(1)
    assert not exporter.artifact_path(1).exists()


def test_discard_removes_and_tolerates_missing(tmp_path: Path) -> None:
    artifact = tmp_path / "stock_1.txt"
    artifact.write_text("pan: 1\n", encoding="utf-8")

    StockExporter.discard(artifact)
    assert not artifact.exists()
    StockExporter.discard(artifact)


async def test_report_is_written_off_the_event_loop(
    ledger: StockLedger, exporter: StockExporter, monkeypatch
) -> None:
    calls = []
    real_to_thread = asyncio.to_thread

    async def recording_to_thread(func, *args):
        calls.append(func.__name__)
        return await real_to_thread(func, *args)

    await ledger.upsert(1, "pan", 1)
    monkeypatch.setattr(export_module.asyncio, "to_thread", recording_to_thread)

    path = await exporter.export(1)

    assert calls == ["_write_atomically"]
    assert path.read_text(encoding="utf-8") == "pan: 1\n"


async def test_unwritable_export_dir_raises_attachment_error(
    ledger: StockLedger, tmp_path: Path
) -> None:
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")
    exporter = StockExporter(ledger, blocker)
    await ledger.upsert(1, "pan", 1)

    with pytest.raises(AttachmentError):
        await exporter.export(1)
    assert blocker.read_text(encoding="utf-8") == "not a directory"
