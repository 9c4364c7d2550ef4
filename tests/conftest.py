from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from stock_assistant.api import create_app
from stock_assistant.assistant import AssistantRuntime, StockAssistant, build_runtime
from stock_assistant.config import Settings
from stock_assistant.database import create_session_factory
from stock_assistant.export import StockExporter
from stock_assistant.ledger import StockLedger
from stock_assistant.management import init_database

BackendHandler = Callable[[httpx.Request], httpx.Response]


class BackendStub:
    """Programmable generative backend served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: BackendHandler = lambda request: httpx.Response(
            200, json={"generations": [{"text": "Respuesta generada"}]}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def payloads(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        telegram_bot_token="123:test-token",
        cohere_api_key="test-key",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        environment="test",
        app_name="Test Stock Assistant",
        export_dir=tmp_path / "exports",
        image_path=tmp_path / "sorpresa.jpg",
    )


@pytest.fixture()
async def engine(settings: Settings) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(settings.database_url, echo=False)
    await init_database(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def ledger(engine: AsyncEngine) -> StockLedger:
    return StockLedger(create_session_factory(engine))


@pytest.fixture()
def exporter(ledger: StockLedger, settings: Settings) -> StockExporter:
    return StockExporter(ledger, settings.export_dir)


@pytest.fixture()
def backend() -> BackendStub:
    return BackendStub()


@pytest.fixture()
async def runtime(
    settings: Settings, engine: AsyncEngine, backend: BackendStub
) -> AsyncIterator[AssistantRuntime]:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(backend))
    runtime = build_runtime(settings, engine=engine, http_client=http_client)
    yield runtime
    await http_client.aclose()


@pytest.fixture()
def assistant(runtime: AssistantRuntime) -> StockAssistant:
    return runtime.assistant


@pytest.fixture()
def app(settings: Settings, runtime: AssistantRuntime) -> FastAPI:
    return create_app(settings, runtime)


@pytest.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
