"""FastAPI router configuration."""
from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Sequence

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status

from . import schemas
from .assistant import ATTACHMENT_FAILURE, AssistantRuntime, StockAssistant, build_runtime
from .config import Settings, get_settings
from .errors import StorageError
from .export import StockExporter, report_filename

router = APIRouter()


def provide_settings() -> Settings:
    """Dependency returning the active :class:`Settings` instance."""

    return get_settings()


def provide_assistant(request: Request) -> StockAssistant:
    return request.app.state.runtime.assistant


@router.get("/health", response_model=schemas.HealthStatus, tags=["system"])
async def health_check(settings: Settings = Depends(provide_settings)) -> schemas.HealthStatus:
    return schemas.HealthStatus(environment=settings.environment)


@router.post("/messages", response_model=schemas.ReplyOut)
async def post_message(
    payload: schemas.IncomingMessage,
    assistant: StockAssistant = Depends(provide_assistant),
) -> schemas.ReplyOut:
    reply = await assistant.handle(payload)
    if reply.kind != "document" or reply.path is None:
        return schemas.ReplyOut(kind=reply.kind, text=reply.text, filename=reply.filename)

    try:
        content = reply.path.read_text(encoding="utf-8")
    except OSError:
        return schemas.ReplyOut(kind="text", text=ATTACHMENT_FAILURE)
    finally:
        if reply.remove_after_send:
            StockExporter.discard(reply.path)
    return schemas.ReplyOut(kind="document", filename=reply.filename, content=content)


@router.get("/users/{user_id}/stock", response_model=list[schemas.StockLine])
async def list_stock(
    user_id: int, assistant: StockAssistant = Depends(provide_assistant)
) -> Sequence[schemas.StockLine]:
    try:
        return await assistant.ledger.list_entries(user_id)
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stock is temporarily unavailable.",
        ) from exc


@router.get("/users/{user_id}/stock/export")
async def export_stock(
    user_id: int, assistant: StockAssistant = Depends(provide_assistant)
) -> Response:
    try:
        content = await assistant.exporter.render(user_id)
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stock is temporarily unavailable.",
        ) from exc
    return Response(
        content=content,
        media_type="text/plain; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={report_filename(user_id)}"},
    )


@router.get("/users/{user_id}/stock/{product}", response_model=schemas.StockLine)
async def get_stock_line(
    user_id: int, product: str, assistant: StockAssistant = Depends(provide_assistant)
) -> schemas.StockLine:
    try:
        quantity = await assistant.ledger.get_quantity(user_id, product)
    except StorageError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Stock is temporarily unavailable.",
        ) from exc
    if quantity is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Product {product!r} not found for user {user_id}",
        )
    return schemas.StockLine(product=product, quantity=quantity)


def create_app(
    settings: Settings | None = None, runtime: AssistantRuntime | None = None
) -> FastAPI:
    settings = settings or get_settings()
    runtime = runtime or build_runtime(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await runtime.start()
        try:
            yield
        finally:
            await runtime.aclose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.runtime = runtime
    app.dependency_overrides[provide_settings] = lambda: settings
    app.include_router(router)
    return app


__all__ = ["create_app"]
