"""Pydantic schemas shared by the dispatcher and the HTTP surface."""
from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class StockLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product: str
    quantity: int = Field(..., ge=0)


class IncomingMessage(BaseModel):
    user_id: int = Field(..., description="Stable sender identifier from the transport.")
    chat_id: int = Field(..., description="Conversation the reply goes to.")
    text: str


class Reply(BaseModel):
    """Transport neutral answer produced for one inbound message."""

    kind: Literal["text", "document", "photo"] = "text"
    text: str | None = None
    filename: str | None = None
    path: Path | None = None
    remove_after_send: bool = False

    @classmethod
    def message(cls, text: str) -> "Reply":
        return cls(kind="text", text=text)


class ReplyOut(BaseModel):
    kind: Literal["text", "document", "photo"]
    text: str | None = None
    filename: str | None = None
    content: str | None = Field(
        default=None, description="Report body for document replies."
    )


class HealthStatus(BaseModel):
    status: Literal["ok"] = "ok"
    environment: str


__all__ = [
    "StockLine",
    "IncomingMessage",
    "Reply",
    "ReplyOut",
    "HealthStatus",
]
