"""Exceptions raised by the assistant components.

Each one is caught by the dispatcher and turned into a short chat reply;
none of them is allowed to stop the message loop.
"""
from __future__ import annotations


class AssistantError(Exception):
    """Base class for all assistant failures."""


class ParseAmbiguous(AssistantError):
    """No command pattern matched; the message goes to the fallback path."""


class InvalidQuantity(AssistantError):
    """A quantity was captured but cannot be stored."""

    def __init__(self, text: str) -> None:
        super().__init__(f"Invalid quantity: {text!r}")
        self.text = text


class StorageError(AssistantError):
    """The ledger could not read or write the store."""


class BackendError(AssistantError):
    """The generative-text backend failed or answered with garbage."""


class EmptyGeneration(BackendError):
    """The backend answered successfully but without any generation."""


class AttachmentError(AssistantError):
    """A report or image could not be opened or delivered."""


__all__ = [
    "AssistantError",
    "ParseAmbiguous",
    "InvalidQuantity",
    "StorageError",
    "BackendError",
    "EmptyGeneration",
    "AttachmentError",
]
