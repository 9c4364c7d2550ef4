"""Conversational stock assistant package."""
from __future__ import annotations

from .intents import Intent, IntentParser, SynonymTable

__all__ = ["create_app", "Intent", "IntentParser", "SynonymTable"]


def create_app(*args, **kwargs):
    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)
