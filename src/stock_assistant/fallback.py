"""Generative-text fallback for messages that carry no command."""
from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from .config import Settings
from .errors import BackendError, EmptyGeneration

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Hubo un error al procesar tu solicitud."
EMPTY_RESPONSE = "No recibí ninguna respuesta."

PROMPT_TEMPLATE = (
    "El usuario dice: '{message}'. Responde como un bot que le maneja un stock de "
    "productos unico a ese usuario especifico. Debes dar respuestas cortas y concisas"
)


def build_prompt(message: str) -> str:
    return PROMPT_TEMPLATE.format(message=message)


def _extract_generate(data: Dict[str, Any]) -> str:
    generations = data["generations"]
    if not generations:
        raise EmptyGeneration("Backend returned no generations")
    return generations[0]["text"]


def _extract_chat(data: Dict[str, Any]) -> str:
    choices = data["choices"]
    if not choices:
        raise EmptyGeneration("Backend returned no choices")
    choice = choices[0]
    if "text" in choice:
        return choice["text"]
    return choice["message"]["content"]


class FallbackResponder:
    """Delegate free text to the generative backend.

    ``respond`` never raises: every failure is logged with its cause and
    answered with a fixed apology.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        api_key: str,
        url: str,
        model: str,
        max_tokens: int = 100,
        backend: str = "generate",
    ) -> None:
        self.client = client
        self.api_key = api_key
        self.url = url
        self.model = model
        self.max_tokens = max_tokens
        self.backend = backend

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.AsyncClient) -> "FallbackResponder":
        return cls(
            client,
            api_key=settings.cohere_api_key,
            url=settings.generation_url,
            model=settings.generation_model,
            max_tokens=settings.generation_max_tokens,
            backend=settings.generation_backend,
        )

    def _payload(self, prompt: str) -> Dict[str, Any]:
        if self.backend == "chat":
            return {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": self.max_tokens,
            }
        return {"model": self.model, "prompt": prompt, "max_tokens": self.max_tokens}

    async def generate(self, prompt: str) -> str:
        """Call the backend and return its first generation.

        Raises :class:`BackendError` (or :class:`EmptyGeneration`) on failure.
        """

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            response = await self.client.post(self.url, json=self._payload(prompt), headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Request to the generative backend failed: %s", exc)
            raise BackendError("Request failed") from exc

        if response.status_code != httpx.codes.OK:
            logger.error(
                "Generative backend answered %s: %s", response.status_code, response.text
            )
            raise BackendError(f"Unexpected status {response.status_code}")

        try:
            data = response.json()
            if self.backend == "chat":
                return _extract_chat(data)
            return _extract_generate(data)
        except EmptyGeneration:
            logger.warning("Generative backend returned an empty result list.")
            raise
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            logger.error("Could not decode the generative backend response: %s", exc)
            raise BackendError("Malformed response") from exc

    async def respond(self, message: str) -> str:
        try:
            return await self.generate(build_prompt(message))
        except EmptyGeneration:
            return EMPTY_RESPONSE
        except BackendError:
            return GENERIC_FAILURE


__all__ = [
    "EMPTY_RESPONSE",
    "GENERIC_FAILURE",
    "FallbackResponder",
    "build_prompt",
]
