"""Rule based interpretation of chat messages.

A message such as ``"por favor agregar 3 leche"`` is reduced to an
:class:`Intent` carrying the canonical action, the captured quantity text
and the product label. Matching is plain keyword scanning: the first
occurrence of ``agregar`` or ``quitar`` anywhere in the lowercased message
wins, optionally followed by ASCII digits and then by the rest of the line,
which becomes the product. Verb variants such as ``añadime`` are not
matched; the synonym table only normalizes the captured keyword.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Tuple

from .errors import InvalidQuantity, ParseAmbiguous

ADD = "agregar"
REMOVE = "quitar"

DEFAULT_KEYWORDS: Tuple[str, ...] = (ADD, REMOVE)

# Upper bound of the ledger's integer quantity column.
MAX_QUANTITY = 2_147_483_647

DEFAULT_SYNONYMS: Mapping[str, str] = MappingProxyType(
    {
        "agregar": ADD,
        "agregame": ADD,
        "añadime": ADD,
        "añadir": ADD,
        "sumar": ADD,
        "quitar": REMOVE,
        "eliminar": REMOVE,
        "borrar": REMOVE,
    }
)


@dataclass(frozen=True)
class SynonymTable:
    """Immutable mapping from verb variants to canonical actions."""

    mapping: Mapping[str, str]

    def __post_init__(self) -> None:
        frozen = MappingProxyType(
            {variant.lower(): action.lower() for variant, action in self.mapping.items()}
        )
        object.__setattr__(self, "mapping", frozen)

    @classmethod
    def default(cls) -> "SynonymTable":
        return cls(DEFAULT_SYNONYMS)

    def normalize(self, token: str) -> str:
        """Return the canonical action for ``token`` or ``token`` unchanged."""

        return self.mapping.get(token.lower(), token)


def resolve_quantity(text: Optional[str]) -> int:
    """Convert captured quantity text, defaulting to one when absent."""

    if not text:
        return 1
    try:
        value = int(text)
    except ValueError:
        raise InvalidQuantity(text) from None
    if value < 0 or value > MAX_QUANTITY:
        raise InvalidQuantity(text)
    return value


@dataclass(frozen=True)
class Intent:
    keyword: str
    action: str
    quantity_text: Optional[str]
    product: str

    @property
    def quantity(self) -> int:
        return resolve_quantity(self.quantity_text)


class IntentParser:
    """Extract ``(action, quantity, product)`` from free text."""

    def __init__(
        self,
        synonyms: SynonymTable | None = None,
        keywords: Iterable[str] = DEFAULT_KEYWORDS,
    ) -> None:
        self.synonyms = synonyms or SynonymTable.default()
        self.keywords = tuple(word.lower() for word in keywords)
        alternation = "|".join(re.escape(word) for word in self.keywords)
        self._pattern = re.compile(rf"({alternation})\s*([0-9]+)?\s*(.*)", re.IGNORECASE)

    def parse(self, text: str) -> Intent:
        """Return the first intent found in ``text``.

        Raises :class:`ParseAmbiguous` when no action keyword occurs at all.
        The product is kept exactly as captured, so it may be empty and it
        swallows any non-digit text following the keyword
        (``"agregar abc leche"`` yields the product ``"abc leche"``).
        """

        match = self._pattern.search(text.lower())
        if match is None:
            raise ParseAmbiguous(text)
        keyword, quantity_text, product = match.groups()
        return Intent(
            keyword=keyword,
            action=self.synonyms.normalize(keyword),
            quantity_text=quantity_text,
            product=product,
        )


__all__ = [
    "ADD",
    "REMOVE",
    "MAX_QUANTITY",
    "DEFAULT_KEYWORDS",
    "DEFAULT_SYNONYMS",
    "Intent",
    "IntentParser",
    "SynonymTable",
    "resolve_quantity",
]
