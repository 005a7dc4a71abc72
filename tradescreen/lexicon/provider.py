from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class TradeLexicon:
    category: str
    primary: tuple[str, ...]
    secondary: tuple[str, ...]
    safety: tuple[str, ...]


class LexiconStore(Protocol):
    def resolve(self, trade_category: str | None) -> TradeLexicon:
        """Return the keyword tiers for a trade, falling back to the general lexicon."""
