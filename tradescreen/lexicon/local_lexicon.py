from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

from .provider import TradeLexicon

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "general"
_TIERS = ("primary", "secondary", "safety")


class LocalLexiconStore:
    def __init__(
        self,
        lexicon_path: str | Path | None = None,
        *,
        tables: Mapping[str, Mapping[str, Any]] | None = None,
    ) -> None:
        if tables is None:
            path = Path(lexicon_path) if lexicon_path else Path(__file__).with_name("lexicon.json")
            tables = self._load_tables(path)
        self._lexicons = self._build(tables)
        if FALLBACK_CATEGORY not in self._lexicons:
            raise ValueError(f"Lexicon must define a '{FALLBACK_CATEGORY}' category.")

    @staticmethod
    def _load_tables(path: Path) -> dict[str, Any]:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    @staticmethod
    def _build(tables: Mapping[str, Mapping[str, Any]]) -> dict[str, TradeLexicon]:
        lexicons: dict[str, TradeLexicon] = {}
        for category, tiers in tables.items():
            key = str(category).strip().lower()
            terms = {
                tier: tuple(str(term).strip().lower() for term in tiers.get(tier, []) if str(term).strip())
                for tier in _TIERS
            }
            lexicons[key] = TradeLexicon(category=key, **terms)
        return lexicons

    @property
    def categories(self) -> tuple[str, ...]:
        return tuple(sorted(self._lexicons))

    def resolve(self, trade_category: str | None) -> TradeLexicon:
        key = (trade_category or "").strip().lower()
        lexicon = self._lexicons.get(key)
        if lexicon is None:
            logger.debug("lexicon_fallback category=%r resolved=%s", trade_category, FALLBACK_CATEGORY)
            return self._lexicons[FALLBACK_CATEGORY]
        return lexicon
