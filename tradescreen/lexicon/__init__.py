from functools import lru_cache

from .local_lexicon import FALLBACK_CATEGORY, LocalLexiconStore
from .provider import LexiconStore, TradeLexicon


@lru_cache(maxsize=1)
def get_default_lexicon_store() -> LexiconStore:
    return LocalLexiconStore()


__all__ = [
    "FALLBACK_CATEGORY",
    "LexiconStore",
    "LocalLexiconStore",
    "TradeLexicon",
    "get_default_lexicon_store",
]
