from functools import lru_cache

from tradescreen.core.config import settings

from .db import ScreeningStore, SessionTransition


@lru_cache(maxsize=1)
def get_store() -> ScreeningStore:
    return ScreeningStore(settings.screening_db_path)


__all__ = ["ScreeningStore", "SessionTransition", "get_store"]
