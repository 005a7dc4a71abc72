from contextlib import asynccontextmanager
import logging

from tradescreen.lexicon import get_default_lexicon_store
from tradescreen.scoring import get_scoring_policy
from tradescreen.store import get_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app):
    # Bad scoring config or lexicon fails startup rather than the first assessment.
    policy = get_scoring_policy()
    lexicon_store = get_default_lexicon_store()
    store = get_store()
    logger.info(
        "screening_startup db=%s pass_threshold=%s trades=%s",
        store.db_path,
        policy.pass_threshold,
        len(getattr(lexicon_store, "categories", ())),
    )
    yield
    logger.info("screening_shutdown")
