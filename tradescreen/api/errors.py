from contextlib import contextmanager
import logging

from fastapi import HTTPException

from tradescreen.core.errors import ScreeningError

logger = logging.getLogger(__name__)


def raise_screening_error(exc: ScreeningError) -> None:
    if exc.status_code >= 500:
        logger.error("screening_error code=%s status=%s: %s", exc.code, exc.status_code, exc)
    raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc


@contextmanager
def screening_errors():
    try:
        yield
    except ScreeningError as exc:
        raise_screening_error(exc)
