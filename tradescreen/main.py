import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from tradescreen.api.v1.assessments import router as assessments_router
from tradescreen.api.v1.candidates import router as candidates_router
from tradescreen.api.v1.health import router as health_router
from tradescreen.api.v1.notifications import router as notifications_router
from tradescreen.api.v1.sessions import router as sessions_router
from tradescreen.api.v1.vendor import router as vendor_router
from tradescreen.core.config import settings
from tradescreen.core.lifespan import lifespan
from tradescreen.core.rate_limit import limiter

logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s %(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Trade Screening Assessment API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(candidates_router, prefix="/v1", tags=["Candidates"])
app.include_router(sessions_router, prefix="/v1", tags=["Sessions"])
app.include_router(assessments_router, prefix="/v1", tags=["Assessments"])
app.include_router(vendor_router, prefix="/v1", tags=["Vendor"])
app.include_router(notifications_router, prefix="/v1", tags=["Notifications"])
