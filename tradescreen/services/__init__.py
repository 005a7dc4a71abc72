from functools import lru_cache

from tradescreen.store import get_store

from .candidates import CandidateService
from .notifications import NotificationService
from .orchestrator import AssessmentOrchestrator
from .sessions import SessionService
from .vendor import VapiClient, VendorService


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    return NotificationService(get_store())


@lru_cache(maxsize=1)
def get_orchestrator() -> AssessmentOrchestrator:
    return AssessmentOrchestrator(get_store(), notifications=get_notification_service())


@lru_cache(maxsize=1)
def get_session_service() -> SessionService:
    return SessionService(get_store(), get_orchestrator())


@lru_cache(maxsize=1)
def get_candidate_service() -> CandidateService:
    return CandidateService(get_store(), notifications=get_notification_service())


@lru_cache(maxsize=1)
def get_vendor_service() -> VendorService:
    return VendorService(get_session_service(), get_orchestrator())


__all__ = [
    "AssessmentOrchestrator",
    "CandidateService",
    "NotificationService",
    "SessionService",
    "VapiClient",
    "VendorService",
    "get_candidate_service",
    "get_notification_service",
    "get_orchestrator",
    "get_session_service",
    "get_vendor_service",
]
