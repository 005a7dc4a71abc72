from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from tradescreen.core.errors import DuplicateCandidateError, ReferentialError
from tradescreen.schemas.entities import Candidate, ScreeningStatus
from tradescreen.schemas.requests import CandidateCreateRequest, ConsentUpdateRequest
from tradescreen.store import ScreeningStore

from .notifications import NotificationService, make_notification, utc_now
from .orchestrator import append_hr_note

logger = logging.getLogger(__name__)


class CandidateService:
    def __init__(
        self,
        store: ScreeningStore,
        *,
        notifications: NotificationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.notifications = notifications or NotificationService(store)
        self._clock = clock

    def create(self, request: CandidateCreateRequest) -> Candidate:
        email = request.email.strip().lower()
        if self.store.get_candidate_by_email(email) is not None:
            raise DuplicateCandidateError(email)
        now = self._clock()
        candidate = Candidate(
            **request.model_dump(exclude={"consent_given"}),
            screening_status="invited",
            invited_at=now,
            consent_given=request.consent_given,
            consent_timestamp=now if request.consent_given else None,
        )
        self.store.insert_candidate(candidate)
        logger.info("candidate_created candidate=%s trade=%s", candidate.id, candidate.trade_category)
        return candidate

    def get(self, candidate_id: str) -> Candidate:
        candidate = self.store.get_candidate(candidate_id)
        if candidate is None:
            raise ReferentialError(f"Candidate {candidate_id} not found.")
        return candidate

    def get_by_email(self, email: str) -> Candidate:
        candidate = self.store.get_candidate_by_email(email)
        if candidate is None:
            raise ReferentialError(f"Candidate with email {email} not found.")
        return candidate

    def list_candidates(
        self,
        *,
        screening_status: ScreeningStatus | None = None,
        flagged: bool | None = None,
        limit: int = 50,
    ) -> list[Candidate]:
        return self.store.list_candidates(screening_status=screening_status, flagged=flagged, limit=limit)

    def flag(self, candidate_id: str, reason: str, hr_notes: str | None = None) -> Candidate:
        candidate = self.get(candidate_id)
        now = self._clock()
        note = f"FLAGGED: {reason}"
        if hr_notes:
            note = f"{note}\nNotes: {hr_notes}"
        alert = make_notification(
            "system_alert",
            "high",
            "Candidate flagged for review",
            f"{candidate.display_name} ({candidate.email}) has been flagged: {reason}",
            candidate_id=candidate.id,
            created_at=now,
        )
        flagged = self.store.mutate_candidate(
            candidate_id,
            lambda current: current.model_copy(
                update={
                    "flagged": True,
                    "flag_reason": reason,
                    "hr_notes": append_hr_note(current.hr_notes, note, now),
                    "last_contact_at": now,
                }
            ),
            [alert],
        )
        logger.info("candidate_flagged candidate=%s", candidate_id)
        self.notifications.deliver([alert])
        return flagged

    def unflag(self, candidate_id: str, resolution: str) -> Candidate:
        now = self._clock()
        cleared = self.store.mutate_candidate(
            candidate_id,
            lambda current: current.model_copy(
                update={
                    "flagged": False,
                    "flag_reason": None,
                    "hr_notes": append_hr_note(current.hr_notes, f"FLAG RESOLVED: {resolution}", now),
                    "last_contact_at": now,
                }
            ),
        )
        logger.info("candidate_unflagged candidate=%s", candidate_id)
        return cleared

    def add_notes(self, candidate_id: str, notes: str) -> Candidate:
        now = self._clock()
        return self.store.mutate_candidate(
            candidate_id,
            lambda current: current.model_copy(
                update={"hr_notes": append_hr_note(current.hr_notes, notes, now), "last_contact_at": now}
            ),
        )

    def update_consent(self, candidate_id: str, request: ConsentUpdateRequest) -> Candidate:
        now = self._clock()
        return self.store.mutate_candidate(
            candidate_id,
            lambda current: current.model_copy(
                update={
                    "consent_given": request.consent_given,
                    "consent_timestamp": now if request.consent_given else current.consent_timestamp,
                    "gdpr_consent": request.gdpr_consent,
                    "last_contact_at": now,
                }
            ),
        )

    def set_screening_status(
        self,
        candidate_id: str,
        screening_status: ScreeningStatus,
        notes: str | None = None,
    ) -> Candidate:
        """HR override of the screening status; automated scoring never calls this."""
        now = self._clock()

        def change(current: Candidate) -> Candidate:
            hr_notes = current.hr_notes
            if notes:
                hr_notes = append_hr_note(hr_notes, f"STATUS {screening_status.upper()}: {notes}", now)
            return current.model_copy(
                update={"screening_status": screening_status, "hr_notes": hr_notes, "last_contact_at": now}
            )

        updated = self.store.mutate_candidate(candidate_id, change)
        logger.info("candidate_status_set candidate=%s status=%s", candidate_id, screening_status)
        return updated

    def soft_delete(self, candidate_id: str, reason: str) -> Candidate:
        """Mark a candidate for deletion; the record stays for the audit trail."""
        now = self._clock()
        updated = self.store.mutate_candidate(
            candidate_id,
            lambda current: current.model_copy(
                update={
                    "flagged": True,
                    "flag_reason": f"DELETION REQUESTED: {reason}",
                    "screening_status": "pending_review",
                    "last_contact_at": now,
                }
            ),
        )
        logger.info("candidate_deletion_requested candidate=%s", candidate_id)
        return updated
