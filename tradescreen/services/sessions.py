from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable

from tradescreen.core.errors import ReferentialError, SessionStateError
from tradescreen.schemas.assessment import Assessment
from tradescreen.schemas.entities import Candidate, ScreeningStatus, Session, SessionErrorRecord, SessionStatus
from tradescreen.schemas.requests import SessionAnalyticsSummary, SessionDataUpdateRequest
from tradescreen.schemas.transcript import TranscriptEntry
from tradescreen.store import ScreeningStore, SessionTransition

from .notifications import NotificationService, make_notification, utc_now
from .orchestrator import AssessmentOrchestrator, append_hr_note

logger = logging.getLogger(__name__)

# Allowed moves of the session lifecycle; created -> completed only via vendor finalization.
_TRANSITIONS: dict[str, frozenset[str]] = {
    "created": frozenset({"active", "failed", "abandoned"}),
    "active": frozenset({"completed", "failed", "abandoned"}),
    "completed": frozenset(),
    "failed": frozenset(),
    "abandoned": frozenset(),
}

# Where the candidate ends up when a session reaches each status.
CANDIDATE_STATUS_FOR_SESSION: dict[str, ScreeningStatus] = {
    "created": "in_progress",
    "completed": "completed",
    "abandoned": "invited",
    "failed": "pending_review",
}

ANALYTICS_WINDOW_DAYS = 30
_ANALYTICS_SCAN_LIMIT = 5000


def _duration(start: datetime | None, end: datetime | None) -> float | None:
    if start is None or end is None:
        return None
    return max(0.0, (end - start).total_seconds())


class SessionService:
    def __init__(
        self,
        store: ScreeningStore,
        orchestrator: AssessmentOrchestrator,
        *,
        notifications: NotificationService | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.orchestrator = orchestrator
        self.notifications = notifications or orchestrator.notifications
        self._clock = clock

    def get(self, session_id: str) -> Session:
        session = self.store.get_session(session_id)
        if session is None:
            raise ReferentialError(f"Session {session_id} not found.")
        return session

    def _candidate(self, candidate_id: str) -> Candidate:
        candidate = self.store.get_candidate(candidate_id)
        if candidate is None:
            raise ReferentialError(f"Candidate {candidate_id} not found.")
        return candidate

    @staticmethod
    def _check_transition(session: Session, target: SessionStatus) -> None:
        if target not in _TRANSITIONS[session.status]:
            raise SessionStateError(f"Session {session.id} cannot move from {session.status} to {target}.")

    @staticmethod
    def _candidate_after(candidate: Candidate, status: str, now: datetime) -> Candidate:
        return candidate.model_copy(
            update={"screening_status": CANDIDATE_STATUS_FOR_SESSION[status], "last_contact_at": now}
        )

    def create(self, candidate_id: str, external_session_id: str | None = None) -> Session:
        candidate = self._candidate(candidate_id)
        session = Session(candidate_id=candidate.id, external_session_id=external_session_id, created_at=self._clock())
        self.store.insert_session(session, CANDIDATE_STATUS_FOR_SESSION["created"])
        logger.info("session_created session=%s candidate=%s", session.id, candidate.id)
        return session

    def start(self, session_id: str, external_session_id: str | None = None) -> Session:
        now = self._clock()

        def change(session: Session) -> Session:
            self._check_transition(session, "active")
            update: dict = {"status": "active", "start_time": now}
            if external_session_id:
                update["external_session_id"] = external_session_id
            return session.model_copy(update=update)

        started = self.store.mutate_session(session_id, change)
        logger.info("session_started session=%s", session_id)
        return started

    def append_transcripts(self, session_id: str, entries: Iterable[TranscriptEntry]) -> Session:
        incoming = list(entries)

        def change(session: Session) -> Session:
            if session.status != "active":
                raise SessionStateError(
                    f"Session {session_id} is {session.status}; transcripts are accepted only while active."
                )
            return session.model_copy(update={"transcripts": [*session.transcripts, *incoming]})

        updated = self.store.mutate_session(session_id, change)
        logger.debug("session_transcripts_appended session=%s count=%s", session_id, len(incoming))
        return updated

    def update_data(self, session_id: str, request: SessionDataUpdateRequest) -> Session:
        if request.connection_quality is None and request.recording_url is None and request.error is None:
            return self.get(session_id)

        def change(session: Session) -> Session:
            update: dict = {}
            if request.connection_quality is not None:
                update["connection_quality"] = request.connection_quality
            if request.recording_url is not None:
                update["recording_url"] = request.recording_url
            if request.error is not None:
                update["errors"] = [*session.errors, request.error]
            return session.model_copy(update=update)

        return self.store.mutate_session(session_id, change)

    def complete(self, session_id: str) -> tuple[Session, Assessment | None]:
        """Complete an active session, then run the automatic assessment trigger."""
        now = self._clock()

        def change(session: Session, candidate: Candidate) -> SessionTransition:
            self._check_transition(session, "completed")
            completed = Session.model_validate(
                {
                    **session.model_dump(),
                    "status": "completed",
                    "end_time": now,
                    "duration_seconds": _duration(session.start_time, now),
                }
            )
            return SessionTransition(completed, self._candidate_after(candidate, "completed", now))

        completed = self.store.transition_session(session_id, change).session
        logger.info("session_completed session=%s duration=%s", session_id, completed.duration_seconds)
        assessment = self.orchestrator.maybe_auto_evaluate(completed)
        return completed, assessment

    def finalize_external(
        self,
        session_id: str,
        transcripts: list[TranscriptEntry],
        *,
        call_id: str | None = None,
        recording_url: str | None = None,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
    ) -> Session:
        """Replace the transcript with the vendor's record and close the session if still open.

        Raises ``DuplicateAssessmentError`` without writing anything once the
        session has been assessed, so the scored transcript stays as it was.
        """
        now = self._clock()

        def change(session: Session, candidate: Candidate) -> SessionTransition:
            update: dict = {"transcripts": transcripts}
            if call_id:
                update["external_session_id"] = call_id
            if recording_url:
                update["recording_url"] = recording_url
            if session.is_terminal:
                return SessionTransition(Session.model_validate({**session.model_dump(), **update}))
            start = session.start_time or started_at
            end = ended_at or now
            if start is not None and end < start:
                end = start
            update.update(
                {
                    "status": "completed",
                    "start_time": start,
                    "end_time": end,
                    "duration_seconds": _duration(start, end),
                }
            )
            finalized = Session.model_validate({**session.model_dump(), **update})
            return SessionTransition(finalized, self._candidate_after(candidate, "completed", now))

        finalized = self.store.transition_session(session_id, change, unassessed_only=True).session
        logger.info(
            "session_finalized_external session=%s status=%s transcripts=%s",
            session_id,
            finalized.status,
            len(transcripts),
        )
        return finalized

    def end(self, session_id: str, status: SessionStatus, reason: str, error_code: str | None = None) -> Session:
        """Move a session to failed or abandoned; neither outcome is ever scored."""
        if status not in ("failed", "abandoned"):
            raise SessionStateError(f"Unsupported end status {status}.")
        now = self._clock()

        def change(session: Session, candidate: Candidate) -> SessionTransition:
            self._check_transition(session, status)
            errors = list(session.errors)
            if status == "failed":
                errors.append(SessionErrorRecord(code=error_code or "session_failed", message=reason, timestamp=now))
            ended = Session.model_validate(
                {
                    **session.model_dump(),
                    "status": status,
                    "end_time": now,
                    "duration_seconds": _duration(session.start_time, now),
                    "errors": [error.model_dump() for error in errors],
                }
            )
            if status == "abandoned":
                notification = make_notification(
                    "session_abandoned",
                    "low",
                    "Interview abandoned",
                    f"{candidate.display_name} left the interview before it finished: {reason}",
                    candidate_id=candidate.id,
                    session_id=session.id,
                    created_at=now,
                )
            else:
                notification = make_notification(
                    "technical_issue",
                    "high",
                    "Interview failed",
                    f"Interview for {candidate.display_name} failed: {reason}",
                    candidate_id=candidate.id,
                    session_id=session.id,
                    data={"error_code": error_code} if error_code else None,
                    created_at=now,
                )
            return SessionTransition(ended, self._candidate_after(candidate, status, now), (notification,))

        result = self.store.transition_session(session_id, change)
        logger.info("session_ended session=%s status=%s reason=%s", session_id, status, reason)
        self.notifications.deliver(result.notifications)
        return result.session

    def add_hr_notes(self, session_id: str, notes: str) -> Session:
        now = self._clock()
        return self.store.mutate_session(
            session_id,
            lambda session: session.model_copy(
                update={"hr_notes": append_hr_note(session.hr_notes, notes, now), "hr_monitored": True}
            ),
        )

    def list_sessions(
        self,
        *,
        status: SessionStatus | None = None,
        candidate_id: str | None = None,
        limit: int = 50,
    ) -> list[Session]:
        return self.store.list_sessions(status=status, candidate_id=candidate_id, limit=limit)

    def analytics(
        self,
        *,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        trade_category: str | None = None,
    ) -> SessionAnalyticsSummary:
        date_to = date_to or self._clock()
        date_from = date_from or (date_to - timedelta(days=ANALYTICS_WINDOW_DAYS))
        sessions = [
            session
            for session in self.store.list_sessions(limit=_ANALYTICS_SCAN_LIMIT)
            if date_from <= (session.start_time or session.created_at) <= date_to
        ]
        if trade_category:
            trade_of: dict[str, str | None] = {}
            for session in sessions:
                if session.candidate_id not in trade_of:
                    candidate = self.store.get_candidate(session.candidate_id)
                    trade_of[session.candidate_id] = candidate.trade_category if candidate else None
            sessions = [session for session in sessions if trade_of[session.candidate_id] == trade_category]

        status_counts = {status: 0 for status in _TRANSITIONS}
        daily_counts: dict[str, int] = {}
        for session in sessions:
            status_counts[session.status] += 1
            day = (session.start_time or session.created_at).date().isoformat()
            daily_counts[day] = daily_counts.get(day, 0) + 1

        total = len(sessions)
        durations = [session.duration_seconds for session in sessions if session.duration_seconds]
        avg_duration = sum(durations) / len(durations) if durations else 0.0
        return SessionAnalyticsSummary(
            total_sessions=total,
            completed_sessions=status_counts["completed"],
            abandoned_sessions=status_counts["abandoned"],
            failed_sessions=status_counts["failed"],
            completion_rate=round(status_counts["completed"] / total * 100, 2) if total else 0.0,
            abandonment_rate=round(status_counts["abandoned"] / total * 100, 2) if total else 0.0,
            avg_duration_minutes=round(avg_duration / 60, 2),
            status_counts=status_counts,
            daily_counts=daily_counts,
        )
