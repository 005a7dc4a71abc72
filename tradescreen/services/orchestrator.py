from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from tradescreen.core.config import settings
from tradescreen.core.errors import (
    DuplicateAssessmentError,
    InsufficientDataError,
    ReferentialError,
    ScreeningError,
    SessionStateError,
)
from tradescreen.lexicon import LexiconStore, get_default_lexicon_store
from tradescreen.schemas.assessment import (
    AIInsights,
    Assessment,
    AssessmentScores,
    CommunicationScores,
    ExperienceScores,
    SafetyScores,
    ScoringMode,
    TechnicalScores,
)
from tradescreen.schemas.entities import Candidate, Session
from tradescreen.schemas.notification import Notification
from tradescreen.schemas.requests import (
    AssessmentOverrideRequest,
    ManualAssessmentRequest,
    PendingSweepResponse,
)
from tradescreen.scoring import (
    ScoringPolicy,
    build_assessment,
    evaluate_transcript,
    get_scoring_policy,
    normalize_transcript,
)
from tradescreen.store import ScreeningStore

from .notifications import NotificationService, make_notification, utc_now

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_FLAG = "Insufficient interview data for automated assessment"


def append_hr_note(existing: str | None, note: str, timestamp: datetime) -> str:
    entry = f"[{timestamp.isoformat()}] {note}"
    return f"{existing}\n\n{entry}" if existing else entry


def final_response_count(session: Session) -> int:
    transcript = normalize_transcript(session.transcripts)
    return sum(1 for text in transcript.candidate_utterances if text.strip())


class AssessmentOrchestrator:
    """Turns a completed session into exactly one persisted assessment.

    The fast-path lookup rejects most repeats; the store's unique index on
    the session id is what settles concurrent triggers, and the loser gets
    ``DuplicateAssessmentError`` like any other repeat.
    """

    def __init__(
        self,
        store: ScreeningStore,
        *,
        lexicon_store: LexiconStore | None = None,
        policy: ScoringPolicy | None = None,
        notifications: NotificationService | None = None,
        auto_evaluate_enabled: bool | None = None,
        auto_evaluate_min_exchanges: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.lexicon_store = lexicon_store or get_default_lexicon_store()
        self.policy = policy or get_scoring_policy()
        self.notifications = notifications or NotificationService(store)
        self.auto_evaluate_enabled = (
            settings.auto_evaluate_enabled if auto_evaluate_enabled is None else auto_evaluate_enabled
        )
        self.auto_evaluate_min_exchanges = (
            settings.auto_evaluate_min_exchanges
            if auto_evaluate_min_exchanges is None
            else auto_evaluate_min_exchanges
        )
        self._clock = clock

    def _load(self, session_id: str) -> tuple[Session, Candidate]:
        session = self.store.get_session(session_id)
        if session is None:
            raise ReferentialError(f"Session {session_id} not found.")
        candidate = self.store.get_candidate(session.candidate_id)
        if candidate is None:
            raise ReferentialError(f"Candidate {session.candidate_id} not found for session {session_id}.")
        return session, candidate

    def _guard_not_assessed(self, session_id: str) -> None:
        if self.store.get_assessment_by_session(session_id) is not None:
            raise DuplicateAssessmentError(session_id)

    def evaluate_session(
        self,
        session_id: str,
        *,
        force: bool = False,
        mode: ScoringMode = "transcript",
        external_signal: bool | None = None,
        trigger: str = "manual",
    ) -> Assessment:
        session, candidate = self._load(session_id)
        if session.status != "completed":
            if not force:
                raise SessionStateError(
                    f"Session {session_id} is {session.status}; only completed sessions are assessed."
                )
            if session.status == "created":
                raise SessionStateError(f"Session {session_id} never started; nothing to assess.")
        self._guard_not_assessed(session_id)

        transcript = normalize_transcript(session.transcripts)
        if not transcript.has_candidate_responses:
            self._record_insufficient_data(session, candidate, trigger)
            raise InsufficientDataError(
                f"Session {session_id} has no finalized candidate responses; assessment skipped."
            )

        lexicon = self.lexicon_store.resolve(candidate.trade_category)
        evaluation = evaluate_transcript(
            session.transcripts,
            lexicon,
            self.policy,
            duration_seconds=session.duration_seconds,
            external_signal=external_signal,
            mode=mode,
        )
        now = self._clock()
        assessment = build_assessment(
            evaluation,
            session_id=session.id,
            candidate_id=candidate.id,
            completed_at=now,
        )
        notifications = self._outcome_notifications(assessment, candidate, now)
        try:
            self.store.create_assessment(assessment, "passed" if assessment.passed else "failed", notifications)
        except DuplicateAssessmentError:
            logger.info("assessment_duplicate_rejected session=%s trigger=%s", session_id, trigger)
            raise

        logger.info(
            "assessment_created session=%s candidate=%s score=%s passed=%s mode=%s trigger=%s",
            session.id,
            candidate.id,
            assessment.overall_score,
            assessment.passed,
            mode,
            trigger,
        )
        self.notifications.deliver(notifications)
        return assessment

    def _record_insufficient_data(self, session: Session, candidate: Candidate, trigger: str) -> None:
        now = self._clock()
        note = f"FLAGGED: {INSUFFICIENT_DATA_FLAG} (session {session.id})"
        alert = make_notification(
            "system_alert",
            "high",
            "Assessment needs manual review",
            f"Session for {candidate.display_name} ended without any candidate responses to score.",
            candidate_id=candidate.id,
            session_id=session.id,
            data={"reason": "insufficient_data", "trigger": trigger},
            created_at=now,
        )
        self.store.mutate_candidate(
            candidate.id,
            lambda current: current.model_copy(
                update={
                    "flagged": True,
                    "flag_reason": INSUFFICIENT_DATA_FLAG,
                    "screening_status": "pending_review",
                    "hr_notes": append_hr_note(current.hr_notes, note, now),
                    "last_contact_at": now,
                }
            ),
            [alert],
        )
        logger.warning("assessment_insufficient_data session=%s candidate=%s trigger=%s", session.id, candidate.id, trigger)
        self.notifications.deliver([alert])

    def _outcome_notifications(
        self,
        assessment: Assessment,
        candidate: Candidate,
        now: datetime,
    ) -> list[Notification]:
        common = {
            "candidate_id": candidate.id,
            "session_id": assessment.session_id,
            "assessment_id": assessment.id,
            "created_at": now,
        }
        notifications: list[Notification] = []
        if assessment.passed and assessment.overall_score >= self.policy.top_performer_threshold:
            notifications.append(
                make_notification(
                    "top_performer",
                    "medium",
                    "Top performer identified",
                    f"{candidate.display_name} scored {assessment.overall_score} for {candidate.position}.",
                    data={"overall_score": assessment.overall_score},
                    **common,
                )
            )
        elif not assessment.passed:
            notifications.append(
                make_notification(
                    "candidate_completed",
                    "low",
                    "Screening completed",
                    f"{candidate.display_name} did not pass screening with a score of {assessment.overall_score}.",
                    data={"overall_score": assessment.overall_score},
                    **common,
                )
            )
        failures = assessment.scores.safety.critical_failures
        if failures:
            notifications.append(
                make_notification(
                    "safety_failure",
                    "critical",
                    "Safety concern in screening",
                    f"{candidate.display_name}: {'; '.join(failures)}",
                    data={"critical_failures": list(failures)},
                    **common,
                )
            )
        return notifications

    def maybe_auto_evaluate(self, session: Session) -> Assessment | None:
        """Score a just-completed session when enough was said to be worth scoring."""
        if not self.auto_evaluate_enabled or session.status != "completed":
            return None
        responses = final_response_count(session)
        if responses < self.auto_evaluate_min_exchanges:
            logger.info(
                "auto_evaluate_skipped session=%s responses=%s required=%s",
                session.id,
                responses,
                self.auto_evaluate_min_exchanges,
            )
            return None
        try:
            return self.evaluate_session(session.id, trigger="auto")
        except DuplicateAssessmentError:
            return self.store.get_assessment_by_session(session.id)
        except InsufficientDataError:
            return None

    def create_manual_assessment(self, request: ManualAssessmentRequest) -> Assessment:
        session, candidate = self._load(request.session_id)
        self._guard_not_assessed(session.id)
        now = self._clock()
        score = request.overall_score
        next_steps = request.notes or ("Proceed" if request.passed else "Do not proceed")
        assessment = Assessment(
            session_id=session.id,
            candidate_id=candidate.id,
            overall_score=score,
            passed=request.passed,
            scoring_mode="manual",
            scores=AssessmentScores(
                technical=TechnicalScores(
                    score=score, tool_knowledge=score, process_understanding=score, problem_solving=score
                ),
                safety=SafetyScores(
                    score=score, protocol_awareness=score, hazard_recognition=score, emergency_response=score
                ),
                experience=ExperienceScores(
                    score=score, relevant_experience=score, project_examples=score, troubleshooting_ability=score
                ),
                communication=CommunicationScores(
                    score=score, clarity=score, professionalism=score, teamwork_indicators=score
                ),
            ),
            ai_insights=AIInsights(
                strengths=["Manual assessment - passed"] if request.passed else ["Manual assessment recorded"],
                weaknesses=[] if request.passed else ["Manual assessment - did not pass"],
                recommendations=["Proceed to next round"] if request.passed else ["Consider alternative opportunities"],
                next_steps=next_steps,
            ),
            override_notes=request.notes,
            completed_at=now,
        )
        notifications = self._outcome_notifications(assessment, candidate, now)
        self.store.create_assessment(assessment, "passed" if request.passed else "failed", notifications)
        logger.info("assessment_manual_created session=%s score=%s passed=%s", session.id, score, request.passed)
        self.notifications.deliver(notifications)
        return assessment

    def override_assessment(self, assessment_id: str, request: AssessmentOverrideRequest) -> Assessment:
        assessment = self.store.get_assessment(assessment_id)
        if assessment is None:
            raise ReferentialError(f"Assessment {assessment_id} not found.")
        update: dict = {"manually_overridden": True}
        if request.overall_score is not None:
            update["overall_score"] = request.overall_score
        if request.passed is not None:
            update["passed"] = request.passed
        if request.notes:
            update["override_notes"] = request.notes
            update["ai_insights"] = assessment.ai_insights.model_copy(update={"next_steps": request.notes})
        corrected = assessment.model_copy(update=update)

        if corrected.passed != assessment.passed:
            self.store.update_assessment(corrected, "passed" if corrected.passed else "failed", self._clock())
        else:
            self.store.update_assessment(corrected)
        logger.info(
            "assessment_overridden id=%s score=%s passed=%s",
            assessment_id,
            corrected.overall_score,
            corrected.passed,
        )
        return corrected

    def get_by_session(self, session_id: str) -> Assessment:
        assessment = self.store.get_assessment_by_session(session_id)
        if assessment is None:
            raise ReferentialError(f"No assessment for session {session_id}.")
        return assessment

    def list_by_candidate(self, candidate_id: str) -> list[Assessment]:
        if self.store.get_candidate(candidate_id) is None:
            raise ReferentialError(f"Candidate {candidate_id} not found.")
        return self.store.list_assessments_by_candidate(candidate_id)

    def recent(self, *, limit: int = 20, passed: bool | None = None) -> list[Assessment]:
        return self.store.list_recent_assessments(limit=limit, passed=passed)

    def sweep_pending(self, *, limit: int = 10, evaluate: bool = False) -> PendingSweepResponse:
        pending = self.store.list_unassessed_completed_sessions(limit=limit)
        processed = 0
        failures: dict[str, str] = {}
        if evaluate:
            for session in pending:
                try:
                    self.evaluate_session(session.id, trigger="sweep")
                    processed += 1
                except ScreeningError as exc:
                    failures[session.id] = str(exc)
        logger.info("assessment_sweep pending=%s processed=%s failed=%s", len(pending), processed, len(failures))
        return PendingSweepResponse(
            total=len(pending),
            processed=processed,
            sessions_needing_assessment=[session.id for session in pending],
            failures=failures,
        )
