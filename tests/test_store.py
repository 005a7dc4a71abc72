import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tradescreen.core.errors import (  # noqa: E402
    DuplicateAssessmentError,
    DuplicateCandidateError,
    ReferentialError,
)
from tradescreen.schemas import (  # noqa: E402
    AIInsights,
    Assessment,
    AssessmentScores,
    Candidate,
    CommunicationScores,
    ExperienceScores,
    Notification,
    SafetyScores,
    Session,
    TechnicalScores,
)
from tradescreen.store import ScreeningStore, SessionTransition  # noqa: E402

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def flat_scores(score):
    return AssessmentScores(
        technical=TechnicalScores(score=score, tool_knowledge=score, process_understanding=score, problem_solving=score),
        safety=SafetyScores(score=score, protocol_awareness=score, hazard_recognition=score, emergency_response=score),
        experience=ExperienceScores(
            score=score, relevant_experience=score, project_examples=score, troubleshooting_ability=score
        ),
        communication=CommunicationScores(score=score, clarity=score, professionalism=score, teamwork_indicators=score),
    )


def assessment_for(session, score=70, passed=True):
    return Assessment(
        session_id=session.id,
        candidate_id=session.candidate_id,
        overall_score=score,
        passed=passed,
        scores=flat_scores(score),
        ai_insights=AIInsights(strengths=["Completed the interview"], next_steps="Proceed to next round"),
        completed_at=NOW,
    )


class ScreeningStoreTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ScreeningStore(os.path.join(self._tmp.name, "screening.db"))
        self.candidate = self.store.insert_candidate(
            Candidate(email="Pat.Welder@Example.com", position="Welder", trade_category="welding")
        )
        self.session = self.store.insert_session(
            Session(candidate_id=self.candidate.id, external_session_id="call-123", created_at=NOW)
        )

    def tearDown(self):
        self.store.close()
        self._tmp.cleanup()

    def test_candidate_round_trip_and_email_lookup(self):
        loaded = self.store.get_candidate(self.candidate.id)
        self.assertEqual(loaded, self.candidate)
        self.assertEqual(self.store.get_candidate_by_email("pat.welder@example.com").id, self.candidate.id)
        self.assertEqual(self.store.get_candidate_by_email("  PAT.WELDER@example.com ").id, self.candidate.id)

    def test_candidate_email_is_unique(self):
        with self.assertRaises(DuplicateCandidateError):
            self.store.insert_candidate(Candidate(email="pat.welder@example.com", position="Fitter"))

    def test_session_lookups(self):
        self.assertEqual(self.store.get_session_by_external_id("call-123").id, self.session.id)
        self.assertIsNone(self.store.get_session_by_external_id("call-999"))
        self.assertEqual([s.id for s in self.store.list_sessions(candidate_id=self.candidate.id)], [self.session.id])
        self.assertEqual(self.store.list_sessions(status="active"), [])

    def test_only_one_assessment_per_session(self):
        first = assessment_for(self.session)
        self.store.create_assessment(first, "passed")

        second = assessment_for(self.session, score=20, passed=False)
        notice = Notification(
            type="candidate_completed",
            priority="low",
            title="Screening completed",
            message="did not pass",
            candidate_id=self.candidate.id,
            created_at=NOW,
        )
        with self.assertRaises(DuplicateAssessmentError):
            self.store.create_assessment(second, "failed", [notice])

        self.assertEqual(len(self.store.list_recent_assessments()), 1)
        self.assertEqual(self.store.get_assessment_by_session(self.session.id).id, first.id)
        # the losing transaction rolled back as a whole
        self.assertEqual(self.store.get_candidate(self.candidate.id).screening_status, "passed")
        self.assertEqual(self.store.list_notifications(), [])

    def test_unassessed_completed_sessions(self):
        done = Session.model_validate(
            {**self.session.model_dump(), "status": "completed", "start_time": NOW, "end_time": NOW, "duration_seconds": 0}
        )
        self.store.mutate_session(self.session.id, lambda current: done)
        self.assertEqual([s.id for s in self.store.list_unassessed_completed_sessions()], [self.session.id])
        self.store.create_assessment(assessment_for(done), "passed")
        self.assertEqual(self.store.list_unassessed_completed_sessions(), [])

    def test_assessment_outcome_keeps_concurrent_candidate_edits(self):
        self.store.mutate_candidate(
            self.candidate.id, lambda current: current.model_copy(update={"flagged": True, "flag_reason": "Check visa"})
        )
        self.store.create_assessment(assessment_for(self.session), "passed")
        stored = self.store.get_candidate(self.candidate.id)
        self.assertEqual(stored.screening_status, "passed")
        self.assertTrue(stored.flagged)
        self.assertEqual(stored.flag_reason, "Check visa")
        self.assertEqual(stored.last_contact_at, NOW)

    def test_unassessed_only_transition_is_refused_after_scoring(self):
        self.store.create_assessment(assessment_for(self.session), "passed")

        def rewrite(session, candidate):
            return SessionTransition(session.model_copy(update={"recording_url": "https://vendor.example/r.mp3"}))

        with self.assertRaises(DuplicateAssessmentError):
            self.store.transition_session(self.session.id, rewrite, unassessed_only=True)
        self.assertIsNone(self.store.get_session(self.session.id).recording_url)

    def test_mutating_a_missing_row_is_a_referential_error(self):
        with self.assertRaises(ReferentialError):
            self.store.mutate_session("missing", lambda current: current)
        with self.assertRaises(ReferentialError):
            self.store.mutate_candidate("missing", lambda current: current)

    def test_notification_filters(self):
        unread = Notification(type="system_alert", priority="high", title="a", message="a", created_at=NOW)
        read = Notification(type="system_alert", priority="low", title="b", message="b", read=True, created_at=NOW)
        self.store.mutate_candidate(
            self.candidate.id, lambda current: current.model_copy(update={"flagged": True}), [unread, read]
        )
        self.assertEqual(len(self.store.list_notifications()), 2)
        self.assertEqual([n.id for n in self.store.list_notifications(unread_only=True)], [unread.id])


if __name__ == "__main__":
    unittest.main()
