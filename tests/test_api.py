import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tradescreen.core.config import settings  # noqa: E402
from tradescreen.main import app  # noqa: E402
from tradescreen.services import (  # noqa: E402
    AssessmentOrchestrator,
    CandidateService,
    NotificationService,
    SessionService,
    get_candidate_service,
    get_notification_service,
    get_orchestrator,
    get_session_service,
)
from tradescreen.store import ScreeningStore  # noqa: E402

ANSWERS = [
    "I have worked in construction for 12 years and my last job was framing houses on a large residential site.",
    "Safety comes first, so I always wear my hard hat and ppe before I step onto the concrete foundation.",
    "I read the blueprint every morning with my crew and supervisor so the schedule and the materials stay on track.",
    "On my last project I led a team of six and trained two apprentices on how to build stairs and frame walls.",
    "I report every hazard to the site lead right away and follow osha rules on fall protection at all times.",
]


def transcript_payload(answers):
    entries = []
    for index, answer in enumerate(answers):
        asked = datetime(2026, 3, 2, 9, index, tzinfo=timezone.utc)
        entries.append({"text": f"Question {index + 1}?", "role": "assistant", "timestamp": asked.isoformat(), "isFinal": True})
        entries.append(
            {
                "text": answer,
                "role": "user",
                "timestamp": asked.replace(second=5).isoformat(),
                "isFinal": True,
            }
        )
    return {"entries": entries}


class ScreeningApiTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.store = ScreeningStore(os.path.join(self._tmp.name, "screening.db"))
        notifications = NotificationService(self.store, mailer=mock.Mock(return_value=True))
        orchestrator = AssessmentOrchestrator(
            self.store,
            notifications=notifications,
            auto_evaluate_enabled=False,
        )
        app.dependency_overrides[get_notification_service] = lambda: notifications
        app.dependency_overrides[get_orchestrator] = lambda: orchestrator
        app.dependency_overrides[get_session_service] = lambda: SessionService(self.store, orchestrator)
        app.dependency_overrides[get_candidate_service] = lambda: CandidateService(
            self.store, notifications=notifications
        )
        self.client = TestClient(app)
        self.headers = {"X-API-Key": settings.api_key or "test-key"}

    def tearDown(self):
        app.dependency_overrides.clear()
        self.store.close()
        self._tmp.cleanup()

    def _create_candidate(self, email="casey@example.com"):
        response = self.client.post(
            "/v1/candidates",
            json={"email": email, "first_name": "Casey", "position": "Carpenter", "trade_category": "construction"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def _completed_session(self, candidate_id, answers):
        response = self.client.post("/v1/sessions", json={"candidate_id": candidate_id}, headers=self.headers)
        self.assertEqual(response.status_code, 201, response.text)
        session_id = response.json()["id"]
        self.assertEqual(self.client.post(f"/v1/sessions/{session_id}/start", headers=self.headers).status_code, 200)
        if answers:
            response = self.client.post(
                f"/v1/sessions/{session_id}/transcripts", json=transcript_payload(answers), headers=self.headers
            )
            self.assertEqual(response.status_code, 200, response.text)
        response = self.client.post(f"/v1/sessions/{session_id}/complete", headers=self.headers)
        self.assertEqual(response.status_code, 200, response.text)
        return session_id

    def test_health(self):
        response = self.client.get("/v1/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "healthy"})

    def test_candidate_lifecycle_endpoints(self):
        candidate = self._create_candidate()
        self.assertEqual(candidate["screening_status"], "invited")

        duplicate = self.client.post(
            "/v1/candidates",
            json={"email": "CASEY@example.com", "position": "Carpenter"},
            headers=self.headers,
        )
        self.assertEqual(duplicate.status_code, 409)

        by_email = self.client.get("/v1/candidates/by-email", params={"email": "casey@example.com"}, headers=self.headers)
        self.assertEqual(by_email.json()["id"], candidate["id"])

        flagged = self.client.post(
            f"/v1/candidates/{candidate['id']}/flag", json={"reason": "Check references"}, headers=self.headers
        )
        self.assertTrue(flagged.json()["flagged"])
        self.assertIn("FLAGGED: Check references", flagged.json()["hr_notes"])

        listed = self.client.get("/v1/candidates", params={"flagged": "true"}, headers=self.headers)
        self.assertEqual([item["id"] for item in listed.json()], [candidate["id"]])

        unflagged = self.client.post(
            f"/v1/candidates/{candidate['id']}/unflag", json={"resolution": "References fine"}, headers=self.headers
        )
        self.assertFalse(unflagged.json()["flagged"])

        consent = self.client.put(
            f"/v1/candidates/{candidate['id']}/consent", json={"consent_given": True}, headers=self.headers
        )
        self.assertTrue(consent.json()["consent_given"])
        self.assertIsNotNone(consent.json()["consent_timestamp"])

        deleted = self.client.delete(
            f"/v1/candidates/{candidate['id']}", params={"reason": "Candidate request"}, headers=self.headers
        )
        self.assertEqual(deleted.json()["screening_status"], "pending_review")
        self.assertEqual(deleted.json()["flag_reason"], "DELETION REQUESTED: Candidate request")

        missing = self.client.get("/v1/candidates/cand_missing", headers=self.headers)
        self.assertEqual(missing.status_code, 404)

    def test_evaluate_then_repeat_returns_conflict(self):
        candidate = self._create_candidate()
        session_id = self._completed_session(candidate["id"], ANSWERS)

        first = self.client.post(f"/v1/sessions/{session_id}/evaluate", headers=self.headers)
        self.assertEqual(first.status_code, 201, first.text)
        body = first.json()
        self.assertEqual(body["session_id"], session_id)
        self.assertEqual(len(body["question_responses"]), 5)

        second = self.client.post(f"/v1/sessions/{session_id}/evaluate", json={"force": True}, headers=self.headers)
        self.assertEqual(second.status_code, 409)

        stored = self.client.get(f"/v1/sessions/{session_id}/assessment", headers=self.headers)
        self.assertEqual(stored.json()["id"], body["id"])
        history = self.client.get(f"/v1/candidates/{candidate['id']}/assessments", headers=self.headers)
        self.assertEqual(len(history.json()), 1)
        recent = self.client.get("/v1/assessments/recent", headers=self.headers)
        self.assertEqual([item["id"] for item in recent.json()], [body["id"]])

    def test_empty_session_returns_unprocessable(self):
        candidate = self._create_candidate()
        session_id = self._completed_session(candidate["id"], [])
        response = self.client.post(f"/v1/sessions/{session_id}/evaluate", headers=self.headers)
        self.assertEqual(response.status_code, 422)
        self.assertEqual(self.client.get(f"/v1/sessions/{session_id}/assessment", headers=self.headers).status_code, 404)

        alerts = self.client.get("/v1/notifications", params={"unread_only": "true"}, headers=self.headers).json()
        self.assertEqual([item["type"] for item in alerts], ["system_alert"])
        read = self.client.post(f"/v1/notifications/{alerts[0]['id']}/read", headers=self.headers)
        self.assertTrue(read.json()["read"])
        acked = self.client.post(f"/v1/notifications/{alerts[0]['id']}/ack", headers=self.headers)
        self.assertTrue(acked.json()["acknowledged"])
        remaining = self.client.get("/v1/notifications", params={"unread_only": "true"}, headers=self.headers)
        self.assertEqual(remaining.json(), [])

    def test_transcripts_rejected_after_completion(self):
        candidate = self._create_candidate()
        session_id = self._completed_session(candidate["id"], ANSWERS[:1])
        response = self.client.post(
            f"/v1/sessions/{session_id}/transcripts", json=transcript_payload(ANSWERS[1:2]), headers=self.headers
        )
        self.assertEqual(response.status_code, 409)

    def test_session_end_and_analytics(self):
        candidate = self._create_candidate()
        self._completed_session(candidate["id"], ANSWERS)
        created = self.client.post("/v1/sessions", json={"candidate_id": candidate["id"]}, headers=self.headers).json()
        ended = self.client.post(
            f"/v1/sessions/{created['id']}/end",
            json={"status": "abandoned", "reason": "No answer"},
            headers=self.headers,
        )
        self.assertEqual(ended.status_code, 200, ended.text)
        self.assertEqual(ended.json()["status"], "abandoned")

        summary = self.client.get("/v1/sessions/analytics", headers=self.headers).json()
        self.assertEqual(summary["total_sessions"], 2)
        self.assertEqual(summary["completed_sessions"], 1)
        self.assertEqual(summary["abandoned_sessions"], 1)
        self.assertEqual(summary["completion_rate"], 50.0)

    def test_manual_assessment_and_override(self):
        candidate = self._create_candidate()
        session_id = self._completed_session(candidate["id"], [])
        manual = self.client.post(
            "/v1/assessments/manual",
            json={"session_id": session_id, "overall_score": 81, "passed": True},
            headers=self.headers,
        )
        self.assertEqual(manual.status_code, 201, manual.text)
        override = self.client.patch(
            f"/v1/assessments/{manual.json()['id']}", json={"overall_score": 77}, headers=self.headers
        )
        self.assertEqual(override.json()["overall_score"], 77)
        self.assertTrue(override.json()["manually_overridden"])
        empty = self.client.patch(f"/v1/assessments/{manual.json()['id']}", json={}, headers=self.headers)
        self.assertEqual(empty.status_code, 422)

    def test_pending_sweep(self):
        candidate = self._create_candidate()
        session_id = self._completed_session(candidate["id"], ANSWERS)
        report = self.client.post("/v1/assessments/pending-sweep", json={"evaluate": True}, headers=self.headers)
        self.assertEqual(report.status_code, 200, report.text)
        self.assertEqual(report.json()["processed"], 1)
        self.assertEqual(report.json()["sessions_needing_assessment"], [session_id])


if __name__ == "__main__":
    unittest.main()
