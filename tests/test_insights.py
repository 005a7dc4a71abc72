import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tradescreen.scoring.blender import SubScores, decide  # noqa: E402
from tradescreen.scoring.insights import DEFAULT_STRENGTH, generate_insights  # noqa: E402
from tradescreen.scoring.policy import get_scoring_policy  # noqa: E402


class InsightTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.policy = get_scoring_policy()

    def _insights(self, sub_scores, **kwargs):
        decision = decide(
            sub_scores,
            self.policy,
            external_signal=kwargs.pop("external_signal", None),
            critical_failures=kwargs.pop("critical_failures", None),
        )
        return decision, generate_insights(sub_scores, decision, self.policy, **kwargs)

    def test_strengths_and_weaknesses_follow_thresholds(self):
        _, insights = self._insights(SubScores(communication=85, technical=40, experience=60, engagement=72))
        self.assertIn("Clear communication skills", insights.strengths)
        self.assertIn("Active participation", insights.strengths)
        self.assertIn("Limited technical knowledge demonstrated", insights.weaknesses)
        self.assertNotIn("Relevant experience", insights.strengths)
        self.assertNotIn("Needs more relevant experience", insights.weaknesses)

    def test_strengths_are_never_empty(self):
        _, insights = self._insights(SubScores(10, 10, 10, 10))
        self.assertEqual(insights.strengths, [DEFAULT_STRENGTH])
        self.assertEqual(insights.response_quality, "Needs Improvement")
        self.assertEqual(insights.next_steps, "Consider alternative opportunities")

    def test_strong_pass_recommendations(self):
        decision, insights = self._insights(SubScores(90, 90, 90, 90))
        self.assertTrue(decision.passed)
        self.assertEqual(insights.response_quality, "Excellent")
        self.assertEqual(insights.next_steps, "Proceed to next round")
        self.assertIn("Strong candidate - proceed to next interview round", insights.recommendations)

    def test_standard_pass_recommendations(self):
        _, insights = self._insights(SubScores(70, 70, 70, 70))
        self.assertEqual(insights.response_quality, "Good")
        self.assertIn("Suitable candidate - proceed with standard process", insights.recommendations)

    def test_basic_mode_relabels_completion_slot(self):
        _, insights = self._insights(SubScores(80, 80, 80, 100), basic_mode=True)
        self.assertIn("Completed the full interview duration", insights.strengths)
        self.assertNotIn("Active participation", insights.strengths)

    def test_critical_failures_become_risk_factors(self):
        _, insights = self._insights(SubScores(90, 90, 90, 90), critical_failures=["No safety awareness"])
        self.assertIn("No safety awareness", insights.risk_factors)
        self.assertEqual(insights.next_steps, "Hold for HR safety review")

    def test_external_signal_is_reported(self):
        _, positive = self._insights(SubScores(50, 50, 50, 50), external_signal=True)
        self.assertIn("Voice platform evaluated the interview as successful", positive.strengths)
        _, negative = self._insights(SubScores(50, 50, 50, 50), external_signal=False)
        self.assertIn("Voice platform flagged interview concerns", negative.weaknesses)


if __name__ == "__main__":
    unittest.main()
