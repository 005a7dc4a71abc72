import sys
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tradescreen.lexicon import LocalLexiconStore  # noqa: E402
from tradescreen.schemas.transcript import TranscriptEntry  # noqa: E402
from tradescreen.scoring import build_assessment, evaluate_transcript, get_scoring_policy  # noqa: E402

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

STRONG_INTERVIEW = [
    ("Tell me about your background.",
     "I have worked in construction for 12 years and my last job was framing houses on a large residential site."),
    ("How do you stay safe on site?",
     "Safety comes first, so I always wear my hard hat and ppe before I step onto the concrete foundation."),
    ("How do you plan the day?",
     "I read the blueprint every morning with my crew and supervisor so the schedule and the materials stay on track."),
    ("Describe a project you are proud of.",
     "On my last project I led a team of six and trained two apprentices on how to build stairs and frame walls."),
    ("What do you do when you see a risk?",
     "I report every hazard to the site lead right away and follow osha rules on fall protection at all times."),
]

CONSTRUCTION_ANSWER = (
    "I have 5 years of experience in residential construction, concrete and framing, "
    "and safety is always my priority"
)


def conversation(pairs, gap=5):
    entries = []
    for index, (question, answer) in enumerate(pairs):
        asked = T0 + timedelta(seconds=index * 60)
        entries.append(TranscriptEntry(text=question, role="assistant", timestamp=asked, isFinal=True))
        entries.append(TranscriptEntry(text=answer, role="user", timestamp=asked + timedelta(seconds=gap), isFinal=True))
    return entries


def single_answer(text):
    return [TranscriptEntry(text=text, role="candidate", timestamp=T0, isFinal=True)]


class EvaluatorTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.policy = get_scoring_policy()
        cls.lexicons = LocalLexiconStore()
        cls.construction = cls.lexicons.resolve("construction")

    def test_construction_answer_registers_keywords_and_experience(self):
        evaluation = evaluate_transcript(single_answer(CONSTRUCTION_ANSWER), self.construction, self.policy)
        self.assertEqual(evaluation.hits.primary, ["construction", "concrete", "framing"])
        self.assertEqual(evaluation.hits.safety, ["safety"])
        self.assertEqual(evaluation.hits.secondary, [])
        self.assertEqual(evaluation.decision.critical_failures, [])
        self.assertEqual(evaluation.sub_scores.communication, 59)
        self.assertEqual(evaluation.sub_scores.technical, 38)
        self.assertAlmostEqual(evaluation.sub_scores.experience, 38.4)
        self.assertEqual(evaluation.sub_scores.engagement, 8)

    def test_single_construction_answer_falls_short_of_the_pass_mark(self):
        # engagement earns 8 points per response, so one short answer stays well below the mark
        evaluation = evaluate_transcript(single_answer(CONSTRUCTION_ANSWER), self.construction, self.policy)
        self.assertEqual(evaluation.overall_score, 39)
        self.assertLess(evaluation.overall_score, self.policy.pass_threshold)
        self.assertFalse(evaluation.passed)
        self.assertEqual(evaluation.insights.next_steps, "Consider alternative opportunities")

    def test_construction_answer_opening_a_full_interview_passes(self):
        pairs = [("Tell me about your background.", CONSTRUCTION_ANSWER), *STRONG_INTERVIEW[1:]]
        evaluation = evaluate_transcript(conversation(pairs), self.construction, self.policy, duration_seconds=300)
        self.assertEqual(evaluation.sub_scores.technical, 100)
        self.assertEqual(evaluation.sub_scores.engagement, 40)
        self.assertGreaterEqual(evaluation.overall_score, self.policy.pass_threshold)
        self.assertTrue(evaluation.passed)

    def test_strong_multi_turn_interview_passes(self):
        evaluation = evaluate_transcript(conversation(STRONG_INTERVIEW), self.construction, self.policy, duration_seconds=300)
        self.assertGreaterEqual(evaluation.overall_score, self.policy.pass_threshold)
        self.assertTrue(evaluation.passed)
        self.assertEqual(evaluation.sub_scores.technical, 100)
        self.assertEqual(evaluation.insights.next_steps, "Proceed to next round")

    def test_partial_utterances_do_not_change_the_result(self):
        finals = conversation(STRONG_INTERVIEW[:2])
        partials = [
            TranscriptEntry(text="osha lockout hazard protection", role="user", timestamp=T0, isFinal=False),
            TranscriptEntry(text="I managed a company", role="user", timestamp=T0, isFinal=False),
        ]
        with_partials = evaluate_transcript(finals + partials, self.construction, self.policy)
        without = evaluate_transcript(finals, self.construction, self.policy)
        self.assertEqual(with_partials.sub_scores, without.sub_scores)
        self.assertEqual(with_partials.overall_score, without.overall_score)

    def test_no_safety_vocabulary_is_a_critical_failure(self):
        evaluation = evaluate_transcript(
            single_answer("I build concrete foundations and frame houses from the blueprint every single day"),
            self.construction,
            self.policy,
            external_signal=True,
        )
        self.assertFalse(evaluation.passed)
        self.assertIn(self.policy.critical_failure_message, evaluation.decision.critical_failures)
        self.assertIn(self.policy.critical_failure_message, evaluation.insights.risk_factors)

    def test_red_flag_phrase_is_a_critical_failure(self):
        evaluation = evaluate_transcript(
            conversation(STRONG_INTERVIEW + [("Anything else?", "Honestly sometimes we cut corners to finish early.")]),
            self.construction,
            self.policy,
        )
        self.assertFalse(evaluation.passed)
        self.assertIn("Unsafe practice mentioned: 'cut corners'", evaluation.decision.critical_failures)

    def test_question_responses_pair_answers_with_questions(self):
        evaluation = evaluate_transcript(conversation(STRONG_INTERVIEW, gap=7), self.construction, self.policy)
        responses = evaluation.question_responses
        self.assertEqual(len(responses), 5)
        self.assertEqual(responses[0].question, "Tell me about your background.")
        self.assertEqual(responses[0].response_time, 7)
        self.assertEqual(responses[1].category, "safety")
        self.assertIn("hard hat", responses[1].keyword_matches)
        self.assertEqual(responses[0].question_id, "q1")

    def test_voice_analysis_counts_fillers(self):
        evaluation = evaluate_transcript(
            single_answer("Um, I uh worked, you know, on safety for years"),
            self.construction,
            self.policy,
            duration_seconds=60,
        )
        voice = evaluation.voice_analysis
        self.assertEqual(voice.filler_word_count, 3)
        self.assertEqual(voice.hesitation_count, 2)
        self.assertEqual(voice.speaking_rate, 10.0)

    def test_basic_mode_uses_completion_in_the_engagement_slot(self):
        evaluation = evaluate_transcript(
            conversation(STRONG_INTERVIEW),
            self.construction,
            self.policy,
            duration_seconds=30,
            mode="basic",
        )
        self.assertEqual(evaluation.sub_scores.engagement, 25)
        self.assertIn("Session ended earlier than expected", evaluation.insights.weaknesses)

    def test_assessment_document_is_complete(self):
        evaluation = evaluate_transcript(conversation(STRONG_INTERVIEW), self.construction, self.policy)
        assessment = build_assessment(
            evaluation,
            session_id="sess_1",
            candidate_id="cand_1",
            completed_at=T0,
        )
        self.assertTrue(assessment.id.startswith("asmt_"))
        self.assertEqual(assessment.overall_score, evaluation.overall_score)
        self.assertEqual(assessment.scores.technical.score, 100)
        self.assertEqual(assessment.scores.safety.score, 100)
        self.assertEqual(assessment.scores.safety.critical_failures, [])
        self.assertEqual(len(assessment.question_responses), 5)
        self.assertTrue(assessment.ai_insights.strengths)


if __name__ == "__main__":
    unittest.main()
