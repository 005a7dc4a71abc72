from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from tradescreen.lexicon import TradeLexicon
from tradescreen.schemas.assessment import (
    AIInsights,
    Assessment,
    AssessmentScores,
    CommunicationScores,
    ExperienceScores,
    QuestionCategory,
    QuestionResponse,
    SafetyScores,
    ScoreDetail,
    ScoringMode,
    TechnicalScores,
    VoiceAnalysis,
)
from tradescreen.schemas.transcript import TranscriptEntry

from .blender import Decision, SubScores, decide
from .calculators import (
    KeywordHits,
    as_int_score,
    communication_score,
    completion_score,
    engagement_score,
    experience_score,
    lexicon_hits,
    match_terms,
    safety_score,
    technical_score,
)
from .insights import generate_insights
from .normalizer import NormalizedTranscript, count_words, normalize_transcript
from .policy import ScoringPolicy

_NOTES = "Based on transcript analysis"


@dataclass(frozen=True)
class Evaluation:
    mode: ScoringMode
    transcript: NormalizedTranscript
    hits: KeywordHits
    sub_scores: SubScores
    safety: float
    decision: Decision
    insights: AIInsights
    question_responses: list[QuestionResponse]
    voice_analysis: VoiceAnalysis

    @property
    def overall_score(self) -> int:
        return self.decision.overall_score

    @property
    def passed(self) -> bool:
        return self.decision.passed


def _count_phrases(text: str, phrases: tuple[str, ...]) -> int:
    total = 0
    for phrase in phrases:
        total += len(re.findall(rf"\b{re.escape(phrase)}\b", text))
    return total


def _critical_failures(hits: KeywordHits, red_flags: list[str], policy: ScoringPolicy) -> list[str]:
    failures: list[str] = []
    if policy.safety_hard_gate and not hits.safety:
        failures.append(policy.critical_failure_message)
    for phrase in red_flags:
        failures.append(f"Unsafe practice mentioned: '{phrase}'")
    return failures


def _classify_answer(answer_hits: KeywordHits, text: str, policy: ScoringPolicy) -> QuestionCategory:
    if answer_hits.safety:
        return "safety"
    if answer_hits.primary or answer_hits.secondary:
        return "technical"
    if match_terms(text, policy.experience_indicators):
        return "experience"
    return "communication"


def build_question_responses(
    transcript: NormalizedTranscript,
    lexicon: TradeLexicon,
    policy: ScoringPolicy,
) -> list[QuestionResponse]:
    responses: list[QuestionResponse] = []
    last_question: TranscriptEntry | None = None
    for entry in transcript.ordered_entries:
        if entry.role == "interviewer":
            last_question = entry
            continue
        index = len(responses) + 1
        answer_hits = lexicon_hits(entry.text, lexicon)
        response_time = None
        if last_question is not None:
            elapsed = (entry.timestamp - last_question.timestamp).total_seconds()
            response_time = elapsed if elapsed >= 0 else None
        confidence = entry.confidence if entry.confidence is not None else policy.default_response_confidence
        responses.append(
            QuestionResponse(
                question_id=f"q{index}",
                question=last_question.text if last_question is not None else f"Question {index}",
                response=entry.text,
                category=_classify_answer(answer_hits, entry.text, policy),
                score=as_int_score(count_words(entry.text) * 5),
                response_time=response_time,
                confidence=confidence,
                keyword_matches=answer_hits.all_terms,
                red_flags=match_terms(entry.text, policy.red_flag_phrases),
            )
        )
    return responses


def build_voice_analysis(
    transcript: NormalizedTranscript,
    sub_scores: SubScores,
    policy: ScoringPolicy,
    duration_seconds: float | None,
) -> VoiceAnalysis:
    text = transcript.candidate_text
    speaking_rate = None
    if duration_seconds and duration_seconds > 0:
        speaking_rate = round(transcript.total_words / (duration_seconds / 60.0), 1)
    return VoiceAnalysis(
        confidence_score=as_int_score(sub_scores.engagement),
        fluency_score=as_int_score(sub_scores.communication),
        hesitation_count=_count_phrases(text, policy.hesitation_words),
        filler_word_count=_count_phrases(text, policy.filler_words),
        speaking_rate=speaking_rate,
        total_pause_time=0.0,
    )


def evaluate_transcript(
    entries: Iterable[TranscriptEntry],
    lexicon: TradeLexicon,
    policy: ScoringPolicy,
    *,
    duration_seconds: float | None = None,
    external_signal: bool | None = None,
    mode: ScoringMode = "transcript",
) -> Evaluation:
    """Score a transcript end to end. Pure: no I/O, never raises on content."""
    transcript = normalize_transcript(entries)
    text = transcript.candidate_text
    hits = lexicon_hits(text, lexicon)

    slot = completion_score(duration_seconds, policy) if mode == "basic" else engagement_score(transcript, policy)
    sub_scores = SubScores(
        communication=communication_score(transcript, policy),
        technical=technical_score(hits, policy),
        experience=experience_score(transcript, policy),
        engagement=slot,
    )
    red_flags = match_terms(text, policy.red_flag_phrases)
    decision = decide(
        sub_scores,
        policy,
        external_signal=external_signal,
        critical_failures=_critical_failures(hits, red_flags, policy),
    )
    insights = generate_insights(
        sub_scores,
        decision,
        policy,
        basic_mode=mode == "basic",
        keyword_matches=match_terms(text, policy.insight_keywords),
    )
    return Evaluation(
        mode=mode,
        transcript=transcript,
        hits=hits,
        sub_scores=sub_scores,
        safety=safety_score(hits, lexicon, policy),
        decision=decision,
        insights=insights,
        question_responses=build_question_responses(transcript, lexicon, policy),
        voice_analysis=build_voice_analysis(transcript, sub_scores, policy, duration_seconds),
    )


def _detail(area: str, score: int, terms: list[str]) -> list[ScoreDetail]:
    notes = _NOTES if not terms else f"{_NOTES}; matched: {', '.join(terms)}"
    return [ScoreDetail(area=area, score=score, notes=notes)]


def build_scores(evaluation: Evaluation) -> AssessmentScores:
    technical = as_int_score(evaluation.sub_scores.technical)
    safety = as_int_score(evaluation.safety)
    experience = as_int_score(evaluation.sub_scores.experience)
    communication = as_int_score(evaluation.sub_scores.communication)
    hits = evaluation.hits
    return AssessmentScores(
        technical=TechnicalScores(
            score=technical,
            tool_knowledge=technical,
            process_understanding=technical,
            problem_solving=technical,
            details=_detail("Technical Knowledge", technical, hits.primary + hits.secondary),
        ),
        safety=SafetyScores(
            score=safety,
            protocol_awareness=safety,
            hazard_recognition=safety,
            emergency_response=safety,
            critical_failures=list(evaluation.decision.critical_failures),
            details=_detail("Safety Awareness", safety, hits.safety),
        ),
        experience=ExperienceScores(
            score=experience,
            relevant_experience=experience,
            project_examples=experience,
            troubleshooting_ability=experience,
            details=_detail("Experience Level", experience, []),
        ),
        communication=CommunicationScores(
            score=communication,
            clarity=communication,
            professionalism=communication,
            teamwork_indicators=communication,
            details=_detail("Communication Skills", communication, []),
        ),
    )


def build_assessment(
    evaluation: Evaluation,
    *,
    session_id: str,
    candidate_id: str,
    completed_at: datetime,
) -> Assessment:
    return Assessment(
        session_id=session_id,
        candidate_id=candidate_id,
        overall_score=evaluation.overall_score,
        passed=evaluation.passed,
        scoring_mode=evaluation.mode,
        external_signal=evaluation.decision.external_signal,
        scores=build_scores(evaluation),
        voice_analysis=evaluation.voice_analysis,
        question_responses=evaluation.question_responses,
        ai_insights=evaluation.insights,
        completed_at=completed_at,
    )
