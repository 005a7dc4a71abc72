from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from .entities import new_id

ScoringMode = Literal["transcript", "basic", "manual"]
QuestionCategory = Literal["technical", "safety", "experience", "communication"]
ResponseQuality = Literal["Excellent", "Good", "Needs Improvement"]


class ScoreDetail(BaseModel):
    area: str
    score: int = Field(ge=0, le=100)
    notes: str


class TechnicalScores(BaseModel):
    score: int = Field(ge=0, le=100)
    tool_knowledge: int = Field(ge=0, le=100)
    process_understanding: int = Field(ge=0, le=100)
    problem_solving: int = Field(ge=0, le=100)
    details: list[ScoreDetail] = Field(default_factory=list)


class SafetyScores(BaseModel):
    score: int = Field(ge=0, le=100)
    protocol_awareness: int = Field(ge=0, le=100)
    hazard_recognition: int = Field(ge=0, le=100)
    emergency_response: int = Field(ge=0, le=100)
    critical_failures: list[str] = Field(default_factory=list)
    details: list[ScoreDetail] = Field(default_factory=list)


class ExperienceScores(BaseModel):
    score: int = Field(ge=0, le=100)
    relevant_experience: int = Field(ge=0, le=100)
    project_examples: int = Field(ge=0, le=100)
    troubleshooting_ability: int = Field(ge=0, le=100)
    details: list[ScoreDetail] = Field(default_factory=list)


class CommunicationScores(BaseModel):
    score: int = Field(ge=0, le=100)
    clarity: int = Field(ge=0, le=100)
    professionalism: int = Field(ge=0, le=100)
    teamwork_indicators: int = Field(ge=0, le=100)
    customer_service: int | None = Field(default=None, ge=0, le=100)
    details: list[ScoreDetail] = Field(default_factory=list)


class AssessmentScores(BaseModel):
    technical: TechnicalScores
    safety: SafetyScores
    experience: ExperienceScores
    communication: CommunicationScores


class VoiceAnalysis(BaseModel):
    """Transcript-derived stand-ins; the transport does not report prosody."""

    confidence_score: int = Field(ge=0, le=100)
    fluency_score: int = Field(ge=0, le=100)
    hesitation_count: int = Field(ge=0)
    filler_word_count: int = Field(ge=0)
    speaking_rate: float | None = Field(default=None, ge=0.0)
    total_pause_time: float = Field(default=0.0, ge=0.0)


class QuestionResponse(BaseModel):
    question_id: str
    question: str
    response: str
    category: QuestionCategory
    score: int = Field(ge=0, le=100)
    response_time: float | None = Field(default=None, ge=0.0)
    confidence: float = Field(ge=0.0, le=1.0)
    keyword_matches: list[str] = Field(default_factory=list)
    red_flags: list[str] = Field(default_factory=list)


class AIInsights(BaseModel):
    strengths: list[str] = Field(min_length=1)
    weaknesses: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    risk_factors: list[str] = Field(default_factory=list)
    next_steps: str
    keyword_matches: list[str] = Field(default_factory=list)
    response_quality: ResponseQuality | None = None


class Assessment(BaseModel):
    id: str = Field(default_factory=lambda: new_id("asmt"))
    session_id: str
    candidate_id: str
    overall_score: int = Field(ge=0, le=100)
    passed: bool
    scoring_mode: ScoringMode = "transcript"
    external_signal: bool | None = None
    scores: AssessmentScores
    voice_analysis: VoiceAnalysis | None = None
    question_responses: list[QuestionResponse] = Field(default_factory=list)
    ai_insights: AIInsights
    manually_overridden: bool = False
    override_notes: str | None = None
    completed_at: datetime
