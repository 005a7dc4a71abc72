from .assessment import (
    AIInsights,
    Assessment,
    AssessmentScores,
    CommunicationScores,
    ExperienceScores,
    QuestionResponse,
    SafetyScores,
    ScoreDetail,
    TechnicalScores,
    VoiceAnalysis,
)
from .entities import Candidate, ConnectionQuality, Session, SessionErrorRecord
from .notification import Notification
from .transcript import TranscriptEntry

__all__ = [
    "AIInsights",
    "Assessment",
    "AssessmentScores",
    "Candidate",
    "CommunicationScores",
    "ConnectionQuality",
    "ExperienceScores",
    "Notification",
    "QuestionResponse",
    "SafetyScores",
    "ScoreDetail",
    "Session",
    "SessionErrorRecord",
    "TechnicalScores",
    "TranscriptEntry",
    "VoiceAnalysis",
]
