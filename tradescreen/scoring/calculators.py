"""Sub-score calculators.

Every function here is total: any input, including an empty transcript,
yields a score in [0, 100] and nothing raises.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field

from tradescreen.lexicon import TradeLexicon

from .normalizer import NormalizedTranscript
from .policy import ScoringPolicy


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(100.0, float(value)))


def as_int_score(value: float) -> int:
    return max(0, min(100, round_half_up(clamp_score(value))))


def match_terms(text: str, terms: tuple[str, ...]) -> list[str]:
    lowered = (text or "").lower()
    return [term for term in terms if term and term in lowered]


@dataclass(frozen=True)
class KeywordHits:
    primary: list[str] = field(default_factory=list)
    secondary: list[str] = field(default_factory=list)
    safety: list[str] = field(default_factory=list)

    @property
    def all_terms(self) -> list[str]:
        seen: list[str] = []
        for term in (*self.primary, *self.safety, *self.secondary):
            if term not in seen:
                seen.append(term)
        return seen


def lexicon_hits(text: str, lexicon: TradeLexicon) -> KeywordHits:
    return KeywordHits(
        primary=match_terms(text, lexicon.primary),
        secondary=match_terms(text, lexicon.secondary),
        safety=match_terms(text, lexicon.safety),
    )


def technical_score(hits: KeywordHits, policy: ScoringPolicy) -> float:
    raw = (
        len(hits.primary) * policy.primary_points
        + len(hits.safety) * policy.safety_points
        + len(hits.secondary) * policy.secondary_points
    )
    return clamp_score(raw)


def safety_score(hits: KeywordHits, lexicon: TradeLexicon, policy: ScoringPolicy) -> float:
    if not lexicon.safety:
        return 0.0
    needed = min(policy.safety_full_marks_hits, len(lexicon.safety))
    return clamp_score(len(hits.safety) / needed * 100)


def experience_score(transcript: NormalizedTranscript, policy: ScoringPolicy) -> float:
    if not transcript.candidate_entries:
        return 0.0
    indicators = match_terms(transcript.candidate_text, policy.experience_indicators)
    raw = len(indicators) * policy.indicator_points + transcript.avg_response_chars / policy.chars_per_point
    return clamp_score(raw)


def communication_score(transcript: NormalizedTranscript, policy: ScoringPolicy) -> float:
    raw = (
        transcript.avg_words_per_response * policy.words_per_response_factor
        + transcript.response_count * policy.communication_response_points
    )
    return clamp_score(raw)


def engagement_score(transcript: NormalizedTranscript, policy: ScoringPolicy) -> float:
    return clamp_score(transcript.response_count * policy.engagement_response_points)


def completion_score(duration_seconds: float | None, policy: ScoringPolicy) -> float:
    if not duration_seconds or duration_seconds <= 0:
        return 0.0
    return clamp_score(duration_seconds / policy.min_duration_seconds * 100)
