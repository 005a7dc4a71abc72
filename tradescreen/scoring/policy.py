from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from tradescreen.core.config.scoring import get_scoring_config
from tradescreen.core.errors import ConfigurationError

_WEIGHT_TOLERANCE = 1e-6


class BlendWeights(BaseModel):
    communication: float = Field(ge=0.0, le=1.0)
    technical: float = Field(ge=0.0, le=1.0)
    experience: float = Field(ge=0.0, le=1.0)
    engagement: float = Field(ge=0.0, le=1.0)

    @model_validator(mode="after")
    def _weights_are_convex(self) -> "BlendWeights":
        total = self.communication + self.technical + self.experience + self.engagement
        if abs(total - 1.0) > _WEIGHT_TOLERANCE:
            raise ValueError(f"blend weights must sum to 1.0, got {total:.6f}")
        return self


class ScoringPolicy(BaseModel):
    weights: BlendWeights
    pass_threshold: int = Field(default=65, ge=0, le=100)
    top_performer_threshold: int = Field(default=90, ge=0, le=100)
    positive_floor: int = Field(default=70, ge=0, le=100)
    negative_ceiling: int = Field(default=60, ge=0, le=100)

    primary_points: float = Field(default=10, ge=0)
    safety_points: float = Field(default=8, ge=0)
    secondary_points: float = Field(default=5, ge=0)

    safety_hard_gate: bool = True
    safety_full_marks_hits: int = Field(default=3, ge=1)
    critical_failure_message: str = "No safety awareness demonstrated in any response"

    experience_indicators: tuple[str, ...] = ()
    indicator_points: float = Field(default=8, ge=0)
    chars_per_point: float = Field(default=5, gt=0)

    words_per_response_factor: float = Field(default=3, ge=0)
    communication_response_points: float = Field(default=5, ge=0)
    engagement_response_points: float = Field(default=8, ge=0)

    min_duration_seconds: float = Field(default=120, gt=0)

    strength_threshold: int = Field(default=70, ge=0, le=100)
    weakness_threshold: int = Field(default=50, ge=0, le=100)
    strong_band: int = Field(default=80, ge=0, le=100)
    insight_keywords: tuple[str, ...] = ()
    red_flag_phrases: tuple[str, ...] = ()

    filler_words: tuple[str, ...] = ()
    hesitation_words: tuple[str, ...] = ()
    default_response_confidence: float = Field(default=0.8, ge=0.0, le=1.0)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "ScoringPolicy":
        def section(name: str) -> dict[str, Any]:
            value = config.get(name) or {}
            return value if isinstance(value, dict) else {}

        blend = section("blend")
        decision = section("decision")
        external = section("external_signal")
        technical = section("technical")
        safety = section("safety")
        experience = section("experience")
        communication = section("communication")
        engagement = section("engagement")
        completion = section("completion")
        insights = section("insights")
        voice = section("voice_analysis")

        values: dict[str, Any] = {
            "weights": blend.get("weights") or {},
            "pass_threshold": decision.get("pass_threshold"),
            "top_performer_threshold": decision.get("top_performer_threshold"),
            "positive_floor": external.get("positive_floor"),
            "negative_ceiling": external.get("negative_ceiling"),
            "primary_points": technical.get("primary_points"),
            "safety_points": technical.get("safety_points"),
            "secondary_points": technical.get("secondary_points"),
            "safety_hard_gate": safety.get("hard_gate"),
            "safety_full_marks_hits": safety.get("full_marks_hits"),
            "critical_failure_message": safety.get("critical_failure_message"),
            "experience_indicators": experience.get("indicators"),
            "indicator_points": experience.get("indicator_points"),
            "chars_per_point": experience.get("chars_per_point"),
            "words_per_response_factor": communication.get("words_per_response_factor"),
            "communication_response_points": communication.get("response_points"),
            "engagement_response_points": engagement.get("response_points"),
            "min_duration_seconds": completion.get("min_duration_seconds"),
            "strength_threshold": insights.get("strength_threshold"),
            "weakness_threshold": insights.get("weakness_threshold"),
            "strong_band": insights.get("strong_band"),
            "insight_keywords": insights.get("keywords"),
            "red_flag_phrases": insights.get("red_flag_phrases"),
            "filler_words": voice.get("filler_words"),
            "hesitation_words": voice.get("hesitation_words"),
            "default_response_confidence": voice.get("default_response_confidence"),
        }
        clean = {key: value for key, value in values.items() if value is not None}
        for key in ("experience_indicators", "insight_keywords", "red_flag_phrases", "filler_words", "hesitation_words"):
            if key in clean:
                clean[key] = tuple(str(term).strip().lower() for term in clean[key] if str(term).strip())
        try:
            return cls.model_validate(clean)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid scoring policy: {exc}") from exc


@lru_cache(maxsize=1)
def get_scoring_policy() -> ScoringPolicy:
    return ScoringPolicy.from_config(get_scoring_config())
