from __future__ import annotations

from dataclasses import dataclass, field

from .calculators import as_int_score
from .policy import BlendWeights, ScoringPolicy


@dataclass(frozen=True)
class SubScores:
    communication: float
    technical: float
    experience: float
    # Engagement on the transcript path, completion on the basic path.
    engagement: float


@dataclass(frozen=True)
class Decision:
    internal_score: int
    overall_score: int
    passed: bool
    external_signal: bool | None = None
    critical_failures: list[str] = field(default_factory=list)


def blend(sub_scores: SubScores, weights: BlendWeights) -> int:
    total = (
        sub_scores.communication * weights.communication
        + sub_scores.technical * weights.technical
        + sub_scores.experience * weights.experience
        + sub_scores.engagement * weights.engagement
    )
    return as_int_score(total)


def apply_external_signal(score: int, signal: bool | None, policy: ScoringPolicy) -> int:
    """Clamp toward the vendor's verdict without letting it override strong evidence."""
    if signal is True:
        return max(score, policy.positive_floor)
    if signal is False:
        return min(score, policy.negative_ceiling)
    return score


def decide(
    sub_scores: SubScores,
    policy: ScoringPolicy,
    *,
    external_signal: bool | None = None,
    critical_failures: list[str] | None = None,
) -> Decision:
    internal = blend(sub_scores, policy.weights)
    overall = as_int_score(apply_external_signal(internal, external_signal, policy))
    failures = list(critical_failures or [])
    passed = overall >= policy.pass_threshold and not failures
    return Decision(
        internal_score=internal,
        overall_score=overall,
        passed=passed,
        external_signal=external_signal,
        critical_failures=failures,
    )
