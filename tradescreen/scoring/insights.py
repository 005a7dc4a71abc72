from __future__ import annotations

from tradescreen.schemas.assessment import AIInsights, ResponseQuality

from .blender import Decision, SubScores
from .policy import ScoringPolicy

DEFAULT_STRENGTH = "Completed the interview"

_STRENGTHS = {
    "communication": "Clear communication skills",
    "technical": "Good technical knowledge",
    "experience": "Relevant experience",
    "engagement": "Active participation",
}
_WEAKNESSES = {
    "communication": "Communication could be improved",
    "technical": "Limited technical knowledge demonstrated",
    "experience": "Needs more relevant experience",
    "engagement": "Limited engagement in interview",
}
_BASIC_LABELS = {
    "engagement": ("Completed the full interview duration", "Session ended earlier than expected"),
}

# (passed, band) -> recommendations
_RECOMMENDATIONS: dict[tuple[bool, str], list[str]] = {
    (True, "strong"): [
        "Strong candidate - proceed to next interview round",
        "Consider for senior-level positions",
    ],
    (True, "standard"): [
        "Suitable candidate - proceed with standard process",
        "May benefit from additional training",
    ],
    (False, "strong"): [
        "Review flagged concerns before making a decision",
        "Confirm safety knowledge in a follow-up conversation",
    ],
    (False, "standard"): [
        "Does not meet minimum requirements",
        "Consider for entry-level positions with training",
    ],
}


def score_band(score: int, policy: ScoringPolicy) -> str:
    return "strong" if score >= policy.strong_band else "standard"


def response_quality(score: int, policy: ScoringPolicy) -> ResponseQuality:
    if score >= policy.strong_band:
        return "Excellent"
    if score >= policy.pass_threshold:
        return "Good"
    return "Needs Improvement"


def next_step(decision: Decision) -> str:
    if decision.critical_failures:
        return "Hold for HR safety review"
    if decision.passed:
        return "Proceed to next round"
    return "Consider alternative opportunities"


def generate_insights(
    sub_scores: SubScores,
    decision: Decision,
    policy: ScoringPolicy,
    *,
    basic_mode: bool = False,
    keyword_matches: list[str] | None = None,
    risk_factors: list[str] | None = None,
) -> AIInsights:
    strengths: list[str] = []
    weaknesses: list[str] = []

    for name in ("communication", "technical", "experience", "engagement"):
        value = getattr(sub_scores, name)
        strength_text = _STRENGTHS[name]
        weakness_text = _WEAKNESSES[name]
        if basic_mode and name in _BASIC_LABELS:
            strength_text, weakness_text = _BASIC_LABELS[name]
        if value >= policy.strength_threshold:
            strengths.append(strength_text)
        elif value < policy.weakness_threshold:
            weaknesses.append(weakness_text)

    if decision.external_signal is True:
        strengths.append("Voice platform evaluated the interview as successful")
    elif decision.external_signal is False:
        weaknesses.append("Voice platform flagged interview concerns")

    if not strengths:
        strengths.append(DEFAULT_STRENGTH)

    recommendations = list(_RECOMMENDATIONS[(decision.passed, score_band(decision.overall_score, policy))])
    risks = list(risk_factors or [])
    for failure in decision.critical_failures:
        if failure not in risks:
            risks.append(failure)
    if decision.critical_failures:
        recommendations.append("Verify safety training and certifications before any placement")

    return AIInsights(
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        risk_factors=risks,
        next_steps=next_step(decision),
        keyword_matches=list(keyword_matches or []),
        response_quality=response_quality(decision.overall_score, policy),
    )
