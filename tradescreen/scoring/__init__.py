from .blender import Decision, SubScores, apply_external_signal, blend, decide
from .evaluator import Evaluation, build_assessment, evaluate_transcript
from .insights import generate_insights
from .normalizer import NormalizedTranscript, normalize_transcript
from .policy import BlendWeights, ScoringPolicy, get_scoring_policy

__all__ = [
    "BlendWeights",
    "Decision",
    "Evaluation",
    "NormalizedTranscript",
    "ScoringPolicy",
    "SubScores",
    "apply_external_signal",
    "blend",
    "build_assessment",
    "decide",
    "evaluate_transcript",
    "generate_insights",
    "get_scoring_policy",
    "normalize_transcript",
]
