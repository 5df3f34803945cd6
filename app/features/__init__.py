from .gap_analysis import analyze_gap, analyze_gap_assisted
from .quality_gate import DEFAULT_CHECKS, GateCheck, GateInputs, validate_output
from .scorer import score_resume

__all__ = [
    "analyze_gap",
    "analyze_gap_assisted",
    "score_resume",
    "GateCheck",
    "GateInputs",
    "DEFAULT_CHECKS",
    "validate_output",
]
