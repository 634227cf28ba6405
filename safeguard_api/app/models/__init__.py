"""Initialize the models package."""

from .analysis_summary import AnalysisSummary, CategoryScore, Severity, Verdict
from .analyze_request import AnalyzeRequest
from .error_response import ErrorResponse
from .moderation_response import ModerationResponse, ModerationResult

__all__ = [
    "AnalysisSummary",
    "AnalyzeRequest",
    "CategoryScore",
    "ErrorResponse",
    "ModerationResponse",
    "ModerationResult",
    "Severity",
    "Verdict",
]
