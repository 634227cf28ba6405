"""Turns a moderation result into the scores and verdict shown to users."""

import logging
import math
from datetime import datetime

from safeguard_api.app.models import (
    AnalysisSummary,
    CategoryScore,
    ModerationResult,
    Severity,
    Verdict,
)

logger = logging.getLogger(__name__)

# Display order of the summary follows this mapping, not the provider payload.
CATEGORY_LABELS: dict[str, str] = {
    "hate": "Hate",
    "harassment": "Harassment",
    "self-harm": "Self Harm",
    "sexual": "Sexual Content",
    "violence": "Violence",
    "hate/threatening": "Hate / Threat",
    "harassment/threatening": "Harassment / Threat",
}

FLAGGED_SCORE = 85
UNFLAGGED_SCORE = 5

WARNING_THRESHOLD = 30
DANGER_THRESHOLD = 70

VERDICTS: dict[str, tuple[str, str]] = {
    "safe": ("Content Safe", "No significant harmful content detected"),
    "warning": ("Moderate Risk Detected", "Some potentially harmful content found"),
    "danger": ("High Risk Content", "Significant harmful content detected"),
}


def severity_for(score: int) -> Severity:
    """Band a percentage score into safe, warning or danger."""
    if score < WARNING_THRESHOLD:
        return "safe"
    if score < DANGER_THRESHOLD:
        return "warning"
    return "danger"


def verdict_for(score: int) -> Verdict:
    severity = severity_for(score)
    title, subtitle = VERDICTS[severity]
    return Verdict(severity=severity, title=title, subtitle=subtitle)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def summarize(result: ModerationResult) -> AnalysisSummary:
    """Summarize a moderation result as percentage scores.

    Each known category present in ``result.categories`` scores 85 when
    flagged and 5 otherwise. The overall score is the rounded mean of the
    present category scores. A result with none of the known categories
    yields an overall score of 0 and no category rows.

    Args:
        result: The single classification returned by the provider.

    Returns:
        AnalysisSummary with categories in CATEGORY_LABELS order.
    """
    categories: list[CategoryScore] = []
    total = 0

    for key, label in CATEGORY_LABELS.items():
        if key not in result.categories:
            continue
        score = FLAGGED_SCORE if result.categories[key] else UNFLAGGED_SCORE
        categories.append(
            CategoryScore(
                key=key,
                name=label,
                score=score,
                raw=score / 100,
                severity=severity_for(score),
            )
        )
        total += score

    if categories:
        overall = _round_half_up(total / len(categories))
        if result.flagged:
            overall = min(100, overall)
    else:
        logger.warning("Moderation result contained no known categories")
        overall = 0

    return AnalysisSummary(
        overall=overall,
        severity=severity_for(overall),
        verdict=verdict_for(overall),
        flagged=result.flagged,
        categories=categories,
    )


def render_report(summary: AnalysisSummary, generated_at: datetime) -> str:
    """Render a summary as the plain-text report users can copy."""
    lines = [
        "=== HATE SPEECH ANALYSIS REPORT ===",
        "",
        f"Overall Toxicity Score: {summary.overall}%",
        "",
        "Category Breakdown:",
        "─────────────────────",
    ]
    for category in summary.categories:
        bar = "█" * (category.score // 5)
        lines.append(f"{category.name.ljust(20)} {category.score}% {bar}")
    lines.extend(
        [
            "",
            "─────────────────────",
            f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S')}",
            "SafeGuard Hate Speech Detector",
        ]
    )
    return "\n".join(lines) + "\n"
