"""Response models for the presentation summary of a moderation result."""

from typing import Literal

from pydantic import BaseModel, Field

Severity = Literal["safe", "warning", "danger"]


class CategoryScore(BaseModel):
    key: str = Field(..., description="Provider category key, e.g. 'hate/threatening'")
    name: str = Field(..., description="Display label of the category")
    score: int = Field(..., ge=0, le=100, description="Percentage score")
    raw: float = Field(..., ge=0.0, le=1.0, description="Score as a fraction")
    severity: Severity = Field(..., description="Severity band of the score")


class Verdict(BaseModel):
    severity: Severity
    title: str
    subtitle: str


class AnalysisSummary(BaseModel):
    overall: int = Field(..., ge=0, le=100, description="Overall percentage score")
    severity: Severity = Field(..., description="Severity band of the overall score")
    verdict: Verdict
    flagged: bool = Field(..., description="Whether the provider flagged the input")
    categories: list[CategoryScore] = Field(
        ..., description="Category scores in fixed display order"
    )
