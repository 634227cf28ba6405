"""Model for a single text submitted for moderation."""

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    text: str = Field(..., description="The text to screen for harmful content")
