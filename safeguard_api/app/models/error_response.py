"""Payload returned for every failed request."""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Stable error code")
    details: str = Field(..., description="Human readable explanation")
