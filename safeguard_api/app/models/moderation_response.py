"""Models mirroring the moderation provider's response envelope."""

from pydantic import BaseModel, ConfigDict, Field


class ModerationResult(BaseModel):
    """Classification of one input as returned by the provider.

    Only ``flagged`` and ``categories`` are relied upon. Everything else the
    provider sends (``category_scores``, ``category_applied_input_types``)
    is kept as extra data and passed through untouched.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    flagged: bool = Field(..., description="Whether any category was flagged")
    categories: dict[str, bool] = Field(
        ..., description="Per-category boolean flags keyed by category name"
    )


class ModerationResponse(BaseModel):
    model_config = ConfigDict(extra="allow", frozen=True)

    id: str | None = Field(default=None, description="Provider request identifier")
    model: str | None = Field(default=None, description="Model that classified the input")
    results: list[ModerationResult] = Field(
        ...,
        min_length=1,
        max_length=1,
        description="Exactly one classification, for the single input sent",
    )

    @property
    def result(self) -> ModerationResult:
        return self.results[0]
