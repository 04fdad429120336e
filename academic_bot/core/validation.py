"""
Schema validation for intake requests, source records and drafts.

Validation never raises past this module: every call yields a
ValidationResult with per-field messages.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

MIN_SOURCE_YEAR = 2020


class IntakeSchema(BaseModel):
    """Assignment intake."""

    topic: str = Field(..., min_length=1)
    user_type: Literal["student", "tutor", "mixed", "guest"]
    format: Literal["APA", "MLA", "Chicago"] = "APA"
    length: int = Field(default=5, ge=1, le=50)
    deadline: Optional[date] = None
    tags: list[str] = Field(default_factory=list)

    @field_validator("topic")
    @classmethod
    def topic_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic must not be blank")
        return value


class SourceSchema(BaseModel):
    """Source record accepted into a search batch."""

    title: str = Field(..., min_length=1)
    doi: str = Field(..., min_length=1)
    authors: list[str] = Field(default_factory=list)
    year: Optional[int] = None
    abstract: Optional[str] = None
    url: Optional[str] = Field(default=None, pattern=r"^https?://")
    external_citation_key: Optional[str] = None

    @field_validator("year")
    @classmethod
    def year_in_range(cls, value: Optional[int]) -> Optional[int]:
        if value is None:
            return value
        current_year = date.today().year
        if not MIN_SOURCE_YEAR <= value <= current_year:
            raise ValueError(
                f"year must be between {MIN_SOURCE_YEAR} and {current_year}"
            )
        return value


class DraftSchema(BaseModel):
    """Generated draft."""

    topic: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    format: Literal["APA", "MLA", "Chicago"] = "APA"
    length: int = Field(default=5, ge=1, le=50)
    sources: list[dict[str, Any]] = Field(default_factory=list)
    plagiarism_score: Optional[float] = Field(default=None, ge=0, le=1)


SCHEMAS: dict[str, type[BaseModel]] = {
    "intake": IntakeSchema,
    "source": SourceSchema,
    "draft": DraftSchema,
}


@dataclass
class ValidationResult:
    """Outcome of a validation call."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    data: Optional[BaseModel] = None


def _format_error(error: dict) -> str:
    location = ".".join(str(part) for part in error["loc"]) or "value"
    return f"{location}: {error['msg']}"


def validate_data(kind: str, data: dict[str, Any]) -> ValidationResult:
    """
    Validate a payload against one of the schemas.

    Args:
        kind: 'intake', 'source' or 'draft'
        data: Raw payload

    Returns:
        ValidationResult with the parsed model or the per-field messages
    """
    schema = SCHEMAS.get(kind)
    if schema is None:
        return ValidationResult(False, [f"Unknown validation type: {kind}"])

    try:
        model = schema.model_validate(data)
    except ValidationError as e:
        return ValidationResult(False, [_format_error(err) for err in e.errors()])

    return ValidationResult(True, [], model)
