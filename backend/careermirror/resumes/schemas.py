"""Resume record, update/save request schemas and row builders shared by both backends."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..generation.schemas import CareerInsights, FinalOutput, Message, ProfessionalResume
from ..storage.mapping import Record

UNTITLED = "Untitled Resume"
DEFAULT_TEMPLATE = "classic"

# Fields whose change produces a new version of the document
VERSIONED_FIELDS = frozenset({"professional_resume_data", "career_insights_data"})


class ResumeRecord(Record):
    id: UUID
    user_id: UUID
    title: str
    version: int = 1
    professional_resume_data: dict[str, Any]
    career_insights_data: dict[str, Any]
    conversation_history: list[Message] = Field(default_factory=list)
    template: str = DEFAULT_TEMPLATE
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class ResumeUpdate(BaseModel):
    """Partial update. Identity, ownership, version and activity are not updatable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str | None = Field(None, min_length=1, max_length=255)
    professional_resume_data: ProfessionalResume | None = None
    career_insights_data: CareerInsights | None = None
    conversation_history: list[Message] | None = None
    template: str | None = Field(None, min_length=1, max_length=50)


class SaveResumeRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    professional_resume: ProfessionalResume
    career_insights: CareerInsights
    conversation_history: list[Message] = Field(default_factory=list)

    def to_output(self) -> FinalOutput:
        return FinalOutput(
            professional_resume=self.professional_resume,
            career_insights=self.career_insights,
        )


class GenerateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    conversation_history: list[Message]


def derive_title(content: FinalOutput) -> str:
    name = content.professional_resume.personal_info.name
    return name.strip() if name and name.strip() else UNTITLED


def new_resume_values(owner_id: UUID, content: FinalOutput, transcript: list[Message]) -> dict[str, Any]:
    """Column values for a freshly generated resume (timestamps and id excluded)."""
    return {
        "user_id": owner_id,
        "title": derive_title(content),
        "version": 1,
        "professional_resume_data": content.professional_resume.model_dump(mode="json", by_alias=True),
        "career_insights_data": content.career_insights.model_dump(mode="json", by_alias=True),
        # Frozen copy: later edits to the caller's list must not leak into the record
        "conversation_history": [m.model_dump(mode="json") for m in transcript],
        "template": DEFAULT_TEMPLATE,
        "is_active": True,
    }


def update_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Validate a camelCase partial update and return JSON-safe column values.

    Raises ValueError (pydantic.ValidationError) on unknown or immutable keys.
    """
    update = ResumeUpdate.model_validate(fields)
    values: dict[str, Any] = {}
    for name in update.model_fields_set:
        value = getattr(update, name)
        if value is None:
            continue
        if isinstance(value, BaseModel):
            values[name] = value.model_dump(mode="json", by_alias=True)
        elif name == "conversation_history":
            values[name] = [m.model_dump(mode="json") for m in value]
        else:
            values[name] = value
    return values
