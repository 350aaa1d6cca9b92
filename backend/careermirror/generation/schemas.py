"""Pydantic schemas for the interview transcript and the two generated documents.

The document models double as the JSON schema sent to the model and as the validator
applied to its answer. Unknown fields are kept, so new optional fields can be added to
the prompts without breaking stored documents; required fields must never be removed.
"""

from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Document(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )


# ── Transcript ────────────────────────────────────────────────────────


class Message(BaseModel):
    """A single interview turn."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    role: Literal["user", "model"]
    text: str


# ── Professional resume ───────────────────────────────────────────────


class PersonalInfo(_Document):
    name: str
    email: str = ""
    phone: str = ""
    location: str = ""
    linkedin: str | None = None
    portfolio: str | None = None


class ExperienceEntry(_Document):
    company: str
    position: str
    duration: str = ""
    achievements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)


class EducationEntry(_Document):
    institution: str
    degree: str
    field: str = ""
    year: str = ""
    achievements: list[str] | None = None


class SkillSet(_Document):
    technical: list[str] = Field(default_factory=list)
    soft: list[str] = Field(default_factory=list)


class ProjectEntry(_Document):
    title: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    impact: str


class ProfessionalResume(_Document):
    personal_info: PersonalInfo
    summary: str
    experience: list[ExperienceEntry]
    education: list[EducationEntry] = Field(default_factory=list)
    skills: SkillSet
    projects: list[ProjectEntry] = Field(default_factory=list)
    certifications: list[str] | None = None
    languages: list[str] | None = None


# ── Career insights ───────────────────────────────────────────────────


class PersonalityProfile(_Document):
    work_style: str
    strengths: list[str] = Field(default_factory=list)
    preferences: list[str] = Field(default_factory=list)


class IdealRole(_Document):
    title: str
    reasoning: str
    match_score: float = Field(ge=0, le=100)


class Environments(_Document):
    preferred: list[str]
    to_avoid: list[str]


class CareerPath(_Document):
    short_term: list[str]
    long_term: list[str]


class CareerInsights(_Document):
    personality_profile: PersonalityProfile
    ideal_roles: list[IdealRole] = Field(min_length=4, max_length=6)
    environments: Environments
    career_path: CareerPath
    red_flags: list[str]
    recommendations: list[str]


# ── Combined output ───────────────────────────────────────────────────


class FinalOutput(BaseModel):
    """Both documents from one successful generation. Immutable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    professional_resume: ProfessionalResume
    career_insights: CareerInsights
