from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ExperienceEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str = ""
    company: str = ""
    start_date: str = ""
    end_date: str = ""


class EducationEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    degree: str = ""
    school: str = ""
    date: str = ""


class ProjectEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    description: str = ""
    technologies: tuple[str, ...] = ()
    url: str | None = None


class EvidenceEntities(BaseModel):
    model_config = ConfigDict(frozen=True)

    experiences: tuple[ExperienceEntity, ...] = ()
    education: tuple[EducationEntity, ...] = ()


class EvidenceMap(BaseModel):
    """Facts from the original parse that a rewrite may not contradict."""

    model_config = ConfigDict(frozen=True)

    entities: EvidenceEntities = Field(default_factory=EvidenceEntities)
    skills: tuple[str, ...] = ()
    projects: tuple[ProjectEvidence, ...] = ()
    links: tuple[str, ...] = ()
    metrics: tuple[str, ...] = ()
