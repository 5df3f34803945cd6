from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PhotoSource = Literal["uploaded", "extracted", "unknown"]


class Contact(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    location: str = ""


class ExperienceEntry(BaseModel):
    role: str = ""
    company: str = ""
    start_date: str = ""
    end_date: str = ""
    bullets: list[str] = Field(default_factory=list)


class ProjectEntry(BaseModel):
    name: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)
    url: str | None = None


class EducationEntry(BaseModel):
    degree: str = ""
    school: str = ""
    date: str = ""


class CustomSection(BaseModel):
    title: str = ""
    items: list[str] = Field(default_factory=list)


class Photo(BaseModel):
    data_url: str
    source: PhotoSource = "unknown"


class CanonicalResume(BaseModel):
    contact: Contact = Field(default_factory=Contact)
    summary: str = ""
    experience: list[ExperienceEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    custom_sections: list[CustomSection] = Field(default_factory=list)
    portfolio_links: list[str] = Field(default_factory=list)
    photo: Photo | None = None

    def all_bullets(self) -> list[str]:
        return [bullet for entry in self.experience for bullet in entry.bullets]
