from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

Seniority = Literal["entry", "mid", "senior"]


class JobSpec(BaseModel):
    title: str = ""
    company_name: str = ""
    location: str = ""
    seniority: Seniority = "mid"
    must_have_skills: list[str] = Field(default_factory=list)
    nice_to_have_skills: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)
    exact_phrases: list[str] = Field(default_factory=list)
    responsibilities: list[str] = Field(default_factory=list)
    domain_terms: list[str] = Field(default_factory=list)

    @field_validator("seniority", mode="before")
    @classmethod
    def _normalize_seniority(cls, value: object) -> str:
        normalized = str(value or "").strip().lower()
        if normalized not in {"entry", "mid", "senior"}:
            raise ValueError("seniority must be 'entry', 'mid' or 'senior'")
        return normalized

    def keyword_universe(self) -> list[str]:
        seen: set[str] = set()
        keywords: list[str] = []
        for keyword in [*self.must_have_skills, *self.nice_to_have_skills, *self.exact_phrases]:
            cleaned = keyword.strip()
            key = cleaned.lower()
            if not cleaned or key in seen:
                continue
            seen.add(key)
            keywords.append(cleaned)
        return keywords
