from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator

MatchedKeywordLocation = Literal["skills", "experience", "projects", "summary", "certifications"]
TransferConfidence = Literal["high", "medium", "low"]


class MatchedKeyword(BaseModel):
    keyword: str
    found_in: list[MatchedKeywordLocation] = Field(default_factory=list)


class TransferableSkill(BaseModel):
    source_skill: str
    target_skill: str
    confidence: TransferConfidence = "medium"


class GapReport(BaseModel):
    matched_keywords: list[MatchedKeyword] = Field(default_factory=list)
    missing_keywords: list[str] = Field(default_factory=list)
    transferable_skills: list[TransferableSkill] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)


class ScoreDetails(BaseModel):
    missing_phrases: list[str] = Field(default_factory=list)


class ScoreBreakdown(BaseModel):
    total: int
    keyword_coverage: int
    structure_hygiene: int
    relevance_evidence: int
    impact_clarity: int
    details: ScoreDetails = Field(default_factory=ScoreDetails)

    @field_validator("total", "keyword_coverage", "structure_hygiene", "relevance_evidence", "impact_clarity")
    @classmethod
    def _validate_range(cls, value: int) -> int:
        if value < 0 or value > 100:
            raise ValueError("scores must be between 0 and 100")
        return value
