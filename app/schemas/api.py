from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.analysis import GenerationResult
from app.schemas.normalized import CanonicalResume, EvidenceMap, JobSpec


class ResumeTextRequest(BaseModel):
    resume_text: str = Field(min_length=1, max_length=50000)
    prefer_heuristic: bool = False


class JobTextRequest(BaseModel):
    job_text: str = Field(default="", max_length=50000)
    prefer_heuristic: bool = False


class JobSpecResponse(BaseModel):
    job_spec: JobSpec
    warnings: list[str] = Field(default_factory=list)


class ResumeJobRequest(BaseModel):
    resume: CanonicalResume
    job_spec: JobSpec


class ValidateRequest(BaseModel):
    rewritten: CanonicalResume
    original: CanonicalResume
    evidence_pool: list[str] = Field(default_factory=list, max_length=500)
    evidence_map: EvidenceMap = Field(default_factory=EvidenceMap)


class GenerateRequest(BaseModel):
    resume_text: str = Field(min_length=1, max_length=50000)
    job_text: str = Field(default="", max_length=50000)
    job_url: str | None = Field(default=None, max_length=2000)
    prefer_heuristic_job: bool = False


class GenerateResponse(BaseModel):
    job_target_label: str
    result: GenerationResult


class CoverLetterRequest(BaseModel):
    resume: CanonicalResume
    job_text: str = Field(default="", max_length=50000)
    job_spec: JobSpec | None = None


class CoverLetterResponse(BaseModel):
    text: str
    source: Literal["llm", "template"]
    warnings: list[str] = Field(default_factory=list)
