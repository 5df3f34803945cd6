from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from app.core.config import EngineConfig, resolve_engine_config
from app.schemas.normalized import (
    CanonicalResume,
    EvidenceMap,
    GapReport,
    JobSpec,
    ScoreBreakdown,
)

GateStatus = Literal["passed", "warning", "failed"]
StructuringSource = Literal["llm", "heuristic"]


class ParseResult(BaseModel):
    resume: CanonicalResume
    confidence: int = Field(ge=0, le=100)
    warnings: list[str] = Field(default_factory=list)
    missing_fields: list[str] = Field(default_factory=list)
    evidence_skills: list[str] = Field(default_factory=list)
    evidence_map: EvidenceMap = Field(default_factory=EvidenceMap)
    safe_mode_required: bool = False
    source: StructuringSource = "heuristic"

    def should_reject(self, config: EngineConfig | None = None) -> bool:
        return self.confidence < resolve_engine_config(config).confidence.thresholds.reject

    def needs_review(self, config: EngineConfig | None = None) -> bool:
        thresholds = resolve_engine_config(config).confidence.thresholds
        return thresholds.reject <= self.confidence < thresholds.review

    def auto_accept(self, config: EngineConfig | None = None) -> bool:
        return self.confidence >= resolve_engine_config(config).confidence.thresholds.auto_accept


class QualityGateResult(BaseModel):
    passed: bool
    status: GateStatus
    issues: list[str] = Field(default_factory=list)


class EngineMetadata(BaseModel):
    engine_version: str
    prompt_version: str
    model_used: str
    job_title: str = ""
    quality_gate_status: GateStatus
    quality_gate_issues: list[str] = Field(default_factory=list)
    parser_confidence: int
    parser_warnings: list[str] = Field(default_factory=list)
    parser_missing_fields: list[str] = Field(default_factory=list)
    rewrite_source: StructuringSource = "heuristic"
    failure_reason: str | None = None


class FullAnalysis(BaseModel):
    before_score: ScoreBreakdown
    after_score: ScoreBreakdown
    gap_report: GapReport
    metadata: EngineMetadata


class GenerationResult(BaseModel):
    parse_result: ParseResult
    job_spec: JobSpec
    rewritten: CanonicalResume
    quality_gate: QualityGateResult
    analysis: FullAnalysis
    warnings: list[str] = Field(default_factory=list)
