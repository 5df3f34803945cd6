from __future__ import annotations

import logging
import time

from app.ai.types import TextGenerator
from app.core.config import EngineConfig, resolve_engine_config
from app.core.errors import LowConfidenceRejection
from app.features.gap_analysis import analyze_gap_assisted
from app.features.quality_gate import validate_output
from app.features.scorer import score_resume
from app.normalize.normalize_jd import extract_job_spec_with_warnings
from app.normalize.normalize_resume import structure_resume
from app.parsing.parse import ensure_usable_text
from app.schemas.analysis import EngineMetadata, FullAnalysis, GenerationResult, ParseResult

from .rewriter import rewrite_resume

logger = logging.getLogger(__name__)

SAFE_MODE_WARNING = "Safe mode: parse confidence was too low to rewrite safely, so the original resume is returned."


def build_evidence_pool(raw_resume_text: str, parse_result: ParseResult) -> list[str]:
    """Strings whose numbers a rewrite may legitimately repeat."""
    return [raw_resume_text, *parse_result.evidence_map.metrics]


def run_generation(
    resume_text: str,
    job_text: str,
    *,
    generator: TextGenerator | None = None,
    config: EngineConfig | None = None,
    prefer_heuristic_job: bool = False,
) -> GenerationResult:
    """One sequential generation run.

    Structurer, job spec, score before, gap, rewrite, quality gate, score
    after. Raises ExtractionFailure, LowConfidenceRejection and the
    structuring errors; everything after structuring degrades to heuristics
    and reports warnings instead.
    """
    cfg = resolve_engine_config(config)
    started = time.perf_counter()
    resume_text = ensure_usable_text(resume_text)

    parse_result = structure_resume(resume_text, generator=generator, config=cfg)
    if parse_result.should_reject(cfg):
        logger.info(
            "generation_rejected_low_confidence confidence=%s threshold=%s",
            parse_result.confidence,
            cfg.confidence.thresholds.reject,
        )
        raise LowConfidenceRejection(
            parse_result.confidence,
            parse_result.warnings,
            threshold=cfg.confidence.thresholds.reject,
        )

    warnings: list[str] = []
    job_spec, job_warnings = extract_job_spec_with_warnings(
        job_text,
        generator=generator,
        config=cfg,
        prefer_heuristic=prefer_heuristic_job,
    )
    warnings.extend(job_warnings)

    original = parse_result.resume
    before_score = score_resume(original, job_spec, config=cfg)

    gap_report, gap_warnings = analyze_gap_assisted(original, job_spec, generator=generator, config=cfg)
    warnings.extend(gap_warnings)

    if parse_result.safe_mode_required:
        rewritten = original.model_copy(deep=True)
        rewrite_source = "heuristic"
        warnings.append(SAFE_MODE_WARNING)
    else:
        outcome = rewrite_resume(
            original,
            job_spec,
            gap_report,
            parse_result.evidence_map,
            generator=generator,
            config=cfg,
        )
        rewritten = outcome.resume
        rewrite_source = outcome.source
        warnings.extend(outcome.warnings)

    quality_gate = validate_output(
        rewritten,
        original,
        build_evidence_pool(resume_text, parse_result),
        parse_result.evidence_map,
        config=cfg,
    )
    after_score = score_resume(rewritten, job_spec, config=cfg)

    failure_reason = None
    if quality_gate.status == "failed":
        failure_reason = f"Quality gate failed: {quality_gate.issues[0]}" if quality_gate.issues else "Quality gate failed"

    metadata = EngineMetadata(
        engine_version=cfg.engine.version,
        prompt_version=cfg.engine.prompt_version,
        model_used=generator.model_name if generator is not None else "heuristic",
        job_title=job_spec.title,
        quality_gate_status=quality_gate.status,
        quality_gate_issues=quality_gate.issues,
        parser_confidence=parse_result.confidence,
        parser_warnings=parse_result.warnings,
        parser_missing_fields=parse_result.missing_fields,
        rewrite_source=rewrite_source,
        failure_reason=failure_reason,
    )

    logger.info(
        "generation_completed confidence=%s gate=%s before=%s after=%s rewrite_source=%s warnings=%s latency_ms=%s",
        parse_result.confidence,
        quality_gate.status,
        before_score.total,
        after_score.total,
        rewrite_source,
        len(warnings),
        int((time.perf_counter() - started) * 1000),
    )

    return GenerationResult(
        parse_result=parse_result,
        job_spec=job_spec,
        rewritten=rewritten,
        quality_gate=quality_gate,
        analysis=FullAnalysis(
            before_score=before_score,
            after_score=after_score,
            gap_report=gap_report,
            metadata=metadata,
        ),
        warnings=warnings,
    )
