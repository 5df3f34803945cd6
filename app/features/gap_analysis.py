from __future__ import annotations

import logging
from typing import Any

from app.ai.prompts import build_gap_prompt
from app.ai.retry import generate_json
from app.ai.types import TextGenerator
from app.core.config import EngineConfig, resolve_engine_config
from app.core.errors import GenerationError, QuotaExceeded
from app.normalize.utils import includes_normalized, normalize_for_match
from app.schemas.normalized import (
    CanonicalResume,
    GapReport,
    JobSpec,
    MatchedKeyword,
    MatchedKeywordLocation,
    TransferableSkill,
)
from app.taxonomy import TaxonomyProvider, get_default_taxonomy_provider

logger = logging.getLogger(__name__)

_SECTION_ORDER: tuple[MatchedKeywordLocation, ...] = ("skills", "experience", "projects", "summary", "certifications")


def section_corpora(resume: CanonicalResume) -> dict[MatchedKeywordLocation, str]:
    """Normalized text per resume section used for keyword containment."""
    projects_text = " ".join(
        " ".join([project.name, project.description, " ".join(project.technologies)]) for project in resume.projects
    )
    return {
        "skills": normalize_for_match(" ".join(resume.skills)),
        "experience": normalize_for_match(
            " ".join(" ".join([entry.role, entry.company, *entry.bullets]) for entry in resume.experience)
        ),
        "projects": normalize_for_match(projects_text),
        "summary": normalize_for_match(resume.summary),
        "certifications": normalize_for_match(" ".join(resume.certifications)),
    }


def resume_corpus(resume: CanonicalResume) -> str:
    """Everything a keyword may be matched against, normalized once."""
    parts = [
        resume.summary,
        " ".join(resume.skills),
        " ".join(resume.certifications),
        " ".join(resume.achievements),
        " ".join(" ".join([entry.role, entry.company, *entry.bullets]) for entry in resume.experience),
        " ".join(
            " ".join([project.name, project.description, " ".join(project.technologies)]) for project in resume.projects
        ),
        " ".join(" ".join([entry.degree, entry.school]) for entry in resume.education),
        " ".join(item for section in resume.custom_sections for item in [section.title, *section.items]),
    ]
    return normalize_for_match(" ".join(parts))


def _recommendation(keyword: str) -> str:
    return f"Show evidence of '{keyword}' in your summary or bullets if you have real experience with it."


def _transferable_skills(
    missing: list[str],
    resume: CanonicalResume,
    taxonomy: TaxonomyProvider,
    limit: int,
) -> list[TransferableSkill]:
    suggestions: list[TransferableSkill] = []
    for target in missing:
        best: TransferableSkill | None = None
        for source in resume.skills:
            tier = taxonomy.relation(source, target)
            if tier is None:
                continue
            if best is None or (tier == "high" and best.confidence != "high"):
                best = TransferableSkill(source_skill=source, target_skill=target, confidence=tier)
        if best is not None:
            suggestions.append(best)
        if len(suggestions) >= limit:
            break
    return suggestions


def analyze_gap(
    resume: CanonicalResume,
    job_spec: JobSpec,
    *,
    config: EngineConfig | None = None,
    taxonomy: TaxonomyProvider | None = None,
) -> GapReport:
    """Deterministic keyword gap between a structured resume and a job spec."""
    cfg = resolve_engine_config(config)
    sections = section_corpora(resume)
    corpus = resume_corpus(resume)

    matched: list[MatchedKeyword] = []
    missing: list[str] = []
    for keyword in job_spec.keyword_universe():
        if not includes_normalized(corpus, keyword):
            missing.append(keyword)
            continue
        found_in = [section for section in _SECTION_ORDER if includes_normalized(sections[section], keyword)]
        matched.append(MatchedKeyword(keyword=keyword, found_in=found_in or ["experience"]))

    return GapReport(
        matched_keywords=matched,
        missing_keywords=missing,
        transferable_skills=_transferable_skills(
            missing,
            resume,
            taxonomy or get_default_taxonomy_provider(),
            cfg.gap.max_transferable,
        ),
        recommendations=[_recommendation(keyword) for keyword in missing[: cfg.gap.max_recommendations]],
    )


def _merge_gap_payload(payload: dict[str, Any], baseline: GapReport, resume: CanonicalResume) -> GapReport:
    """Matched and missing keywords stay the deterministic ones; the model adds transfer suggestions and advice."""
    matched_keys = {item.keyword.lower() for item in baseline.matched_keywords}
    evidence_skills = {skill.lower() for skill in resume.skills}

    transferable = list(baseline.transferable_skills)
    seen_pairs = {(item.source_skill.lower(), item.target_skill.lower()) for item in transferable}
    for item in payload.get("transferableSkills") or []:
        if not isinstance(item, dict):
            continue
        source = str(item.get("sourceSkill") or "").strip()
        target = str(item.get("targetSkill") or "").strip()
        confidence = str(item.get("confidence") or "").strip().lower()
        if not source or not target or source.lower() not in evidence_skills or target.lower() in matched_keys:
            continue
        if confidence not in {"high", "medium", "low"} or (source.lower(), target.lower()) in seen_pairs:
            continue
        seen_pairs.add((source.lower(), target.lower()))
        transferable.append(TransferableSkill(source_skill=source, target_skill=target, confidence=confidence))

    recommendations = [
        item.strip() for item in payload.get("recommendations") or [] if isinstance(item, str) and item.strip()
    ]
    return GapReport(
        matched_keywords=list(baseline.matched_keywords),
        missing_keywords=list(baseline.missing_keywords),
        transferable_skills=transferable,
        recommendations=recommendations or baseline.recommendations,
    )


def analyze_gap_assisted(
    resume: CanonicalResume,
    job_spec: JobSpec,
    *,
    generator: TextGenerator | None,
    config: EngineConfig | None = None,
) -> tuple[GapReport, list[str]]:
    """Model-assisted gap report; falls back to the deterministic report with a warning on any failure."""
    baseline = analyze_gap(resume, job_spec, config=config)
    if generator is None:
        return baseline, []

    try:
        payload = generate_json(generator, build_gap_prompt(resume, job_spec), temperature=0.2, label="gap_analysis")
    except QuotaExceeded:
        logger.warning("gap_analysis_llm_quota_exceeded model=%s; using deterministic gap", generator.model_name)
        return baseline, ["Gap analysis used keyword matching because the AI quota was exceeded."]
    except GenerationError as exc:
        logger.warning("gap_analysis_llm_failed model=%s code=%s: %s", generator.model_name, exc.code, exc)
        return baseline, ["Gap analysis used keyword matching because the AI analyzer was unavailable."]
    except Exception as exc:  # noqa: BLE001 - deterministic fallback is expected
        logger.warning("gap_analysis_llm_unexpected_error model=%s: %s", generator.model_name, exc)
        return baseline, ["Gap analysis used keyword matching because the AI analyzer was unavailable."]

    return _merge_gap_payload(payload, baseline, resume), []
