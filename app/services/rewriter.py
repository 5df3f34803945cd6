from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Literal

from app.ai.prompts import build_rewrite_prompt
from app.ai.retry import generate_json
from app.ai.types import TextGenerator
from app.core.config import EngineConfig, resolve_engine_config
from app.core.errors import GenerationError, QuotaExceeded
from app.normalize.evidence import URL_RE
from app.normalize.utils import includes_normalized, normalize_for_match, normalize_line, unique_casefold
from app.schemas.normalized import CanonicalResume, EvidenceMap, GapReport, JobSpec

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RewriteOutcome:
    resume: CanonicalResume
    source: Literal["llm", "heuristic"]
    warnings: list[str] = field(default_factory=list)


def lock_skills(candidates: list[str], evidence_map: EvidenceMap) -> list[str]:
    """Keep only evidence-backed skills; an empty result falls back to the evidence list itself."""
    allowed = {skill.strip().lower() for skill in evidence_map.skills if skill.strip()}
    kept = unique_casefold([skill for skill in candidates if skill.strip().lower() in allowed])
    return kept or list(evidence_map.skills)


def _job_keywords(job_spec: JobSpec, gap_report: GapReport) -> list[str]:
    return unique_casefold([*job_spec.keyword_universe(), *(item.keyword for item in gap_report.matched_keywords)])


def heuristic_rewrite(
    resume: CanonicalResume,
    job_spec: JobSpec,
    gap_report: GapReport,
    evidence_map: EvidenceMap,
) -> CanonicalResume:
    """Deterministic tailoring: reorder, never invent."""
    keywords = _job_keywords(job_spec, gap_report)

    def relevance(text: str) -> int:
        normalized = normalize_for_match(text)
        return sum(1 for keyword in keywords if includes_normalized(normalized, keyword))

    rewritten = resume.model_copy(deep=True)
    for entry in rewritten.experience:
        bullets = [normalize_line(bullet) for bullet in entry.bullets if bullet.strip()]
        entry.bullets = sorted(bullets, key=lambda bullet: relevance(bullet) == 0)

    for project in rewritten.projects:
        project.description = normalize_line(project.description)

    rewritten.summary = normalize_line(rewritten.summary)
    locked = lock_skills(rewritten.skills, evidence_map)
    rewritten.skills = sorted(locked, key=lambda skill: relevance(skill) == 0)
    return rewritten


def _patch_items(patch: dict[str, Any], key: str) -> list[dict[str, Any]]:
    value = patch.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict) and isinstance(item.get("index"), int)]


def apply_rewrite_patch(
    resume: CanonicalResume,
    patch: dict[str, Any],
    evidence_map: EvidenceMap,
    config: EngineConfig | None = None,
) -> CanonicalResume:
    """Apply a model patch to a copy of the resume. Identity fields are never touched."""
    cfg = resolve_engine_config(config)
    rewritten = resume.model_copy(deep=True)

    summary = patch.get("summary")
    if isinstance(summary, str) and len(summary.strip()) > cfg.rewrite.min_summary_chars:
        rewritten.summary = summary.strip()

    for item in _patch_items(patch, "experienceBullets"):
        index = item["index"]
        if index < 0 or index >= len(rewritten.experience):
            continue
        original_bullets = resume.experience[index].bullets
        proposed = [bullet.strip() for bullet in item.get("bullets") or [] if isinstance(bullet, str) and bullet.strip()]
        floor = max(cfg.bullets.min_per_role, math.ceil(len(original_bullets) * cfg.rewrite.bullet_floor_ratio))
        rewritten.experience[index].bullets = proposed if len(proposed) >= floor else list(original_bullets)

    for item in _patch_items(patch, "projectDescriptions"):
        index = item["index"]
        if index < 0 or index >= len(rewritten.projects):
            continue
        proposed = item.get("description")
        if not isinstance(proposed, str) or not proposed.strip():
            continue
        description = proposed.strip()
        for url in URL_RE.findall(resume.projects[index].description):
            if url not in description:
                description = f"{description} {url}"
        rewritten.projects[index].description = description

    skills = patch.get("skills")
    candidates = [skill for skill in skills if isinstance(skill, str)] if isinstance(skills, list) else rewritten.skills
    rewritten.skills = lock_skills(candidates, evidence_map)
    return rewritten


def rewrite_resume(
    resume: CanonicalResume,
    job_spec: JobSpec,
    gap_report: GapReport,
    evidence_map: EvidenceMap,
    *,
    generator: TextGenerator | None = None,
    config: EngineConfig | None = None,
) -> RewriteOutcome:
    cfg = resolve_engine_config(config)
    if generator is None:
        return RewriteOutcome(
            resume=heuristic_rewrite(resume, job_spec, gap_report, evidence_map),
            source="heuristic",
        )

    prompt = build_rewrite_prompt(
        resume,
        job_spec,
        gap_report,
        evidence_map,
        power_verbs=cfg.power_verbs,
        min_bullets=cfg.bullets.min_per_role,
        max_bullets=cfg.bullets.max_per_role,
        max_words=cfg.bullets.max_words_rewrite,
        max_verb_repetitions=cfg.bullets.max_verb_repetitions,
    )
    try:
        patch = generate_json(generator, prompt, temperature=0.2, label="resume_rewrite")
    except QuotaExceeded:
        logger.warning("resume_rewrite_llm_quota_exceeded model=%s; using heuristic rewrite", generator.model_name)
        warning = "AI rewrite skipped because the AI quota was exceeded; a conservative rewrite was used."
    except GenerationError as exc:
        logger.warning("resume_rewrite_llm_failed model=%s code=%s: %s", generator.model_name, exc.code, exc)
        warning = "AI rewrite failed; a conservative rewrite was used."
    except Exception as exc:  # noqa: BLE001 - deterministic fallback is expected
        logger.warning("resume_rewrite_llm_unexpected_error model=%s: %s", generator.model_name, exc)
        warning = "AI rewrite failed; a conservative rewrite was used."
    else:
        return RewriteOutcome(resume=apply_rewrite_patch(resume, patch, evidence_map, cfg), source="llm")

    return RewriteOutcome(
        resume=heuristic_rewrite(resume, job_spec, gap_report, evidence_map),
        source="heuristic",
        warnings=[warning],
    )
