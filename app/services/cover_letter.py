from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from app.ai.prompts import build_cover_letter_prompt
from app.ai.retry import call_with_quota_retry
from app.ai.types import TextGenerator
from app.core.errors import GenerationError, QuotaExceeded
from app.normalize.utils import includes_normalized, normalize_for_match
from app.schemas.normalized import CanonicalResume, JobSpec

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CoverLetterResult:
    text: str
    source: Literal["llm", "template"]
    warnings: list[str] = field(default_factory=list)


def _proof_bullets(resume: CanonicalResume, job_spec: JobSpec, limit: int = 2) -> list[str]:
    keywords = job_spec.must_have_skills or job_spec.nice_to_have_skills
    bullets = resume.all_bullets()
    ranked = sorted(
        bullets,
        key=lambda bullet: -sum(1 for keyword in keywords if includes_normalized(normalize_for_match(bullet), keyword)),
    )
    return ranked[:limit]


def template_cover_letter(resume: CanonicalResume, job_spec: JobSpec) -> str:
    """Plain cover letter assembled only from resume facts."""
    title = job_spec.title or "this role"
    company = job_spec.company_name.strip()
    target = f"the {title} position at {company}" if company else f"the {title} position"
    corpus = normalize_for_match(" ".join([" ".join(resume.skills), resume.summary, *resume.all_bullets()]))
    overlap = [skill for skill in job_spec.must_have_skills if includes_normalized(corpus, skill)][:4]

    paragraphs = ["Dear Hiring Manager,"]
    opening = f"I am applying for {target}."
    if resume.experience:
        latest = resume.experience[0]
        role = " at ".join(part for part in (latest.role, latest.company) if part)
        if role:
            opening += f" In my most recent role as {role}, I have worked on problems closely related to this position."
    paragraphs.append(opening)

    proof = _proof_bullets(resume, job_spec)
    if proof:
        lines = " ".join(bullet.rstrip(".") + "." for bullet in proof)
        paragraphs.append(f"A few examples of my work: {lines}")
    if overlap:
        paragraphs.append(f"My background with {', '.join(overlap)} lines up with the core requirements of the role.")

    closing_target = company or "your team"
    paragraphs.append(f"I would welcome the chance to discuss how I can contribute to {closing_target}.")
    signature = resume.contact.name.strip()
    paragraphs.append(f"Sincerely,\n{signature}" if signature else "Sincerely,")
    return "\n\n".join(paragraphs)


def generate_cover_letter(
    resume: CanonicalResume,
    job_spec: JobSpec,
    job_text: str,
    *,
    generator: TextGenerator | None = None,
) -> CoverLetterResult:
    if generator is None:
        return CoverLetterResult(text=template_cover_letter(resume, job_spec), source="template")

    prompt = build_cover_letter_prompt(resume, job_spec, job_text)
    try:
        raw = call_with_quota_retry(
            lambda: generator.generate(prompt, json_mode=False, temperature=0.7),
            label="cover_letter",
        )
    except QuotaExceeded:
        logger.warning("cover_letter_llm_quota_exceeded model=%s; using template", generator.model_name)
        warning = "Cover letter built from a template because the AI quota was exceeded."
    except GenerationError as exc:
        logger.warning("cover_letter_llm_failed model=%s code=%s: %s", generator.model_name, exc.code, exc)
        warning = "Cover letter built from a template because the AI writer was unavailable."
    else:
        if raw and raw.strip():
            return CoverLetterResult(text=raw.strip(), source="llm")
        warning = "Cover letter built from a template because the AI writer returned nothing."

    return CoverLetterResult(text=template_cover_letter(resume, job_spec), source="template", warnings=[warning])
