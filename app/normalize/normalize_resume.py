from __future__ import annotations

import logging
from typing import Any

from app.ai.prompts import build_resume_parse_prompt
from app.ai.retry import generate_json
from app.ai.types import TextGenerator
from app.core.config import EngineConfig, resolve_engine_config
from app.core.errors import AccessForbidden, GenerationError, QuotaExceeded, StructuringFailure
from app.schemas.analysis import ParseResult
from app.schemas.normalized import (
    CanonicalResume,
    Contact,
    CustomSection,
    EducationEntity,
    EducationEntry,
    EvidenceEntities,
    EvidenceMap,
    ExperienceEntity,
    ExperienceEntry,
    ProjectEntry,
    ProjectEvidence,
)

from .evidence import ContactAnchors, URL_RE, extract_anchors, extract_links, extract_metrics
from .resume_sections import (
    heuristic_education,
    heuristic_experience,
    heuristic_projects,
    heuristic_resume,
    split_sections,
)
from .utils import includes_normalized, normalize_for_match, split_lines, unique, unique_casefold, years_in

logger = logging.getLogger(__name__)

VERIFICATION_PREFIX = "Verification:"


def _safe_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, str):
        return value.strip()
    return ""


def _safe_str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in (_safe_str(entry) for entry in value) if item]


def _safe_dicts(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def merge_resume_payload(payload: dict[str, Any], anchors: ContactAnchors) -> CanonicalResume:
    """Map a model payload (camelCase JSON) onto CanonicalResume; regex anchors win for contact fields."""
    contact_raw = payload.get("contact") if isinstance(payload.get("contact"), dict) else {}
    contact = Contact(
        name=_safe_str(contact_raw.get("name")),
        email=anchors.email or _safe_str(contact_raw.get("email")),
        phone=anchors.phone or _safe_str(contact_raw.get("phone")),
        linkedin=anchors.profile_url or _safe_str(contact_raw.get("linkedin")),
        location=_safe_str(contact_raw.get("location")),
    )

    experience = [
        ExperienceEntry(
            role=_safe_str(item.get("role")),
            company=_safe_str(item.get("company")),
            start_date=_safe_str(item.get("startDate", item.get("start_date"))),
            end_date=_safe_str(item.get("endDate", item.get("end_date"))),
            bullets=_safe_str_list(item.get("bullets")),
        )
        for item in _safe_dicts(payload.get("experience"))
    ]
    projects = [
        ProjectEntry(
            name=_safe_str(item.get("name")),
            description=_safe_str(item.get("description")),
            technologies=_safe_str_list(item.get("technologies")),
            url=_safe_str(item.get("url")) or None,
        )
        for item in _safe_dicts(payload.get("projects"))
    ]
    education = [
        EducationEntry(
            degree=_safe_str(item.get("degree")),
            school=_safe_str(item.get("school")),
            date=_safe_str(item.get("date")),
        )
        for item in _safe_dicts(payload.get("education"))
    ]
    custom_sections = [
        CustomSection(title=_safe_str(item.get("title")), items=_safe_str_list(item.get("items")))
        for item in _safe_dicts(payload.get("customSections", payload.get("custom_sections")))
    ]

    return CanonicalResume(
        contact=contact,
        summary=_safe_str(payload.get("summary")),
        experience=experience,
        projects=projects,
        skills=unique_casefold(_safe_str_list(payload.get("skills"))),
        education=education,
        certifications=_safe_str_list(payload.get("certifications")),
        achievements=_safe_str_list(payload.get("achievements")),
        languages=_safe_str_list(payload.get("languages")),
        custom_sections=[section for section in custom_sections if section.title or section.items],
    )


def _apply_anchors(resume: CanonicalResume, anchors: ContactAnchors) -> CanonicalResume:
    contact = resume.contact
    contact.email = anchors.email or contact.email
    contact.phone = anchors.phone or contact.phone
    contact.linkedin = anchors.profile_url or contact.linkedin
    return resume


def is_date_backed(raw_text: str, value: str) -> bool:
    cleaned = value.strip()
    if not cleaned:
        return False
    raw_lower = raw_text.lower()
    if cleaned.lower() in raw_lower:
        return True
    years = years_in(cleaned)
    if years:
        return all(year in raw_lower for year in years)
    return includes_normalized(normalize_for_match(raw_text), cleaned)


def verify_entities(resume: CanonicalResume, raw_text: str, warnings: list[str]) -> CanonicalResume:
    """Blank entity facts the raw text does not back, and drop entries left empty."""
    raw_normalized = normalize_for_match(raw_text)

    def backed(value: str) -> bool:
        return includes_normalized(raw_normalized, value) if value else True

    def date_backed(value: str) -> bool:
        return is_date_backed(raw_text, value) if value else True

    verified_experience: list[ExperienceEntry] = []
    for index, entry in enumerate(resume.experience):
        checks = {
            "company": backed(entry.company),
            "role": backed(entry.role),
            "startDate": date_backed(entry.start_date),
            "endDate": date_backed(entry.end_date),
        }
        for field, ok in checks.items():
            if not ok:
                warnings.append(f"{VERIFICATION_PREFIX} experience[{index}].{field} not found in source text")
        verified = entry.model_copy(
            update={
                "company": entry.company if checks["company"] else "",
                "role": entry.role if checks["role"] else "",
                "start_date": entry.start_date if checks["startDate"] else "",
                "end_date": entry.end_date if checks["endDate"] else "",
            }
        )
        if verified.role or verified.company or verified.bullets:
            verified_experience.append(verified)

    verified_education: list[EducationEntry] = []
    for index, entry in enumerate(resume.education):
        checks = {
            "school": backed(entry.school),
            "degree": backed(entry.degree),
            "date": date_backed(entry.date),
        }
        for field, ok in checks.items():
            if not ok:
                warnings.append(f"{VERIFICATION_PREFIX} education[{index}].{field} not found in source text")
        verified = entry.model_copy(
            update={
                "school": entry.school if checks["school"] else "",
                "degree": entry.degree if checks["degree"] else "",
                "date": entry.date if checks["date"] else "",
            }
        )
        if verified.school or verified.degree:
            verified_education.append(verified)

    resume.experience = verified_experience
    resume.education = verified_education
    return resume


def recover_sections(resume: CanonicalResume, raw_text: str, warnings: list[str]) -> CanonicalResume:
    """Fill sections the model left empty from the line heuristics."""
    _, sections = split_sections(split_lines(raw_text))
    bodies: dict[str, list[str]] = {}
    for key, _, body in sections:
        bodies.setdefault(key, []).extend(body)

    if not resume.experience:
        recovered = heuristic_experience(bodies.get("experience", []))
        if recovered:
            resume.experience = recovered
            warnings.append("Heuristic recovery used for experience section")
    if not resume.education:
        recovered_education = heuristic_education(bodies.get("education", []))
        if recovered_education:
            resume.education = recovered_education
            warnings.append("Heuristic recovery used for education section")
    if not resume.projects:
        recovered_projects = heuristic_projects(bodies.get("projects", []))
        if recovered_projects:
            resume.projects = recovered_projects
            warnings.append("Heuristic recovery used for projects section")
    return resume


def collect_warnings(resume: CanonicalResume) -> list[str]:
    warnings: list[str] = []
    if not resume.contact.name:
        warnings.append("Could not confidently detect candidate name")
    if not resume.experience or all(not entry.bullets for entry in resume.experience):
        warnings.append("Experience bullets were sparse")
    if not resume.skills:
        warnings.append("No explicit skills section detected")
    return warnings


def build_missing_fields(resume: CanonicalResume) -> list[str]:
    missing: list[str] = []
    if not resume.contact.name:
        missing.append("contact.name")
    if not resume.contact.email:
        missing.append("contact.email")
    for index, entry in enumerate(resume.experience):
        if not entry.role:
            missing.append(f"experience[{index}].role")
        if not entry.company:
            missing.append(f"experience[{index}].company")
        if not entry.start_date:
            missing.append(f"experience[{index}].start_date")
    for index, entry in enumerate(resume.education):
        if not entry.school:
            missing.append(f"education[{index}].school")
    return missing


def compute_confidence(resume: CanonicalResume, warnings: list[str], config: EngineConfig | None = None) -> int:
    rules = resolve_engine_config(config).confidence
    score = rules.base
    if resume.contact.name:
        score += rules.name_bonus
    if resume.contact.email:
        score += rules.email_bonus
    if any(entry.bullets for entry in resume.experience):
        score += rules.bullets_bonus
    if len(resume.skills) >= rules.skills_min_count:
        score += rules.skills_bonus
    if any(entry.school or entry.degree for entry in resume.education):
        score += rules.education_bonus
    score -= min(rules.warning_penalty_cap, len(warnings) * rules.warning_penalty)
    return max(0, min(100, score))


def extract_evidence_skills(resume: CanonicalResume, raw_text: str) -> list[str]:
    """Structured skills that literally appear in the raw text. No synonyms."""
    corpus = raw_text.lower()
    return unique([skill for skill in resume.skills if skill.strip() and skill.strip().lower() in corpus])


def build_evidence_map(resume: CanonicalResume, raw_text: str, evidence_skills: list[str]) -> EvidenceMap:
    corpus = raw_text.lower()

    def raw_backed(value: str | None) -> bool:
        cleaned = (value or "").strip().lower()
        return bool(cleaned) and cleaned in corpus

    projects = tuple(
        ProjectEvidence(
            name=project.name,
            description=project.description,
            technologies=tuple(unique(project.technologies)),
            url=project.url,
        )
        for project in resume.projects
        if raw_backed(project.name)
        or raw_backed(project.description)
        or any(raw_backed(tech) for tech in project.technologies)
        or raw_backed(project.url)
    )

    field_texts = [
        resume.contact.linkedin,
        *[text for project in resume.projects for text in (project.name, project.description, project.url or "")],
        *resume.all_bullets(),
    ]
    links = extract_links(raw_text, *field_texts)
    if resume.contact.linkedin and not URL_RE.search(resume.contact.linkedin):
        links = unique([*links, resume.contact.linkedin])

    return EvidenceMap(
        entities=EvidenceEntities(
            experiences=tuple(
                ExperienceEntity(
                    role=entry.role,
                    company=entry.company,
                    start_date=entry.start_date,
                    end_date=entry.end_date,
                )
                for entry in resume.experience
            ),
            education=tuple(
                EducationEntity(degree=entry.degree, school=entry.school, date=entry.date)
                for entry in resume.education
            ),
        ),
        skills=tuple(unique(evidence_skills)),
        projects=projects,
        links=tuple(links),
        metrics=tuple(extract_metrics(raw_text)),
    )


def _llm_structure(raw_text: str, generator: TextGenerator, anchors: ContactAnchors) -> CanonicalResume:
    try:
        payload = generate_json(
            generator,
            build_resume_parse_prompt(raw_text),
            temperature=0.1,
            label="resume_structuring",
        )
    except (QuotaExceeded, AccessForbidden):
        raise
    except GenerationError as exc:
        logger.warning("resume_structuring_llm_failed model=%s code=%s: %s", generator.model_name, exc.code, exc)
        raise StructuringFailure(f"Resume structuring failed: {exc}") from exc
    return merge_resume_payload(payload, anchors)


def structure_resume(
    raw_text: str,
    *,
    generator: TextGenerator | None = None,
    config: EngineConfig | None = None,
    prefer_heuristic: bool = False,
) -> ParseResult:
    """Turn raw resume text into a ParseResult with confidence, warnings and an evidence map.

    The model path runs when a generator is supplied; otherwise the line
    heuristics produce the same shape offline. Quota and access errors from
    the model surface unchanged, any other model failure becomes
    StructuringFailure.
    """
    cfg = resolve_engine_config(config)
    text = "\n".join(split_lines(raw_text))
    anchors = extract_anchors(text)

    use_model = generator is not None and not prefer_heuristic
    if use_model:
        resume = _llm_structure(text, generator, anchors)
    else:
        resume = _apply_anchors(heuristic_resume(text), anchors)

    warnings: list[str] = []
    resume = verify_entities(resume, text, warnings)
    if use_model:
        resume = recover_sections(resume, text, warnings)
    warnings.extend(collect_warnings(resume))

    missing_fields = build_missing_fields(resume)
    confidence = compute_confidence(resume, warnings, cfg)
    evidence_skills = extract_evidence_skills(resume, text)
    evidence_map = build_evidence_map(resume, text, evidence_skills)
    resume.portfolio_links = list(evidence_map.links)

    safe_mode_required = (
        confidence < cfg.confidence.thresholds.review
        or not resume.experience
        or not resume.education
        or any(warning.startswith(VERIFICATION_PREFIX) for warning in warnings)
    )

    logger.info(
        "resume_structured source=%s confidence=%s warnings=%s experience=%s education=%s",
        "llm" if use_model else "heuristic",
        confidence,
        len(warnings),
        len(resume.experience),
        len(resume.education),
    )

    return ParseResult(
        resume=resume,
        confidence=confidence,
        warnings=warnings,
        missing_fields=missing_fields,
        evidence_skills=evidence_skills,
        evidence_map=evidence_map,
        safe_mode_required=safe_mode_required,
        source="llm" if use_model else "heuristic",
    )
