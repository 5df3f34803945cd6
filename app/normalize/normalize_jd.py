from __future__ import annotations

import logging
import re
from typing import Any

from app.ai.prompts import build_job_spec_prompt
from app.ai.retry import generate_json
from app.ai.types import TextGenerator
from app.core.config import EngineConfig, resolve_engine_config
from app.core.errors import GenerationError, QuotaExceeded
from app.schemas.normalized import JobSpec

from .utils import normalize_whitespace, split_lines, unique

logger = logging.getLogger(__name__)

_TITLE_LABEL_RE = re.compile(r"^(?:job\s+)?(?:title|role|position)\s*:\s*", re.IGNORECASE)
_COMPANY_LABEL_RE = re.compile(r"^company(?:\s+name)?\s*:\s*", re.IGNORECASE)
_LOCATION_LABEL_RE = re.compile(r"^location\s*:\s*", re.IGNORECASE)
_JOIN_COMPANY_RE = re.compile(r"\b(?i:join|work\s+at|work\s+for)\s+([A-Z][A-Za-z0-9&.-]*(?:\s+[A-Z][A-Za-z0-9&.-]*){0,4})")
_AT_COMPANY_RE = re.compile(r"\bat\s+([A-Z][A-Za-z0-9&.-]*(?:\s+[A-Z][A-Za-z0-9&.-]*){0,4})")
_WORK_MODE_RE = re.compile(r"\b(remote|hybrid|onsite|on-site)\b", re.IGNORECASE)
_RESPONSIBILITY_RE = re.compile(r"\bresponsibilit(?:y|ies)\b", re.IGNORECASE)
_JD_BULLET_RE = re.compile(r"^[-•*]\s*")
_PHRASE_WORDS_RE = re.compile(r"[a-z]{3,}\s+[a-z]{3,}", re.IGNORECASE)

_SENIOR_RE = re.compile(r"\b(senior|sr\.?|staff|principal|lead|architect)\b", re.IGNORECASE)
_MID_RE = re.compile(r"\b(mid[-\s]?level|intermediate)\b|\b[2-5]\+?\s*(?:-|to)?\s*(?:[3-5]\s*)?years?\b", re.IGNORECASE)
_ENTRY_RANGE_RE = re.compile(r"\b0\s*(?:-|to)\s*[12]\s*years?\b", re.IGNORECASE)
_ENTRY_RE = re.compile(
    r"\b(entry[-\s]?level|junior|jr\.?|intern(?:ship)?|new[-\s]?grad(?:uate)?|graduate)\b",
    re.IGNORECASE,
)


def _after_label(line: str, pattern: re.Pattern[str]) -> str:
    return pattern.sub("", line, count=1).strip()


def extract_title(lines: list[str], config: EngineConfig | None = None) -> str:
    cfg = resolve_engine_config(config)
    for line in lines:
        if _TITLE_LABEL_RE.match(line):
            value = _after_label(line, _TITLE_LABEL_RE)
            if value:
                return value

    role_re = re.compile(rf"\b({'|'.join(re.escape(word) for word in cfg.role_keywords)})s?\b", re.IGNORECASE)
    for line in lines:
        if len(line) < cfg.job_spec.title_max_chars and role_re.search(line):
            return line
    return cfg.job_spec.fallback_title


def extract_company(lines: list[str]) -> str:
    for line in lines:
        if _COMPANY_LABEL_RE.match(line):
            value = _after_label(line, _COMPANY_LABEL_RE)
            if value:
                return value
    for pattern in (_JOIN_COMPANY_RE, _AT_COMPANY_RE):
        for line in lines:
            match = pattern.search(line)
            if match:
                return match.group(1).strip(" .")
    return ""


def extract_location(lines: list[str]) -> str:
    for line in lines:
        if _LOCATION_LABEL_RE.match(line):
            value = _after_label(line, _LOCATION_LABEL_RE)
            if value:
                return value
    for line in lines:
        if _WORK_MODE_RE.search(line):
            return line
    return ""


def extract_responsibilities(lines: list[str], config: EngineConfig | None = None) -> list[str]:
    cfg = resolve_engine_config(config)
    picked = [
        _JD_BULLET_RE.sub("", line).strip()
        for line in lines
        if _JD_BULLET_RE.match(line) or _RESPONSIBILITY_RE.search(line)
    ]
    return [line for line in picked if len(line) > 15][: cfg.job_spec.max_responsibilities]


def extract_vocabulary_skills(text: str, vocabulary: list[str]) -> list[str]:
    """Known skills whose lower-cased form appears anywhere in the text (plain substring)."""
    lowered = text.lower()
    return unique([skill for skill in vocabulary if skill.lower() in lowered])


def extract_phrases(lines: list[str], config: EngineConfig | None = None) -> list[str]:
    rules = resolve_engine_config(config).job_spec
    phrases = [
        _JD_BULLET_RE.sub("", line)
        for line in lines
        if rules.phrase_min_chars <= len(line) <= rules.phrase_max_chars and _PHRASE_WORDS_RE.search(line)
    ]
    return unique(phrases)[: rules.max_exact_phrases]


def detect_seniority(text: str) -> str:
    if _SENIOR_RE.search(text):
        return "senior"
    if _ENTRY_RANGE_RE.search(text):
        return "entry"
    if _MID_RE.search(text):
        return "mid"
    if _ENTRY_RE.search(text):
        return "entry"
    return "mid"


def heuristic_job_spec(raw_text: str, config: EngineConfig | None = None) -> JobSpec:
    """Deterministic offline job-spec extraction."""
    cfg = resolve_engine_config(config)
    normalized = normalize_whitespace(raw_text)
    lines = split_lines(normalized)
    lowered = normalized.lower()

    skills = extract_vocabulary_skills(normalized, cfg.skill_vocabulary)
    must_have = skills[: cfg.job_spec.max_must_have]
    nice_to_have = skills[cfg.job_spec.max_must_have : cfg.job_spec.max_must_have + cfg.job_spec.max_nice_to_have]

    return JobSpec(
        title=extract_title(lines, cfg),
        company_name=extract_company(lines),
        location=extract_location(lines),
        seniority=detect_seniority(normalized),
        must_have_skills=must_have,
        nice_to_have_skills=nice_to_have,
        soft_skills=unique([skill for skill in cfg.soft_skills if skill.lower() in lowered]),
        exact_phrases=extract_phrases(lines, cfg),
        responsibilities=extract_responsibilities(lines, cfg),
        domain_terms=unique([term for term in cfg.domain_terms if term.lower() in lowered]),
    )


def _payload_str(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


def _payload_list(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key)
    if not isinstance(value, list):
        return []
    return unique([item for item in value if isinstance(item, str)])


def merge_job_spec_payload(payload: dict[str, Any], fallback: JobSpec) -> JobSpec:
    """Model values win; every empty field is back-filled from the heuristic result for the same text."""
    seniority = _payload_str(payload, "seniority").lower()
    if seniority not in {"entry", "mid", "senior"}:
        seniority = fallback.seniority

    return JobSpec(
        title=_payload_str(payload, "title") or fallback.title,
        company_name=_payload_str(payload, "companyName") or fallback.company_name,
        location=_payload_str(payload, "location") or fallback.location,
        seniority=seniority,
        must_have_skills=_payload_list(payload, "mustHaveSkills") or fallback.must_have_skills,
        nice_to_have_skills=_payload_list(payload, "niceToHaveSkills") or fallback.nice_to_have_skills,
        soft_skills=_payload_list(payload, "softSkills") or fallback.soft_skills,
        exact_phrases=_payload_list(payload, "exactPhrases") or fallback.exact_phrases,
        responsibilities=_payload_list(payload, "responsibilities") or fallback.responsibilities,
        domain_terms=_payload_list(payload, "domainTerms") or fallback.domain_terms,
    )


def extract_job_spec_with_warnings(
    raw_text: str,
    *,
    generator: TextGenerator | None = None,
    config: EngineConfig | None = None,
    prefer_heuristic: bool = False,
) -> tuple[JobSpec, list[str]]:
    cfg = resolve_engine_config(config)
    text = raw_text or ""
    fallback = heuristic_job_spec(text, cfg)

    if prefer_heuristic or generator is None or len(text.strip()) < cfg.job_spec.min_text_chars:
        return fallback, []

    try:
        payload = generate_json(generator, build_job_spec_prompt(text), temperature=0.1, label="job_spec")
    except QuotaExceeded:
        logger.warning("job_spec_llm_quota_exceeded model=%s; using heuristic", generator.model_name)
        return fallback, ["Job description parsed heuristically because the AI quota was exceeded."]
    except GenerationError as exc:
        logger.warning("job_spec_llm_failed model=%s code=%s: %s", generator.model_name, exc.code, exc)
        return fallback, ["Job description parsed heuristically because the AI parser was unavailable."]
    except Exception as exc:  # noqa: BLE001 - deterministic fallback is expected
        logger.warning("job_spec_llm_unexpected_error model=%s: %s", generator.model_name, exc)
        return fallback, ["Job description parsed heuristically because the AI parser was unavailable."]

    return merge_job_spec_payload(payload, fallback), []


def extract_job_spec(
    raw_text: str,
    *,
    generator: TextGenerator | None = None,
    config: EngineConfig | None = None,
    prefer_heuristic: bool = False,
) -> JobSpec:
    """Never raises: any collaborator failure degrades to the heuristic result."""
    spec, _ = extract_job_spec_with_warnings(
        raw_text,
        generator=generator,
        config=config,
        prefer_heuristic=prefer_heuristic,
    )
    return spec
