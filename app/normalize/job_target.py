"""Display label for a job target: analysis metadata, then job text, then posting URL."""

from __future__ import annotations

import re
from typing import Any
from urllib.parse import unquote, urlparse

from pydantic import BaseModel

_ROLE_KEYWORDS_RE = re.compile(
    r"\b(engineer|developer|manager|designer|analyst|architect|scientist|consultant|specialist|administrator|"
    r"coordinator|lead|director|intern|associate|technician|programmer|recruiter|marketer|writer|editor|"
    r"accountant|sales|qa|sre|devops|support|operations|product|project|security)\b",
    re.IGNORECASE,
)
_GENERIC_TITLES = {
    "job description",
    "job posting",
    "job target",
    "target role",
    "role",
    "position",
    "opening",
    "opportunity",
}
_GENERIC_URL_SEGMENTS = {
    "job",
    "jobs",
    "career",
    "careers",
    "position",
    "positions",
    "posting",
    "openings",
    "opportunity",
    "opportunities",
    "details",
    "detail",
    "view",
    "apply",
    "listing",
    "listings",
}
_UPPERCASE_TOKENS = {"ai", "ml", "nlp", "qa", "ui", "ux", "sre", "seo", "sql", "aws", "gcp", "api", "saas", "b2b", "b2c"}

_WORK_TERMS = r"(?:remote|hybrid|on[- ]?site|full[- ]?time|part[- ]?time|contract|internship)"
_LABEL_RE = re.compile(r"^(?:job\s*)?(?:title|role|position)\s*[:\-]\s*", re.IGNORECASE)
_LABELED_LINE_RE = re.compile(r"^(?:job\s*)?(?:title|role|position)\s*[:\-]\s*(.+)$", re.IGNORECASE)
_PIPE_TAIL_RE = re.compile(r"\s*[|]\s.*$")
_DASH_WORK_TAIL_RE = re.compile(rf"\s+[-–]\s+{_WORK_TERMS}.*", re.IGNORECASE)
_PAREN_WORK_TAIL_RE = re.compile(rf"\s+\({_WORK_TERMS}.*\)\s*$", re.IGNORECASE)
_GREETING_RE = re.compile(r"^(dear|hello|hi)\b", re.IGNORECASE)
_SECTION_WORDS_RE = re.compile(r"\b(hiring manager|responsibilities|requirements|qualifications|about us|apply now)\b", re.IGNORECASE)
_SNIPPET_SKIP_RE = re.compile(r"\b(responsibilities|requirements|qualifications|about us)\b", re.IGNORECASE)
_INLINE_TITLE_RE = re.compile(
    r"\b(?:hiring|seeking|looking for)\s+(?:an?\s+|the\s+)?([A-Za-z0-9&/+., -]{4,90}?)(?:\s+(?:role|position))\b",
    re.IGNORECASE,
)

SNIPPET_MAX_CHARS = 72


def _normalize_whitespace(value: str) -> str:
    return re.sub(r"[ \t]+", " ", value.replace("\r\n", "\n")).strip()


def _lines(text: str) -> list[str]:
    return [line.strip() for line in _normalize_whitespace(text).split("\n") if line.strip()]


def sanitize_title_candidate(raw: str) -> str:
    value = _normalize_whitespace(raw)
    value = re.sub(r"^[-*•]\s*", "", value)
    value = _LABEL_RE.sub("", value)
    value = _PIPE_TAIL_RE.sub("", value)
    value = _DASH_WORK_TAIL_RE.sub("", value)
    value = _PAREN_WORK_TAIL_RE.sub("", value)
    return value.strip()


def _has_disallowed_signals(value: str) -> bool:
    return bool(_GREETING_RE.search(value) or _SECTION_WORDS_RE.search(value) or value.endswith((".", "!", "?")))


def is_likely_job_title(value: str) -> bool:
    cleaned = sanitize_title_candidate(value or "")
    if not cleaned or cleaned.lower() in _GENERIC_TITLES or _has_disallowed_signals(cleaned):
        return False
    words = cleaned.split()
    if len(words) < 2 or len(words) > 12:
        return False
    if len(cleaned) < 4 or len(cleaned) > 90:
        return False
    return bool(_ROLE_KEYWORDS_RE.search(cleaned))


def _display_case(value: str) -> str:
    tokens = []
    for token in value.split():
        lower = token.lower()
        if lower in _UPPERCASE_TOKENS or len(token) == 1:
            tokens.append(token.upper())
        else:
            tokens.append(token[0].upper() + token[1:])
    return " ".join(tokens)


def title_from_analysis(analysis: Any) -> str | None:
    if isinstance(analysis, BaseModel):
        analysis = analysis.model_dump()
    if not isinstance(analysis, dict):
        return None
    metadata = analysis.get("metadata")
    if not isinstance(metadata, dict):
        return None
    value = metadata.get("job_title")
    if not isinstance(value, str):
        return None
    cleaned = sanitize_title_candidate(value)
    return cleaned if is_likely_job_title(cleaned) else None


def title_from_job_text(job_text: str | None) -> str | None:
    if not job_text:
        return None
    lines = _lines(job_text)

    for line in lines[:30]:
        match = _LABELED_LINE_RE.match(line)
        if not match:
            continue
        candidate = sanitize_title_candidate(match.group(1))
        if is_likely_job_title(candidate):
            return candidate

    for line in lines[:40]:
        candidate = sanitize_title_candidate(line)
        if is_likely_job_title(candidate):
            return candidate

    inline = _INLINE_TITLE_RE.search(job_text)
    if inline:
        candidate = sanitize_title_candidate(inline.group(1))
        if is_likely_job_title(candidate):
            return candidate
    return None


def title_from_job_url(job_url: str | None) -> str | None:
    if not job_url:
        return None
    parsed = urlparse(job_url)
    if not parsed.scheme or not parsed.netloc:
        return None

    for segment in reversed([part for part in parsed.path.split("/") if part]):
        decoded = unquote(segment)
        if decoded.lower() in _GENERIC_URL_SEGMENTS:
            continue
        cleaned = sanitize_title_candidate(re.sub(r"\b\d+\b", " ", re.sub(r"[-_]+", " ", decoded)))
        if is_likely_job_title(cleaned):
            return _display_case(cleaned)
    return None


def job_text_snippet(job_text: str | None) -> str | None:
    if not job_text:
        return None
    for line in _lines(job_text)[:50]:
        if _GREETING_RE.search(line) or _SNIPPET_SKIP_RE.search(line):
            continue
        cleaned = sanitize_title_candidate(line)
        if len(cleaned) < 10:
            continue
        collapsed = re.sub(r"\s+", " ", cleaned)
        if len(collapsed) > SNIPPET_MAX_CHARS:
            return f"{collapsed[: SNIPPET_MAX_CHARS - 3].rstrip()}..."
        return collapsed
    return None


def job_host(job_url: str | None) -> str | None:
    if not job_url:
        return None
    host = urlparse(job_url).hostname
    if not host:
        return None
    return re.sub(r"^www\.", "", host)


def resolve_job_target_label(
    job_text: str | None = None,
    job_url: str | None = None,
    analysis: Any = None,
    fallback_label: str = "Job Target",
) -> str:
    return (
        title_from_analysis(analysis)
        or title_from_job_text(job_text)
        or title_from_job_url(job_url)
        or job_text_snippet(job_text)
        or job_host(job_url)
        or fallback_label
    )
