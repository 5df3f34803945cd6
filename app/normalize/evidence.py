"""Regex anchors pulled straight from raw resume text.

Anchors have no hallucination risk, so the structurer lets them override
model output for the same contact field.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

from .utils import unique

EMAIL_RE = re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE)
PHONE_RE = re.compile(r"(\+?\d[\d\s().-]{7,}\d)")
PROFILE_URL_RE = re.compile(
    r"(?:https?://)?(?:[a-z]{2,3}\.)?(?:linkedin\.com|github\.com)/[^\s,;|)]+",
    re.IGNORECASE,
)
URL_RE = re.compile(r"\bhttps?://[^\s)]+", re.IGNORECASE)
METRIC_RE = re.compile(r"\b\d+(?:[.,]\d+)?%?")
NUMBER_TOKEN_RE = re.compile(r"\b\d+(?:\.\d+)?%?")
_YEAR_RANGE_RE = re.compile(r"^(?:19|20)\d{2}\s*[-–.]?\s*(?:(?:19|20)\d{2})?$")


class ContactAnchors(BaseModel):
    email: str = ""
    phone: str = ""
    profile_url: str = ""


def _looks_like_phone(candidate: str) -> bool:
    digits = re.sub(r"\D", "", candidate)
    if len(digits) < 7 or len(digits) > 15:
        return False
    return not _YEAR_RANGE_RE.match(candidate.strip())


def extract_email(text: str) -> str:
    match = EMAIL_RE.search(text or "")
    return match.group(0) if match else ""


def extract_phone(text: str) -> str:
    for match in PHONE_RE.finditer(text or ""):
        candidate = match.group(1).strip()
        if _looks_like_phone(candidate):
            return candidate
    return ""


def extract_profile_url(text: str) -> str:
    matches = PROFILE_URL_RE.findall(text or "")
    for match in matches:
        if "linkedin.com" in match.lower():
            return match.rstrip(".")
    return matches[0].rstrip(".") if matches else ""


def extract_anchors(text: str) -> ContactAnchors:
    return ContactAnchors(
        email=extract_email(text),
        phone=extract_phone(text),
        profile_url=extract_profile_url(text),
    )


def extract_links(*texts: str) -> list[str]:
    links: list[str] = []
    for text in texts:
        links.extend(match.rstrip(".,;") for match in URL_RE.findall(text or ""))
    return unique(links)


def extract_metrics(text: str) -> list[str]:
    return unique(METRIC_RE.findall(text or ""))


def collect_numbers(text: str) -> set[str]:
    """Numeric tokens: digits, optional decimal part, optional trailing percent sign."""
    return set(NUMBER_TOKEN_RE.findall(text or ""))
