from __future__ import annotations

import re
from typing import Iterable

_BULLET_CHARS = "•◦▪▫●○■□◆◇▶►-–—*·"
_BULLET_PATTERN = re.compile(rf"^\s*(?:[{re.escape(_BULLET_CHARS)}]|(?:\d+[\.\)]))\s+")
_LEADING_BULLET_GLYPH = re.compile(rf"^\s*[{re.escape(_BULLET_CHARS)}]\s*")
_NON_ALNUM_RE = re.compile(r"[^\w]+|_", re.UNICODE)
_WHITESPACE_RE = re.compile(r"\s+")
_YEAR_RE = re.compile(r"\b(?:19|20)\d{2}\b")


def normalize_line(line: str) -> str:
    return _WHITESPACE_RE.sub(" ", line).strip()


def split_lines(text: str) -> list[str]:
    """Non-empty, whitespace-collapsed lines."""
    return [cleaned for cleaned in (normalize_line(line) for line in (text or "").splitlines()) if cleaned]


def normalize_whitespace(text: str) -> str:
    value = (text or "").replace("\r\n", "\n")
    value = re.sub(r"[ \t]+", " ", value)
    value = re.sub(r"\n{3,}", "\n\n", value)
    return value.strip()


def is_bullet_like(line: str) -> bool:
    return bool(_BULLET_PATTERN.match(line) or _LEADING_BULLET_GLYPH.match(line))


def strip_bullet_prefix(line: str) -> str:
    stripped = _BULLET_PATTERN.sub("", line)
    return _LEADING_BULLET_GLYPH.sub("", stripped).strip()


def normalize_for_match(value: str) -> str:
    """Lower-case, replace non-alphanumerics with spaces, collapse whitespace."""
    lowered = (value or "").lower()
    return _WHITESPACE_RE.sub(" ", _NON_ALNUM_RE.sub(" ", lowered)).strip()


def includes_normalized(haystack_normalized: str, value: str) -> bool:
    needle = normalize_for_match(value)
    if not needle:
        return False
    return needle in haystack_normalized


def normalize_fact(value: str) -> str:
    """Comparison key for identity facts: case-insensitive, whitespace-normalized."""
    return _WHITESPACE_RE.sub(" ", (value or "").lower()).strip()


def years_in(text: str) -> list[str]:
    return _YEAR_RE.findall(text or "")


def unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for value in values:
        cleaned = (value or "").strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        output.append(cleaned)
    return output


def unique_casefold(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    output: list[str] = []
    for value in values:
        cleaned = (value or "").strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        output.append(cleaned)
    return output


def word_count(text: str) -> int:
    return len([token for token in (text or "").split() if token])
