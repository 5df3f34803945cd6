"""Line-based heuristic structuring of resume text.

This is the offline twin of the model parser: it produces the same
CanonicalResume shape from plain extracted text using section headings,
bullet glyphs and date patterns only.
"""

from __future__ import annotations

import re

from app.schemas.normalized import (
    CanonicalResume,
    Contact,
    CustomSection,
    EducationEntry,
    ExperienceEntry,
    ProjectEntry,
)

from .evidence import EMAIL_RE, PROFILE_URL_RE, URL_RE, extract_anchors, extract_phone
from .utils import is_bullet_like, split_lines, strip_bullet_prefix, unique, unique_casefold

_SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": ("summary", "professional summary", "profile", "objective", "about", "about me", "career summary"),
    "experience": (
        "experience",
        "work experience",
        "professional experience",
        "employment",
        "employment history",
        "work history",
        "career history",
    ),
    "projects": ("projects", "project experience", "personal projects", "portfolio", "selected projects"),
    "skills": ("skills", "technical skills", "core skills", "core competencies", "technologies", "tech stack"),
    "education": ("education", "academic background", "education and training"),
    "certifications": ("certifications", "certificates", "licenses and certifications", "licenses & certifications"),
    "achievements": ("achievements", "key achievements", "awards", "honors", "accomplishments"),
    "languages": ("languages", "spoken languages"),
}
_CUSTOM_HEADINGS = (
    "volunteering",
    "volunteer experience",
    "publications",
    "interests",
    "hobbies",
    "activities",
    "leadership",
    "memberships",
    "courses",
    "references",
)
_HEADING_LOOKUP = {alias: key for key, aliases in _SECTION_ALIASES.items() for alias in aliases}
_HEADING_LOOKUP.update((alias, "custom") for alias in _CUSTOM_HEADINGS)
# sections whose bodies may hold all-caps role or project titles
_ENTRY_SECTIONS = frozenset({"experience", "projects", "education"})

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
_DATE_POINT = rf"(?:{_MONTH}\s+)?(?:\d{{1,2}}/)?(?:19|20)\d{{2}}"
DATE_RANGE_RE = re.compile(
    rf"(?P<start>{_DATE_POINT})\s*(?:-|–|—|to)\s*(?P<end>{_DATE_POINT}|present|current|now)",
    re.IGNORECASE,
)
SINGLE_DATE_RE = re.compile(_DATE_POINT, re.IGNORECASE)
_PRESENT_RE = re.compile(r"\b(present|current|now)\b", re.IGNORECASE)
_HEADER_SPLIT_RE = re.compile(r"\s+at\s+|\s*\|\s*|\s+[–—-]\s+|\s*,\s+|\s*@\s*", re.IGNORECASE)
_AT_RE = re.compile(r"^(?P<role>.+?)\s+(?:at|@)\s+(?P<company>.+)$", re.IGNORECASE)
_DEGREE_RE = re.compile(
    r"\b(b\.?\s?sc|m\.?\s?sc|b\.?\s?a|m\.?\s?a|b\.?\s?s|m\.?\s?s|b\.?\s?eng|m\.?\s?eng|mba|ph\.?\s?d|"
    r"bachelor|master|associate|diploma|doctorate)\b",
    re.IGNORECASE,
)
_SCHOOL_RE = re.compile(r"\b(university|college|school|institute|academy|polytechnic)\b", re.IGNORECASE)
_EDU_SPLIT_RE = re.compile(r"\s*\|\s*|\s+[–—-]\s+|\s+at\s+|,\s+(?=(?:19|20)\d{2})", re.IGNORECASE)
_LABEL_PREFIX_RE = re.compile(r"^[A-Za-z][A-Za-z /&+-]{1,30}:\s*")
_SKILL_SPLIT_RE = re.compile(r"\s*[,;•|·]\s*")
_TECH_LINE_RE = re.compile(r"^(?:tech(?:nologies)?|tech stack|stack|built with|tools)\s*:\s*(?P<items>.+)$", re.IGNORECASE)
_PROJECT_SPLIT_RE = re.compile(r"\s*:\s+|\s+[–—-]\s+")
_LOCATION_RE = re.compile(r"^[A-Z][A-Za-z .'-]+,\s*[A-Z][A-Za-z .'-]+$")
_NAME_RE = re.compile(r"^[^\d@/:]{2,60}$")


def _known_heading(line: str) -> str | None:
    return _HEADING_LOOKUP.get(line.strip().lower().rstrip(":").strip())


def section_key(line: str) -> str | None:
    """Return the canonical section for a heading line, 'custom' for unknown headings, None otherwise."""
    known = _known_heading(line)
    if known:
        return known
    stripped = line.strip().rstrip(":")
    if (
        stripped.isupper()
        and 1 <= len(stripped.split()) <= 4
        and 3 <= len(stripped) <= 36
        and not EMAIL_RE.search(stripped)
        and not any(char.isdigit() for char in stripped)
    ):
        return "custom"
    return None


def split_sections(lines: list[str]) -> tuple[list[str], list[tuple[str, str, list[str]]]]:
    """Split lines into (header lines before any heading, [(section_key, heading, body_lines)])."""
    header: list[str] = []
    sections: list[tuple[str, str, list[str]]] = []
    for line in lines:
        key = section_key(line)
        if key == "custom" and sections and sections[-1][0] in _ENTRY_SECTIONS and not _known_heading(line):
            key = None
        if key is not None and not is_bullet_like(line):
            sections.append((key, line.strip().rstrip(":"), []))
            continue
        if sections:
            sections[-1][2].append(line)
        else:
            header.append(line)
    return header, sections


def _is_contact_line(line: str) -> bool:
    return bool(EMAIL_RE.search(line) or URL_RE.search(line) or PROFILE_URL_RE.search(line) or extract_phone(line))


def _header_segments(header: list[str]) -> list[str]:
    segments: list[str] = []
    for line in header:
        segments.extend(part.strip() for part in re.split(r"\s*[|·•]\s*", line) if part.strip())
    return segments


def heuristic_contact(header: list[str], raw_text: str) -> Contact:
    anchors = extract_anchors(raw_text)
    name = ""
    for line in header[:3]:
        candidate = re.split(r"\s*[|·•]\s*", line)[0].strip()
        if _is_contact_line(candidate) or not _NAME_RE.match(candidate):
            continue
        if 1 <= len(candidate.split()) <= 5:
            name = candidate
            break

    location = ""
    for segment in _header_segments(header):
        if segment == name or _is_contact_line(segment):
            continue
        if _LOCATION_RE.match(segment) and len(segment.split()) <= 5:
            location = segment
            break

    return Contact(
        name=name,
        email=anchors.email,
        phone=anchors.phone,
        linkedin=anchors.profile_url,
        location=location,
    )


def _split_date_range(line: str) -> tuple[str, str, str]:
    """Return (line without dates, start, end)."""
    match = DATE_RANGE_RE.search(line)
    if match:
        start = match.group("start").strip()
        end = match.group("end").strip()
        remainder = (line[: match.start()] + " " + line[match.end() :]).strip()
        return _trim_separators(remainder), start, end
    single = SINGLE_DATE_RE.search(line)
    if single:
        remainder = (line[: single.start()] + " " + line[single.end() :]).strip()
        return _trim_separators(remainder), single.group(0).strip(), ""
    return line, "", ""


def _trim_separators(value: str) -> str:
    cleaned = re.sub(r"\(\s*\)", " ", value)
    cleaned = re.sub(r"\s{2,}", " ", cleaned)
    return cleaned.strip(" |,–—-()")


def _role_company(text: str) -> tuple[str, str]:
    at_match = _AT_RE.match(text)
    if at_match:
        return at_match.group("role").strip(" |,"), _trim_separators(at_match.group("company"))
    parts = [part.strip() for part in _HEADER_SPLIT_RE.split(text) if part and part.strip()]
    if not parts:
        return "", ""
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1]


def heuristic_experience(lines: list[str]) -> list[ExperienceEntry]:
    entries: list[ExperienceEntry] = []
    current: ExperienceEntry | None = None
    pending_header: str | None = None

    def start_entry(header: str, start: str = "", end: str = "") -> ExperienceEntry:
        role, company = _role_company(header)
        entry = ExperienceEntry(role=role, company=company, start_date=start, end_date=end)
        entries.append(entry)
        return entry

    for line in lines:
        if is_bullet_like(line):
            bullet = strip_bullet_prefix(line)
            if not bullet:
                continue
            if pending_header is not None:
                current = start_entry(pending_header)
                pending_header = None
            if current is None:
                current = start_entry("")
            current.bullets.append(bullet)
            continue

        remainder, start, end = _split_date_range(line)
        if start:
            if pending_header is not None:
                current = start_entry(pending_header, start, end)
                pending_header = None
                if remainder and not current.company:
                    current.company = remainder
            else:
                current = start_entry(remainder, start, end)
            continue

        if current is not None and current.bullets and line[:1].islower():
            # wrapped bullet
            current.bullets[-1] = f"{current.bullets[-1]} {line}"
            continue

        if pending_header is not None:
            if not _role_company(pending_header)[1]:
                pending_header = f"{pending_header} | {line}"
                continue
            current = start_entry(pending_header)
            pending_header = None

        if current is not None and not current.bullets and current.start_date and not current.company:
            # "Company | dates" followed by the title line
            current.company, current.role = current.role, line
            continue
        pending_header = line

    if pending_header is not None:
        start_entry(pending_header)

    return [entry for entry in entries if entry.role or entry.company or entry.bullets]


def heuristic_education(lines: list[str]) -> list[EducationEntry]:
    entries: list[EducationEntry] = []
    for raw_line in lines:
        line = strip_bullet_prefix(raw_line) if is_bullet_like(raw_line) else raw_line
        remainder, start, end = _split_date_range(line)
        date = end if end and not _PRESENT_RE.fullmatch(end) else start
        parts = [part.strip() for part in _EDU_SPLIT_RE.split(remainder) if part and part.strip()]
        degree = next((part for part in parts if _DEGREE_RE.search(part)), "")
        school = next((part for part in parts if _SCHOOL_RE.search(part) and part != degree), "")
        if not school and degree and _SCHOOL_RE.search(degree) and len(parts) == 1:
            # "BSc Computer Science, University of X" kept as one part
            pieces = [piece.strip() for piece in degree.split(",") if piece.strip()]
            school = next((piece for piece in pieces if _SCHOOL_RE.search(piece)), "")
            degree = next((piece for piece in pieces if _DEGREE_RE.search(piece)), degree)

        last = entries[-1] if entries else None
        if degree and school:
            entries.append(EducationEntry(degree=degree, school=school, date=date))
        elif school:
            if last is not None and last.degree and not last.school:
                last.school = school
                last.date = last.date or date
            else:
                entries.append(EducationEntry(school=school, date=date))
        elif degree:
            if last is not None and last.school and not last.degree:
                last.degree = degree
                last.date = last.date or date
            else:
                entries.append(EducationEntry(degree=degree, date=date))
        elif date and last is not None and not last.date:
            last.date = date
    return [entry for entry in entries if entry.school or entry.degree]


def heuristic_projects(lines: list[str]) -> list[ProjectEntry]:
    projects: list[ProjectEntry] = []
    for raw_line in lines:
        bullet = is_bullet_like(raw_line)
        line = strip_bullet_prefix(raw_line) if bullet else raw_line
        if len(line) <= 5:
            continue

        tech_match = _TECH_LINE_RE.match(line)
        if tech_match and projects:
            technologies = [item for item in _SKILL_SPLIT_RE.split(tech_match.group("items")) if item]
            projects[-1].technologies = unique_casefold([*projects[-1].technologies, *technologies])
            continue

        urls = URL_RE.findall(line)
        if bullet and projects:
            current = projects[-1]
            current.description = f"{current.description} {line}".strip()
            if urls and not current.url:
                current.url = urls[0].rstrip(".,;")
            continue

        if len(projects) >= 12:
            break
        cleaned = URL_RE.sub("", line).strip()
        pieces = _PROJECT_SPLIT_RE.split(cleaned, maxsplit=1)
        name = pieces[0].strip(" |")
        description = pieces[1].strip() if len(pieces) > 1 else ""
        if urls and description:
            description = f"{description} {urls[0]}".strip()
        project = ProjectEntry(
            name=name,
            description=description,
            technologies=[],
            url=urls[0].rstrip(".,;") if urls else None,
        )
        if project.name or project.description or project.url:
            projects.append(project)
    return projects


def heuristic_skills(lines: list[str]) -> list[str]:
    skills: list[str] = []
    for raw_line in lines:
        line = strip_bullet_prefix(raw_line) if is_bullet_like(raw_line) else raw_line
        line = _LABEL_PREFIX_RE.sub("", line)
        for token in _SKILL_SPLIT_RE.split(line):
            cleaned = token.strip(" .")
            if cleaned and len(cleaned) <= 40:
                skills.append(cleaned)
    return unique_casefold(skills)


def _plain_items(lines: list[str]) -> list[str]:
    return unique([strip_bullet_prefix(line) if is_bullet_like(line) else line for line in lines])


def heuristic_resume(raw_text: str) -> CanonicalResume:
    """Structure raw resume text without any model call."""
    lines = split_lines(raw_text)
    header, sections = split_sections(lines)
    resume = CanonicalResume(contact=heuristic_contact(header, raw_text))

    for key, heading, body in sections:
        if key == "summary":
            resume.summary = " ".join(_plain_items(body)).strip()
        elif key == "experience":
            resume.experience.extend(heuristic_experience(body))
        elif key == "projects":
            resume.projects.extend(heuristic_projects(body))
        elif key == "skills":
            resume.skills = unique_casefold([*resume.skills, *heuristic_skills(body)])
        elif key == "education":
            resume.education.extend(heuristic_education(body))
        elif key == "certifications":
            resume.certifications.extend(_plain_items(body))
        elif key == "achievements":
            resume.achievements.extend(_plain_items(body))
        elif key == "languages":
            resume.languages.extend(heuristic_skills(body))
        elif body:
            resume.custom_sections.append(CustomSection(title=heading.title(), items=_plain_items(body)))

    return resume
