"""Fact-preservation validator for rewritten resumes.

Each check is a pure function returning issue strings. Checks are tagged
critical or warning in ``DEFAULT_CHECKS``; any critical issue fails the
rewrite, warnings only flag it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Sequence

from app.core.config import EngineConfig, resolve_engine_config
from app.normalize.evidence import collect_numbers
from app.normalize.utils import normalize_fact, word_count
from app.schemas.analysis import QualityGateResult
from app.schemas.normalized import CanonicalResume, EvidenceMap

Severity = Literal["critical", "warning"]


@dataclass(frozen=True, slots=True)
class GateInputs:
    rewritten: CanonicalResume
    original: CanonicalResume
    evidence_pool: tuple[str, ...]
    evidence_map: EvidenceMap
    config: EngineConfig


@dataclass(frozen=True, slots=True)
class GateCheck:
    name: str
    severity: Severity
    fn: Callable[[GateInputs], list[str]]


def has_critical_missing_facts(resume: CanonicalResume) -> list[str]:
    issues: list[str] = []
    if not resume.contact.name.strip():
        issues.append("Missing contact name")
    if not resume.experience:
        issues.append("No experience entries")
    if not resume.education:
        issues.append("No education entries")
    return issues


def check_entry_counts(rewritten: CanonicalResume, original: CanonicalResume) -> list[str]:
    issues: list[str] = []
    pairs = (
        ("Experience", len(original.experience), len(rewritten.experience)),
        ("Project", len(original.projects), len(rewritten.projects)),
        ("Education", len(original.education), len(rewritten.education)),
    )
    for label, before, after in pairs:
        if before != after:
            issues.append(f"{label} entry count changed from {before} to {after}")
    return issues


def compare_fact_preservation(rewritten: CanonicalResume, original: CanonicalResume) -> list[str]:
    issues: list[str] = []
    for index, (new, old) in enumerate(zip(rewritten.experience, original.experience)):
        if normalize_fact(new.company) != normalize_fact(old.company):
            issues.append(f"Experience[{index}] company changed from original")
        if normalize_fact(new.role) != normalize_fact(old.role):
            issues.append(f"Experience[{index}] role changed from original")
        if normalize_fact(new.start_date) != normalize_fact(old.start_date):
            issues.append(f"Experience[{index}] start date changed from original")
        if normalize_fact(new.end_date) != normalize_fact(old.end_date):
            issues.append(f"Experience[{index}] end date changed from original")

    for index, (new_edu, old_edu) in enumerate(zip(rewritten.education, original.education)):
        if normalize_fact(new_edu.school) != normalize_fact(old_edu.school):
            issues.append(f"Education[{index}] school changed from original")
        if normalize_fact(new_edu.degree) != normalize_fact(old_edu.degree):
            issues.append(f"Education[{index}] degree changed from original")
    return issues


def detect_skill_injection(rewritten: CanonicalResume, evidence_map: EvidenceMap) -> list[str]:
    allowed = {skill.strip().lower() for skill in evidence_map.skills if skill.strip()}
    issues: list[str] = []
    reported: set[str] = set()
    for skill in rewritten.skills:
        key = skill.strip().lower()
        if not key or key in allowed or key in reported:
            continue
        reported.add(key)
        issues.append(f"Injected skill not in evidence: {skill.strip()}")
    return issues


def link_corpus(resume: CanonicalResume) -> str:
    """Text a link may survive in; portfolio_links is derived data and does not count."""
    parts = [
        resume.contact.linkedin,
        resume.summary,
        *resume.all_bullets(),
        *[text for project in resume.projects for text in (project.name, project.description, project.url or "")],
        *resume.certifications,
        *resume.achievements,
        *[item for section in resume.custom_sections for item in section.items],
    ]
    return " ".join(part for part in parts if part)


def required_links(original: CanonicalResume, evidence_map: EvidenceMap) -> list[str]:
    """Evidence links the original structured resume actually carries."""
    corpus = link_corpus(original)
    return [link for link in evidence_map.links if link and link in corpus]


def check_required_links(rewritten: CanonicalResume, original: CanonicalResume, evidence_map: EvidenceMap) -> list[str]:
    corpus = link_corpus(rewritten)
    return [
        f"Required link missing from rewrite: {link}"
        for link in required_links(original, evidence_map)
        if link not in corpus
    ]


def critical_section_ratio(rewritten: CanonicalResume, original: CanonicalResume, evidence_map: EvidenceMap) -> float:
    preserved = 0
    for index, old in enumerate(original.experience):
        new = rewritten.experience[index] if index < len(rewritten.experience) else None
        if new is not None and (any(bullet.strip() for bullet in new.bullets) or not old.bullets):
            preserved += 1
    for index, old_project in enumerate(original.projects):
        new_project = rewritten.projects[index] if index < len(rewritten.projects) else None
        if new_project is None:
            continue
        had_content = bool(old_project.description.strip() or old_project.url)
        if new_project.description.strip() or new_project.url or not had_content:
            preserved += 1

    corpus = link_corpus(rewritten)
    if all(link in corpus for link in required_links(original, evidence_map)):
        preserved += 1

    return preserved / (len(original.experience) + len(original.projects) + 1)


def check_critical_section_preservation(
    rewritten: CanonicalResume,
    original: CanonicalResume,
    evidence_map: EvidenceMap,
    config: EngineConfig | None = None,
) -> list[str]:
    minimum = resolve_engine_config(config).quality_gate.critical_section_min_ratio
    ratio = critical_section_ratio(rewritten, original, evidence_map)
    if ratio < minimum:
        return [f"Critical section preservation ratio {ratio:.2f} is below {minimum:.2f}"]
    return []


def content_word_count(resume: CanonicalResume) -> int:
    return sum(word_count(bullet) for bullet in resume.all_bullets()) + sum(
        word_count(project.description) for project in resume.projects
    )


def check_content_volume(
    rewritten: CanonicalResume,
    original: CanonicalResume,
    config: EngineConfig | None = None,
) -> list[str]:
    minimum = resolve_engine_config(config).quality_gate.content_volume_min_ratio
    before = content_word_count(original)
    if before == 0:
        return []
    ratio = content_word_count(rewritten) / before
    if ratio < minimum:
        return [f"Rewrite over-compressed content: word count ratio {ratio:.2f} is below {minimum:.2f}"]
    return []


def check_bullet_structure(rewritten: CanonicalResume, config: EngineConfig | None = None) -> list[str]:
    rules = resolve_engine_config(config).bullets
    issues: list[str] = []
    for index, entry in enumerate(rewritten.experience):
        if len(entry.bullets) < rules.min_per_role:
            issues.append(f"Experience[{index}] has too few bullets")
        if len(entry.bullets) > rules.max_per_role:
            issues.append(f"Experience[{index}] has too many bullets")
        for bullet_index, bullet in enumerate(entry.bullets):
            if word_count(bullet) > rules.max_words_gate:
                issues.append(f"Experience[{index}] bullet[{bullet_index}] is too long")
    return issues


def detect_unverifiable_numbers(
    rewritten: CanonicalResume,
    original: CanonicalResume,
    evidence_pool: Sequence[str],
) -> list[str]:
    original_corpus = " ".join(
        [
            original.summary,
            *original.skills,
            *original.certifications,
            *original.all_bullets(),
            *evidence_pool,
        ]
    )
    # "30%" and "30 percent" carry the same figure
    allowed = {number.rstrip("%") for number in collect_numbers(original_corpus)}
    issues: list[str] = []
    reported: set[str] = set()
    for bullet in rewritten.all_bullets():
        for number in sorted(collect_numbers(bullet)):
            value = number.rstrip("%")
            if value in allowed or value in reported:
                continue
            reported.add(value)
            issues.append(f"Potentially invented metric detected: {number}")
    return issues


DEFAULT_CHECKS: tuple[GateCheck, ...] = (
    GateCheck("has_critical_missing_facts", "critical", lambda ctx: has_critical_missing_facts(ctx.rewritten)),
    GateCheck("check_entry_counts", "critical", lambda ctx: check_entry_counts(ctx.rewritten, ctx.original)),
    GateCheck(
        "compare_fact_preservation",
        "critical",
        lambda ctx: compare_fact_preservation(ctx.rewritten, ctx.original),
    ),
    GateCheck("detect_skill_injection", "critical", lambda ctx: detect_skill_injection(ctx.rewritten, ctx.evidence_map)),
    GateCheck(
        "check_required_links",
        "critical",
        lambda ctx: check_required_links(ctx.rewritten, ctx.original, ctx.evidence_map),
    ),
    GateCheck(
        "check_critical_section_preservation",
        "critical",
        lambda ctx: check_critical_section_preservation(ctx.rewritten, ctx.original, ctx.evidence_map, ctx.config),
    ),
    GateCheck(
        "check_content_volume",
        "critical",
        lambda ctx: check_content_volume(ctx.rewritten, ctx.original, ctx.config),
    ),
    GateCheck("check_bullet_structure", "warning", lambda ctx: check_bullet_structure(ctx.rewritten, ctx.config)),
    GateCheck(
        "detect_unverifiable_numbers",
        "warning",
        lambda ctx: detect_unverifiable_numbers(ctx.rewritten, ctx.original, ctx.evidence_pool),
    ),
)


def validate_output(
    rewritten: CanonicalResume,
    original: CanonicalResume,
    evidence_pool: Sequence[str],
    evidence_map: EvidenceMap,
    *,
    config: EngineConfig | None = None,
    checks: Sequence[GateCheck] = DEFAULT_CHECKS,
) -> QualityGateResult:
    cfg = resolve_engine_config(config)
    inputs = GateInputs(
        rewritten=rewritten,
        original=original,
        evidence_pool=tuple(evidence_pool),
        evidence_map=evidence_map,
        config=cfg,
    )

    critical: list[str] = []
    warnings: list[str] = []
    for check in checks:
        issues = check.fn(inputs)
        (critical if check.severity == "critical" else warnings).extend(issues)

    cap = cfg.quality_gate.max_issues
    if critical:
        return QualityGateResult(passed=False, status="failed", issues=[*critical, *warnings][:cap])
    if warnings:
        return QualityGateResult(passed=True, status="warning", issues=warnings[:cap])
    return QualityGateResult(passed=True, status="passed", issues=[])
