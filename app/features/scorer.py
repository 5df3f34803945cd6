from __future__ import annotations

from app.core.config import EngineConfig, resolve_engine_config
from app.normalize.utils import includes_normalized, normalize_for_match, word_count
from app.schemas.normalized import CanonicalResume, JobSpec, ScoreBreakdown, ScoreDetails

from .gap_analysis import resume_corpus


def _clamp(value: float) -> int:
    return max(0, min(100, int(round(value))))


def _coverage(keywords: list[str], corpus: str) -> float:
    """Percent of keywords found in the normalized corpus; an empty list counts as full coverage."""
    cleaned = [keyword for keyword in keywords if keyword.strip()]
    if not cleaned:
        return 100.0
    hits = sum(1 for keyword in cleaned if includes_normalized(corpus, keyword))
    return hits / len(cleaned) * 100


def keyword_coverage_score(resume: CanonicalResume, job_spec: JobSpec, config: EngineConfig | None = None) -> int:
    mix = resolve_engine_config(config).scoring.keyword_mix
    corpus = resume_corpus(resume)
    return _clamp(
        mix.must_have * _coverage(job_spec.must_have_skills, corpus)
        + mix.exact_phrase * _coverage(job_spec.exact_phrases, corpus)
        + mix.nice_to_have * _coverage(job_spec.nice_to_have_skills, corpus)
    )


def structure_hygiene_score(resume: CanonicalResume, config: EngineConfig | None = None) -> int:
    cfg = resolve_engine_config(config)
    rules = cfg.scoring.structure
    checks = [
        len(resume.summary.strip()) >= rules.summary_min_chars,
        len(resume.skills) >= rules.skills_min_count,
        len(resume.experience) >= 1,
        len(resume.education) >= 1,
        bool(resume.experience)
        and all(len(entry.bullets) >= cfg.bullets.min_per_role for entry in resume.experience),
    ]
    return _clamp(sum(20 for passed in checks if passed))


def relevance_evidence_score(resume: CanonicalResume, job_spec: JobSpec, config: EngineConfig | None = None) -> int:
    cfg = resolve_engine_config(config)
    keywords = [keyword for keyword in [*job_spec.must_have_skills, *job_spec.exact_phrases] if keyword.strip()]
    if not keywords:
        return _clamp(cfg.scoring.relevance_default)
    bullets = [normalize_for_match(bullet) for bullet in resume.all_bullets()]
    hits = sum(1 for keyword in keywords if any(includes_normalized(bullet, keyword) for bullet in bullets))
    return _clamp(hits / len(keywords) * 100)


def starts_with_action_verb(bullet: str, power_verbs: set[str]) -> bool:
    words = bullet.strip().split()
    if not words:
        return False
    first = words[0].strip(".,;:()").lower()
    return first in power_verbs or first.endswith("ed")


def impact_clarity_score(resume: CanonicalResume, config: EngineConfig | None = None) -> int:
    cfg = resolve_engine_config(config)
    bullets = [bullet for bullet in resume.all_bullets() if bullet.strip()]
    if not bullets:
        return 0

    power_verbs = {verb.lower() for verb in cfg.power_verbs}
    outcome_verbs = [verb.lower() for verb in cfg.outcome_verbs]
    total = len(bullets)
    action = sum(1 for bullet in bullets if starts_with_action_verb(bullet, power_verbs)) / total
    outcome = sum(1 for bullet in bullets if any(verb in bullet.lower() for verb in outcome_verbs)) / total
    concise = sum(1 for bullet in bullets if word_count(bullet) <= cfg.bullets.max_words_concise) / total

    mix = cfg.scoring.impact_mix
    return _clamp((mix.action_verb * action + mix.outcome * outcome + mix.concise * concise) * 100)


def score_resume(resume: CanonicalResume, job_spec: JobSpec, *, config: EngineConfig | None = None) -> ScoreBreakdown:
    """Four-dimension match score, each part in [0, 100], plus the weighted total."""
    cfg = resolve_engine_config(config)
    keyword = keyword_coverage_score(resume, job_spec, cfg)
    structure = structure_hygiene_score(resume, cfg)
    relevance = relevance_evidence_score(resume, job_spec, cfg)
    impact = impact_clarity_score(resume, cfg)

    weights = cfg.scoring.weights
    total = _clamp(
        weights.keyword * keyword
        + weights.structure * structure
        + weights.relevance * relevance
        + weights.impact * impact
    )

    corpus = resume_corpus(resume)
    missing_phrases = [phrase for phrase in job_spec.exact_phrases if not includes_normalized(corpus, phrase)]

    return ScoreBreakdown(
        total=total,
        keyword_coverage=keyword,
        structure_hygiene=structure,
        relevance_evidence=relevance,
        impact_clarity=impact,
        details=ScoreDetails(missing_phrases=missing_phrases),
    )
