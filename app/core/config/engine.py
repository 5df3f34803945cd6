from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .settings import settings

_ENGINE_CONFIG_CACHE: dict[str, Any] | None = None
_DEFAULT_ENGINE_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "engine.yaml"


def _engine_config_path() -> Path:
    if settings.engine_config_path:
        return Path(settings.engine_config_path)
    return _DEFAULT_ENGINE_CONFIG_PATH


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise RuntimeError(
            f"Engine config not found at '{path}'. "
            "Expected file: config/engine.yaml"
        )

    try:
        import yaml  # type: ignore[import-not-found]
    except Exception as exc:
        raise RuntimeError(
            "Unable to parse engine config because PyYAML is unavailable. "
            "Install dependency: PyYAML."
        ) from exc

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read engine config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:  # type: ignore[attr-defined]
        raise RuntimeError(f"Invalid YAML in engine config '{path}': {exc}") from exc

    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid engine config '{path}': expected a top-level mapping.")
    return parsed


def get_engine_config() -> dict[str, Any]:
    """Load the raw engine tuning mapping from config/engine.yaml and cache it."""
    global _ENGINE_CONFIG_CACHE

    if _ENGINE_CONFIG_CACHE is not None:
        return _ENGINE_CONFIG_CACHE

    _ENGINE_CONFIG_CACHE = _read_yaml_mapping(_engine_config_path())
    return _ENGINE_CONFIG_CACHE


def get_engine_value(path: str, default: Any = None) -> Any:
    """Get nested config value using dot path notation, e.g. 'confidence.thresholds.reject'."""
    if not path:
        return default

    current: Any = get_engine_config()
    for key in path.split("."):
        if not isinstance(current, dict):
            return default
        if key not in current:
            return default
        current = current[key]
    return current


class ConfidenceThresholds(BaseModel):
    reject: int = 45
    review: int = 65
    auto_accept: int = 80


class ConfidenceRules(BaseModel):
    base: int = 40
    name_bonus: int = 12
    email_bonus: int = 10
    bullets_bonus: int = 18
    skills_bonus: int = 10
    skills_min_count: int = 5
    education_bonus: int = 10
    warning_penalty: int = 5
    warning_penalty_cap: int = 20
    thresholds: ConfidenceThresholds = Field(default_factory=ConfidenceThresholds)


class BulletRules(BaseModel):
    min_per_role: int = 2
    max_per_role: int = 8
    max_words_gate: int = 32
    max_words_concise: int = 30
    max_words_rewrite: int = 28
    max_verb_repetitions: int = 3


class ScoreWeights(BaseModel):
    keyword: float = 0.35
    structure: float = 0.25
    relevance: float = 0.25
    impact: float = 0.15


class KeywordMix(BaseModel):
    must_have: float = 0.6
    exact_phrase: float = 0.3
    nice_to_have: float = 0.1


class ImpactMix(BaseModel):
    action_verb: float = 0.35
    outcome: float = 0.35
    concise: float = 0.3


class StructureRules(BaseModel):
    summary_min_chars: int = 40
    skills_min_count: int = 6


class ScoringRules(BaseModel):
    weights: ScoreWeights = Field(default_factory=ScoreWeights)
    keyword_mix: KeywordMix = Field(default_factory=KeywordMix)
    impact_mix: ImpactMix = Field(default_factory=ImpactMix)
    structure: StructureRules = Field(default_factory=StructureRules)
    relevance_default: float = 80


class QualityGateRules(BaseModel):
    critical_section_min_ratio: float = 0.9
    content_volume_min_ratio: float = 0.65
    max_issues: int = 20


class JobSpecRules(BaseModel):
    min_text_chars: int = 20
    max_responsibilities: int = 10
    max_must_have: int = 10
    max_nice_to_have: int = 10
    max_exact_phrases: int = 12
    phrase_min_chars: int = 18
    phrase_max_chars: int = 120
    title_max_chars: int = 100
    fallback_title: str = "Target Role"


class RewriteRules(BaseModel):
    min_summary_chars: int = 20
    bullet_floor_ratio: float = 0.9


class GapRules(BaseModel):
    max_recommendations: int = 6
    max_transferable: int = 8


class EngineInfo(BaseModel):
    version: str = "2.0.0"
    prompt_version: str = "2.0.0"


class EngineConfig(BaseModel):
    engine: EngineInfo = Field(default_factory=EngineInfo)
    confidence: ConfidenceRules = Field(default_factory=ConfidenceRules)
    bullets: BulletRules = Field(default_factory=BulletRules)
    scoring: ScoringRules = Field(default_factory=ScoringRules)
    quality_gate: QualityGateRules = Field(default_factory=QualityGateRules)
    job_spec: JobSpecRules = Field(default_factory=JobSpecRules)
    gap: GapRules = Field(default_factory=GapRules)
    rewrite: RewriteRules = Field(default_factory=RewriteRules)
    power_verbs: list[str] = Field(default_factory=list)
    outcome_verbs: list[str] = Field(default_factory=list)
    role_keywords: list[str] = Field(default_factory=list)
    skill_vocabulary: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)
    domain_terms: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


@lru_cache(maxsize=1)
def load_engine_config() -> EngineConfig:
    """Typed view over config/engine.yaml; components take it as an injected value."""
    return EngineConfig.model_validate(get_engine_config())


def resolve_engine_config(config: EngineConfig | None) -> EngineConfig:
    return config if config is not None else load_engine_config()
