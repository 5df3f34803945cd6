from __future__ import annotations

import json
from pathlib import Path

from .provider import RelationTier, TaxonomyProvider


class LocalTaxonomy(TaxonomyProvider):
    def __init__(self, related_skills_path: str | Path | None = None) -> None:
        path = Path(related_skills_path) if related_skills_path else Path(__file__).with_name("related_skills.json")
        self._families, self._alternatives = self._load_related_skills(path)

    @staticmethod
    def _load_related_skills(path: Path) -> tuple[dict[str, set[str]], set[frozenset[str]]]:
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)

        families: dict[str, set[str]] = {}
        for family_id, members in (raw.get("families") or {}).items():
            for member in members:
                families.setdefault(str(member).strip().lower(), set()).add(str(family_id))

        alternatives = {
            frozenset(str(item).strip().lower() for item in pair)
            for pair in raw.get("alternatives") or []
            if len(pair) == 2
        }
        return families, alternatives

    def families_for(self, skill: str) -> set[str]:
        return set(self._families.get(skill.strip().lower(), set()))

    def normalize_skill(self, raw: str) -> tuple[str, str | None]:
        normalized = raw.strip().lower()
        families = sorted(self._families.get(normalized, set()))
        return normalized, families[0] if families else None

    def relation(self, source: str, target: str) -> RelationTier | None:
        source_key = source.strip().lower()
        target_key = target.strip().lower()
        if not source_key or not target_key or source_key == target_key:
            return None
        if frozenset((source_key, target_key)) in self._alternatives:
            return "high"
        if self.families_for(source_key) & self.families_for(target_key):
            return "medium"
        return None
