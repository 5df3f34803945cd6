from __future__ import annotations

from typing import Literal, Protocol

RelationTier = Literal["high", "medium"]


class TaxonomyProvider(Protocol):
    def normalize_skill(self, raw: str) -> tuple[str, str | None]:
        """Return normalized text and the first related-skill family ID, if any."""

    def relation(self, source: str, target: str) -> RelationTier | None:
        """How closely ``source`` stands in for ``target``: direct alternative, same family, or unrelated."""
