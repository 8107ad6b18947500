"""
Core data types for the aggregation pipeline.

This module defines the records that flow through the pipeline, in order:
- RawItem: One source's raw record before normalization
- NormalizedArticle: Cleaned article with canonical URL and entity hints
- ClassifiedItem: Article routed to a category with a synthesized fact bullet
- CategoryResult: Capped, formatted output for one category
- CategorizedResults: The public result of one aggregation call

Plus EntityKey (secondary dedup key) and Excerpt (enhancement input).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import re
from typing import Any


_SUFFIX_RE = re.compile(r"\b(jr|sr|ii|iii|iv|v)\b\.?", re.IGNORECASE)
_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]+")


@dataclass(frozen=True)
class EntityKey:
    """Normalized (person, team) pair.

    At most one bullet per key survives within a category.
    """

    person: str
    team: str

    @classmethod
    def build(cls, person: str | None, team: str | None) -> EntityKey | None:
        """Normalize a name/team pair; returns None without a person."""
        if not person:
            return None
        name = _SUFFIX_RE.sub("", person.lower())
        name = _NON_ALNUM_RE.sub("", name.replace("-", " ").replace(".", ""))
        name = " ".join(name.split())
        if not name:
            return None
        return cls(person=name, team=(team or "").strip().upper())


@dataclass
class RawItem:
    """One source's raw record.

    Attributes:
        url: Link as published by the source
        title: Headline or row label
        published: Publish/update time, if the source provides one
        body: Raw snippet or body text
    """

    url: str
    title: str
    published: datetime | None = None
    body: str = ""


@dataclass
class NormalizedArticle:
    """Article normalized by a source adapter.

    Attributes:
        url: Canonical URL (tracking parameters stripped)
        source: Short source name used in citations (e.g. "ESPN")
        domain: Registrable source domain used for allowlist checks
        title: Headline
        text: Cleaned full text (bylines and boilerplate removed)
        published: Publish/update time
        stage: Adapter stage label used for provenance ("table", "transactions", "feed")
        player: Optional player name hint
        team: Optional team abbreviation hint
        bullet: Pre-formatted bullet from structured adapters
        category_hint: Category implied by a structured source
    """

    url: str
    source: str
    domain: str
    title: str
    text: str
    published: datetime | None = None
    stage: str = "feed"
    player: str | None = None
    team: str | None = None
    bullet: str | None = None
    category_hint: str | None = None

    @property
    def entity_key(self) -> EntityKey | None:
        return EntityKey.build(self.player, self.team)


@dataclass
class ClassifiedItem:
    article: NormalizedArticle
    category: str
    fact_bullet: str
    player: str | None = None
    team: str | None = None

    @property
    def url(self) -> str:
        return self.article.url

    @property
    def entity_key(self) -> EntityKey | None:
        return EntityKey.build(self.player, self.team)


@dataclass
class Excerpt:
    """Length-bounded text fragment submitted to the enhancement collaborator."""

    source: str
    title: str
    text: str
    url: str = ""


@dataclass
class CategoryResult:
    """Capped, formatted output for one category.

    Attributes:
        bullets: Ordered bullet strings, at most the category cap
        total_count: Number of bullets available before capping
        overflow: max(0, total_count - cap)
        source: Provenance string ("table + feed", "None", ...)
    """

    bullets: list[str] = field(default_factory=list)
    total_count: int = 0
    overflow: int = 0
    source: str = "None"

    def as_dict(self) -> dict[str, Any]:
        return {
            "bullets": list(self.bullets),
            "total_count": self.total_count,
            "overflow": self.overflow,
            "source": self.source,
        }


@dataclass
class CategorizedResults:
    injury: CategoryResult = field(default_factory=CategoryResult)
    roster: CategoryResult = field(default_factory=CategoryResult)
    breaking: CategoryResult = field(default_factory=CategoryResult)
    fallbacks_used: list[str] = field(default_factory=list)

    def get(self, category: str) -> CategoryResult:
        return getattr(self, category)

    def as_dict(self) -> dict[str, Any]:
        return {
            "injury": self.injury.as_dict(),
            "roster": self.roster.as_dict(),
            "breaking": self.breaking.as_dict(),
            "fallbacks_used": list(self.fallbacks_used),
        }
