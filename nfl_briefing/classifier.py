"""
Rule-based classifier routing normalized articles to categories.

Order of checks: hard exclusion, structured-source shortcut, pattern tests
with precedence (injury, then roster, then breaking only when neither of
the first two fired), allowlist, fact-bullet synthesis and quality check.
A rejection is a normal outcome and is only logged at DEBUG.
"""

from __future__ import annotations

import logging
import re

from .config import BULLET_MAX_CHARS
from .entities import extract_player_name
from .extractor import split_sentences
from .formatter import format_bullet
from .logging_utils import log_event
from .rules import (
    ACTION_WORD_PATTERN,
    BREAKING,
    CATEGORY_RULES,
    EXCLUDE_PATTERN,
    GENERAL_INTEREST_DOMAINS,
    INJURY,
    MIN_BULLET_CHARS,
    MIN_BULLET_WORDS,
    PRECEDENCE,
    ROSTER,
    allowlist_for,
)
from .teams import find_team
from .types import ClassifiedItem, NormalizedArticle
from .urls import domain_matches


logger = logging.getLogger(__name__)

_LEDE_CHARS = 400
_LETTER_RE = re.compile(r"[A-Za-z]")


def passes_quality(sentence: str) -> bool:
    """Minimal sanity check for a fact sentence."""
    text = sentence.strip()
    if len(text) < MIN_BULLET_CHARS or not _LETTER_RE.search(text):
        return False
    if text.isupper():
        return False
    if len(text.split()) < MIN_BULLET_WORDS:
        return False
    return bool(ACTION_WORD_PATTERN.search(text))


def is_allowed(domain: str, category: str) -> bool:
    if category == ROSTER and domain_matches(domain, GENERAL_INTEREST_DOMAINS):
        return False
    return domain_matches(domain, allowlist_for(category))


class Classifier:
    def __init__(self, bullet_max_chars: int = BULLET_MAX_CHARS):
        self.bullet_max_chars = bullet_max_chars

    def classify(self, article: NormalizedArticle) -> ClassifiedItem | None:
        if self.is_excluded(article):
            return self._reject(article, "excluded")

        if article.bullet and article.category_hint:
            return self._classify_structured(article)

        haystack = f"{article.title}\n{article.text}"
        hits = {name: CATEGORY_RULES[name].pattern.search(haystack) is not None for name in PRECEDENCE}

        category: str | None = None
        for candidate in PRECEDENCE:
            if not hits[candidate]:
                continue
            if candidate == BREAKING and (hits[INJURY] or hits[ROSTER]):
                break
            if is_allowed(article.domain, candidate):
                category = candidate
                break
        if category is None:
            return self._reject(article, "no_allowed_category")

        sentence = self._fact_sentence(article, category)
        if sentence is None:
            return self._reject(article, "no_fact_sentence")
        if not passes_quality(sentence):
            return self._reject(article, "quality")

        player = extract_player_name(sentence) or article.player
        team = find_team(sentence) or article.team
        body = self._bullet_body(category, sentence, player, team)
        bullet = format_bullet(body, article.source, self.bullet_max_chars)
        return ClassifiedItem(article=article, category=category, fact_bullet=bullet, player=player, team=team)

    def is_excluded(self, article: NormalizedArticle) -> bool:
        return EXCLUDE_PATTERN.search(f"{article.title}\n{article.text[:_LEDE_CHARS]}") is not None

    def is_candidate(self, article: NormalizedArticle, category: str) -> bool:
        """Whether an article may serve as enhancement material for a category."""
        if self.is_excluded(article) or not is_allowed(article.domain, category):
            return False
        if article.category_hint:
            return article.category_hint == category
        return CATEGORY_RULES[category].pattern.search(f"{article.title}\n{article.text}") is not None

    def _classify_structured(self, article: NormalizedArticle) -> ClassifiedItem | None:
        category = article.category_hint or ""
        if category not in CATEGORY_RULES or not is_allowed(article.domain, category):
            return self._reject(article, "structured_not_allowed")
        try:
            bullet = format_bullet(article.bullet or "", None, self.bullet_max_chars)
        except ValueError:
            return self._reject(article, "structured_no_citation")
        return ClassifiedItem(
            article=article,
            category=category,
            fact_bullet=bullet,
            player=article.player,
            team=article.team,
        )

    def _fact_sentence(self, article: NormalizedArticle, category: str) -> str | None:
        pattern = CATEGORY_RULES[category].pattern
        for sentence in split_sentences(article.text):
            if pattern.search(sentence):
                return sentence
        if pattern.search(article.title):
            return article.title.strip()
        return None

    def _bullet_body(self, category: str, sentence: str, player: str | None, team: str | None) -> str:
        if category == INJURY:
            if player and team:
                return f"{player} ({team}) — {sentence}"
            if player:
                return f"{player} — {sentence}"
            return sentence
        if category == ROSTER and team:
            return f"{team} — {sentence}"
        return sentence

    def _reject(self, article: NormalizedArticle, reason: str) -> None:
        log_event(
            logger,
            "Classification reject",
            level=logging.DEBUG,
            event="classify_reject",
            url=article.url,
            reason=reason,
        )
        return None
