"""RSS/Atom parsing and the feed-entry quality heuristic."""

from __future__ import annotations

from datetime import datetime, timezone
import re

from bs4 import BeautifulSoup
import feedparser

from ..dates import from_struct_time, parse_updated
from ..errors import ParseError
from ..types import RawItem


_BAD_TITLE_PATTERNS = [
    re.compile(r"\blast updated\b", re.IGNORECASE),
    re.compile(r"^\s*updated\s*:", re.IGNORECASE),
    re.compile(r"^\s*new\s*:", re.IGNORECASE),
    re.compile(r"^\s*\d+\s*[.)]\s"),
    re.compile(r"^\s*(?:top\s+)?\d+\s+(?:things|takeaways|players|teams|reasons|questions|moves|storylines|bold)\b", re.IGNORECASE),
    re.compile(r"\(source:\s*[^)]*\)\s*$", re.IGNORECASE),
]
_BYLINE_ONLY_RE = re.compile(r"^\s*By\s+[A-Z][\w.'-]+(?:\s+[A-Z][\w.'-]+){0,3}\s*\.?\s*$")
# Prefix match so inflections ("returns", "injuries") count.
_MEANINGFUL_RE = re.compile(
    r"\b(?:sign|agree|announce|injur|trade|release|suspend|return|contract|waive|out\b|ruled|activate"
    r"|questionable|doubtful|limited|inactive|concussion|hamstring|ankle|knee|placed on|reserve|practice)",
    re.IGNORECASE,
)
_DATE_MENTION_RE = re.compile(
    r"\b(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Sept|Oct|Nov|Dec)[a-z]*\.?\s+\d{1,2}(?:,\s*\d{4})?\b"
)


def parse_feed(text: str) -> list[RawItem]:
    """Parse RSS/Atom text into raw items.

    Raises:
        ParseError: when the document is not a feed at all.
    """
    parsed = feedparser.parse(text)
    if parsed.bozo and not parsed.entries:
        raise ParseError(f"unparsable feed: {parsed.get('bozo_exception')}")
    items = []
    for entry in parsed.entries:
        link = entry.get("link")
        if not link:
            continue
        summary = entry.get("summary") or entry.get("description") or ""
        items.append(
            RawItem(
                url=link,
                title=(entry.get("title") or "").strip(),
                published=from_struct_time(
                    entry.get("published_parsed") or entry.get("updated_parsed"), timezone.utc
                ),
                body=BeautifulSoup(summary, "html.parser").get_text(" ", strip=True) if summary else "",
            )
        )
    return items


def is_quality_entry(item: RawItem, lookback_hours: float, now: datetime, staleness_days: int) -> bool:
    """Reject stale date strings, byline-only stubs and list-style titles.

    Wider lookbacks also require a newsworthy word somewhere in the title
    or summary, since they mostly surface evergreen features.
    """
    title = item.title.strip()
    if not title:
        return False
    if any(pattern.search(title) for pattern in _BAD_TITLE_PATTERNS):
        return False
    if item.body and _BYLINE_ONLY_RE.match(item.body):
        return False
    for mention in _DATE_MENTION_RE.findall(f"{title} {item.body[:200]}"):
        mentioned = parse_updated(mention, now)
        if mentioned is not None and (now - mentioned).days > staleness_days:
            return False
    if lookback_hours > 24:
        if len(title) < 20 or not _MEANINGFUL_RE.search(f"{title} {item.body}"):
            return False
    return True
