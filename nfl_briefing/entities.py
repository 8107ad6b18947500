"""
Entity extraction: player names and team abbreviations from free text.

This is a lookup heuristic, not identity resolution. A capitalized-name
regex proposes candidates, the team dictionary and a stopword list prune
them. Expect occasional misses on unusual names and occasional false
hits on capitalized phrases.
"""

from __future__ import annotations

import re

from .teams import CITY_NAMES, TEAMS, find_team, team_abbr


_TOKEN = r"(?:[A-Z]\.(?:[A-Z]\.)?|[A-Z][a-z]*(?:[A-Z][a-z]+)?(?:['’-][A-Z][a-z]+)?)(?!\w)"
_SUFFIX = r"(?:\s+(?:Jr\.|Sr\.|II|III|IV))?"
NAME_PATTERN = re.compile(rf"\b{_TOKEN}(?:\s+(?!(?:Jr|Sr)\.){_TOKEN}){{1,3}}{_SUFFIX}")

# "Player (TEAM) — ..." and "TEAM — ..." bullet prefixes.
_PLAYER_PREFIX_RE = re.compile(r"^(?:\W+\s*)?(?P<player>[^()—]{3,60}?)\s+\((?P<team>[A-Z]{2,4})\)\s+[—-]")
_TEAM_PREFIX_RE = re.compile(r"^(?:\W+\s*)?(?P<team>[A-Z]{2,4})\s+[—-]\s")

_STOPWORDS = {
    "A", "An", "The", "In", "On", "At", "After", "Before", "During", "Per", "Via", "With", "From", "And",
    "But", "For", "This", "That", "His", "Her", "Their", "He", "She", "They", "It", "We", "If", "When",
    "Head", "Coach", "Coordinator", "Offensive", "Defensive", "General", "Manager", "Owner", "President",
    "Quarterback", "Receiver", "Running", "Back", "Tight", "End", "Linebacker", "Cornerback", "Safety",
    "Tackle", "Guard", "Center", "Kicker", "Punter", "Rookie", "Veteran", "Star", "Pro", "Bowl", "Super",
    "National", "Football", "League", "NFL", "ESPN", "Sources", "Source", "Breaking", "Report", "Reports",
    "Update", "Updated", "News", "Week", "Training", "Camp", "Practice", "Squad", "Injured", "Reserve",
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
    "January", "February", "March", "April", "May", "June", "July", "August", "September", "October",
    "November", "December", "Jan", "Feb", "Mar", "Apr", "Jun", "Jul", "Aug", "Sep", "Sept", "Oct",
    "Nov", "Dec", "Free", "Agent", "Agency", "Draft", "Preseason", "Season", "Game", "Games",
    "Thanksgiving", "Christmas", "Day", "Night", "Sunday Night", "Monday Night",
}
_TEAM_WORDS = set()
for _team in TEAMS:
    _TEAM_WORDS.update(_team.name.split())
    _TEAM_WORDS.update(_team.aliases)
_SKIP_WORDS = _STOPWORDS | _TEAM_WORDS


def extract_player_name(text: str | None) -> str | None:
    """Return the first plausible "First [Middle] Last" name in text, if any."""
    if not text:
        return None
    for match in NAME_PATTERN.finditer(text):
        candidate = _trim_candidate(match.group(0))
        if candidate:
            return candidate
    return None


def extract_entities(text: str | None, title: str | None = None) -> tuple[str | None, str | None]:
    """Return (player, team) hints, preferring the title for both."""
    player = extract_player_name(title) or extract_player_name(text)
    team = find_team(title) or find_team(text)
    return player, team


def entities_from_bullet(bullet: str) -> tuple[str | None, str | None]:
    """Recover (player, team) from a formatted bullet string."""
    match = _PLAYER_PREFIX_RE.match(bullet)
    if match and team_abbr(match.group("team")):
        return match.group("player").strip(), team_abbr(match.group("team"))
    match = _TEAM_PREFIX_RE.match(bullet)
    if match and team_abbr(match.group("team")):
        body = bullet[match.end() :]
        return extract_player_name(body), team_abbr(match.group("team"))
    return extract_player_name(bullet), find_team(bullet)


def _trim_candidate(candidate: str) -> str | None:
    if candidate in CITY_NAMES:
        return None
    tokens = candidate.split()
    while tokens and tokens[0] in _SKIP_WORDS:
        tokens.pop(0)
    while tokens and tokens[-1] in _SKIP_WORDS:
        tokens.pop()
    if len(tokens) < 2:
        return None
    name = " ".join(tokens)
    if name in CITY_NAMES or any(name.startswith(city + " ") for city in CITY_NAMES):
        return None
    if any(token in _SKIP_WORDS for token in tokens):
        return None
    return name
