"""
Classification rule table.

Everything the classifier decides on lives here as data: the per-category
vocabulary patterns, the per-category source allowlists, the hard exclusion
phrases and the bullet quality checks. All of it is heuristic; tests bound
the false positives and negatives rather than claiming exactness.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from .teams import OFFICIAL_TEAM_DOMAINS


INJURY = "injury"
ROSTER = "roster"
BREAKING = "breaking"


@dataclass(frozen=True)
class CategoryRule:
    category: str
    pattern: re.Pattern[str]
    allowlist: tuple[str, ...]


INJURY_PATTERN = re.compile(
    r"\b(?:injur(?:y|ies|ed)|carted off|out for (?:the )?season|out indefinitely|questionable|doubtful"
    r"|inactives?|ruled out|limited practice|limited in practice|did not practice|(?:placed|landed) on (?:ir|injured reserve)"
    r"|activated from (?:ir|injured reserve)|designated (?:him )?(?:to|for) return|concussion|hamstring|ankle|knee"
    r"|groin|shoulder|wrist|foot|calf|quad|back (?:injury|issue|spasms|tightness)"
    r"|pup list|physically unable)\b",
    re.IGNORECASE,
)

ROSTER_PATTERN = re.compile(
    r"\b(?:sign(?:ed|s|ing)?|re-?sign(?:ed|s)?|waive(?:d|s)?|release(?:d|s)?|trade(?:d|s)?|acquire(?:d|s)?"
    r"|promote(?:d|s)?|elevate(?:d|s)?|claim(?:ed|s)?(?: off waivers)?|activate(?:d|s)?(?! from)|agreement"
    r"|one-year deal|two-year deal|multiyear deal|extension|practice squad|cut)\b",
    re.IGNORECASE,
)

BREAKING_PATTERN = re.compile(
    r"\b(?:breaking|official(?:ly)?|announced?|press release|per sources?|sources|expected to"
    r"|agrees? to|agreed to|returns?|sidelined|ruled|suspend(?:ed|s)?|fired|hired|retire(?:d|s)?)\b",
    re.IGNORECASE,
)

# Noise pieces rejected outright, before any category test.
EXCLUDE_PATTERN = re.compile(
    r"\b(?:takeaways|observations|debut|first impressions?|film review|camp notebook|preseason notes"
    r"|went \d+-for-\d+|stat line|highlights)\b",
    re.IGNORECASE,
)

ACTION_WORD_PATTERN = re.compile(
    r"\b(?:is|are|was|were|will|has|have|had|signed|signs|waived|released|traded|injured|out|questionable"
    r"|doubtful|announced|placed|activated|claimed|agreed|agrees|expected|returns?|suffered|sustained"
    r"|missed|miss|limited|promoted|elevated|acquired|cut|ruled)\b",
    re.IGNORECASE,
)

# Feature-heavy general-interest outlets never populate roster.
GENERAL_INTEREST_DOMAINS = ("yahoo.com", "cbssports.com")

INJURY_ALLOWLIST = (
    "espn.com",
    "nfl.com",
    "profootballtalk.nbcsports.com",
    "yahoo.com",
    "cbssports.com",
)
ROSTER_ALLOWLIST = ("profootballrumors.com", "nfl.com") + OFFICIAL_TEAM_DOMAINS
BREAKING_ALLOWLIST = (
    "espn.com",
    "nfl.com",
    "profootballtalk.nbcsports.com",
    "yahoo.com",
    "cbssports.com",
)

CATEGORY_RULES: dict[str, CategoryRule] = {
    INJURY: CategoryRule(INJURY, INJURY_PATTERN, INJURY_ALLOWLIST),
    ROSTER: CategoryRule(ROSTER, ROSTER_PATTERN, ROSTER_ALLOWLIST),
    BREAKING: CategoryRule(BREAKING, BREAKING_PATTERN, BREAKING_ALLOWLIST),
}

# Evaluation order; breaking is only considered when neither earlier pattern fired.
PRECEDENCE = (INJURY, ROSTER, BREAKING)

MIN_BULLET_WORDS = 4
MIN_BULLET_CHARS = 20


def allowlist_for(category: str) -> tuple[str, ...]:
    return CATEGORY_RULES[category].allowlist
