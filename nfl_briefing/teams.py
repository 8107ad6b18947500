"""Team dictionary: abbreviations, names, aliases and official domains."""

from __future__ import annotations

from dataclasses import dataclass
import re


@dataclass(frozen=True)
class Team:
    abbr: str
    name: str
    nickname: str
    domain: str
    aliases: tuple[str, ...] = ()


TEAMS: tuple[Team, ...] = (
    Team("BUF", "Buffalo Bills", "Bills", "buffalobills.com"),
    Team("MIA", "Miami Dolphins", "Dolphins", "miamidolphins.com", ("Fins",)),
    Team("NE", "New England Patriots", "Patriots", "patriots.com", ("Pats",)),
    Team("NYJ", "New York Jets", "Jets", "newyorkjets.com"),
    Team("BAL", "Baltimore Ravens", "Ravens", "baltimoreravens.com"),
    Team("CIN", "Cincinnati Bengals", "Bengals", "bengals.com"),
    Team("CLE", "Cleveland Browns", "Browns", "clevelandbrowns.com"),
    Team("PIT", "Pittsburgh Steelers", "Steelers", "steelers.com"),
    Team("HOU", "Houston Texans", "Texans", "houstontexans.com"),
    Team("IND", "Indianapolis Colts", "Colts", "colts.com"),
    Team("JAX", "Jacksonville Jaguars", "Jaguars", "jaguars.com", ("Jags", "JAC")),
    Team("TEN", "Tennessee Titans", "Titans", "tennesseetitans.com"),
    Team("DEN", "Denver Broncos", "Broncos", "denverbroncos.com"),
    Team("KC", "Kansas City Chiefs", "Chiefs", "chiefs.com"),
    Team("LV", "Las Vegas Raiders", "Raiders", "raiders.com", ("LVR",)),
    Team("LAC", "Los Angeles Chargers", "Chargers", "chargers.com", ("Bolts",)),
    Team("DAL", "Dallas Cowboys", "Cowboys", "dallascowboys.com"),
    Team("NYG", "New York Giants", "Giants", "giants.com"),
    Team("PHI", "Philadelphia Eagles", "Eagles", "philadelphiaeagles.com"),
    Team("WAS", "Washington Commanders", "Commanders", "commanders.com", ("WSH",)),
    Team("CHI", "Chicago Bears", "Bears", "chicagobears.com"),
    Team("DET", "Detroit Lions", "Lions", "detroitlions.com"),
    Team("GB", "Green Bay Packers", "Packers", "packers.com", ("GNB",)),
    Team("MIN", "Minnesota Vikings", "Vikings", "vikings.com", ("Vikes",)),
    Team("ATL", "Atlanta Falcons", "Falcons", "atlantafalcons.com"),
    Team("CAR", "Carolina Panthers", "Panthers", "panthers.com"),
    Team("NO", "New Orleans Saints", "Saints", "neworleanssaints.com", ("NOR",)),
    Team("TB", "Tampa Bay Buccaneers", "Buccaneers", "buccaneers.com", ("Bucs", "TAM")),
    Team("ARI", "Arizona Cardinals", "Cardinals", "azcardinals.com", ("AZ", "Cards")),
    Team("LAR", "Los Angeles Rams", "Rams", "therams.com", ("LA",)),
    Team("SF", "San Francisco 49ers", "49ers", "49ers.com", ("Niners", "SFO")),
    Team("SEA", "Seattle Seahawks", "Seahawks", "seahawks.com"),
)

TEAM_ABBRS = frozenset(team.abbr for team in TEAMS)
OFFICIAL_TEAM_DOMAINS = tuple(team.domain for team in TEAMS)

# City names that look like a "First Last" person name to the name heuristic.
CITY_NAMES = frozenset(
    {
        "New York",
        "New England",
        "New Orleans",
        "Las Vegas",
        "Los Angeles",
        "San Francisco",
        "Green Bay",
        "Kansas City",
        "Tampa Bay",
    }
)


def _build_lookup() -> dict[str, str]:
    lookup: dict[str, str] = {}
    for team in TEAMS:
        lookup[team.abbr.lower()] = team.abbr
        lookup[team.name.lower()] = team.abbr
        lookup[team.nickname.lower()] = team.abbr
        for alias in team.aliases:
            lookup[alias.lower()] = team.abbr
    return lookup


_LOOKUP = _build_lookup()

# Full names first so "Los Angeles Rams" wins over a bare nickname.
_NAME_RE = re.compile(
    r"\b("
    + "|".join(
        re.escape(name)
        for name in sorted(
            [team.name for team in TEAMS]
            + [team.nickname for team in TEAMS]
            + [alias for team in TEAMS for alias in team.aliases if len(alias) > 3],
            key=len,
            reverse=True,
        )
    )
    + r")\b"
)


def team_abbr(value: str | None) -> str | None:
    """Resolve a full name, nickname, alias or abbreviation to the canonical abbreviation."""
    if not value:
        return None
    return _LOOKUP.get(value.strip().lower())


def find_team(text: str | None) -> str | None:
    """Return the abbreviation of the first team named in free text."""
    if not text:
        return None
    match = _NAME_RE.search(text)
    if match:
        return _LOOKUP[match.group(1).lower()]
    return None


def team_for_domain(domain: str) -> str | None:
    for team in TEAMS:
        if domain == team.domain or domain.endswith("." + team.domain):
            return team.abbr
    return None
