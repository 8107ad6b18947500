"""
Structured injury-table adapter.

Parses the league-wide injury page (one table per team) into rows of
player, team, status, note and "updated" date, filters them by lookback
and a hard staleness ceiling, and pre-formats one injury bullet per row.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import re
from urllib.parse import urlencode, urljoin

from bs4 import BeautifulSoup, Tag

from ..dates import format_short_date, looks_like_date, parse_updated, split_date_prefix, within_window
from ..errors import ParseError
from ..logging_utils import log_event
from ..rules import INJURY
from ..teams import find_team, team_abbr
from ..types import NormalizedArticle
from ..urls import canonicalize_url, short_source_name, source_domain
from .base import SourceAdapter


logger = logging.getLogger(__name__)

NEW_MARKER = "🆕 "

_ABBR_RE = re.compile(r"^[A-Z]{2,4}$")
_TITLE_CLASS_RE = re.compile(r"Table__Title|injuries__teamName")


@dataclass
class InjuryRow:
    player: str
    team: str | None
    status: str
    note: str = ""
    updated: str | None = None
    player_url: str | None = None


def parse_injury_table(html: str, base_url: str = "") -> list[InjuryRow]:
    """Parse every injury table on the page.

    Raises:
        ParseError: when the page holds no table at all. Individual rows
            that cannot be read are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    tables = soup.find_all("table")
    if not tables:
        raise ParseError("no injury tables found")

    rows: list[InjuryRow] = []
    for table in tables:
        table_team = _table_team(table)
        columns = _header_columns(table)
        body_rows = table.select("tbody tr") or [tr for tr in table.find_all("tr") if tr.find("td")]
        for tr in body_rows:
            cells = tr.find_all("td")
            if not cells:
                continue
            try:
                if columns:
                    row = _row_from_header(cells, columns, table_team, base_url)
                else:
                    row = _row_from_position(cells, table_team, base_url)
            except (IndexError, AttributeError, ValueError) as exc:
                log_event(logger, "Injury row skipped", level=logging.DEBUG, event="table_row_error", error=str(exc))
                continue
            if row is not None:
                rows.append(row)
    return rows


def format_injury_bullet(
    row: InjuryRow,
    updated: datetime,
    now: datetime,
    source: str = "ESPN",
    new_marker_hours: int = 6,
) -> str:
    """Render ``Name (TEAM) — Status (note) · Updated Mon D (SOURCE)``."""
    note = row.note.strip().rstrip(".")
    note_part = f" ({note})" if note else ""
    marker = NEW_MARKER if now - updated <= timedelta(hours=new_marker_hours) else ""
    return (
        f"{marker}{row.player} ({row.team}) — {row.status}{note_part}"
        f" · Updated {format_short_date(updated)} ({source})"
    )


class InjuryTableAdapter(SourceAdapter):
    source_id = "injury_table"
    stage = "table"

    async def fetch_recent(self, lookback_hours: float, now: datetime | None = None) -> list[NormalizedArticle]:
        now = now or self.now()
        url = self.cfg.sources.injury_table_url
        result = await self.fetcher.fetch(url, timeout=self.cfg.fetch.primary_timeout_seconds)
        if not result.ok:
            log_event(
                logger,
                "Injury table unavailable",
                level=logging.WARNING,
                event="table_fetch_failed",
                url=url,
                error=result.error,
            )
            return []
        try:
            rows = parse_injury_table(result.text or "", base_url=url)
        except ParseError as exc:
            log_event(logger, "Injury table parse failed", level=logging.WARNING, event="parse_error", url=url, error=str(exc))
            return []

        agg = self.cfg.aggregation
        dated: list[tuple[datetime, InjuryRow]] = []
        for row in rows:
            if not row.team:
                continue
            updated = parse_updated(row.updated, now)
            if updated is None:
                continue
            if not within_window(updated, now, lookback_hours, agg.staleness_days, day_granularity=True):
                continue
            dated.append((updated, row))

        dated.sort(key=lambda pair: (pair[0], pair[1].player), reverse=True)
        articles: list[NormalizedArticle] = []
        seen: set[tuple[str, str]] = set()
        source = short_source_name(url)
        for updated, row in dated:
            key = (row.player.lower(), row.team or "")
            if key in seen:
                continue
            seen.add(key)
            articles.append(
                NormalizedArticle(
                    url=_row_url(url, row),
                    source=source,
                    domain=source_domain(url),
                    title=f"{row.player} ({row.team}) {row.status}",
                    text=f"{row.player} {row.status}. {row.note}".strip(),
                    published=updated,
                    stage=self.stage,
                    player=row.player,
                    team=row.team,
                    bullet=format_injury_bullet(row, updated, now, source, agg.new_marker_hours),
                    category_hint=INJURY,
                )
            )

        log_event(
            logger,
            "Injury table parsed",
            event="table_parsed",
            rows=len(rows),
            kept=len(articles),
            lookback_hours=lookback_hours,
        )
        return articles


def _row_url(table_url: str, row: InjuryRow) -> str:
    if row.player_url:
        return canonicalize_url(row.player_url)
    query = urlencode({"player": row.player.lower().replace(" ", "-"), "team": row.team or ""})
    return canonicalize_url(f"{table_url}?{query}")


def _table_team(table: Tag) -> str | None:
    caption = table.find("caption")
    if caption:
        team = find_team(caption.get_text(" ", strip=True))
        if team:
            return team
    title = table.find_previous(class_=_TITLE_CLASS_RE)
    if title:
        return find_team(title.get_text(" ", strip=True))
    return None


def _header_columns(table: Tag) -> dict[str, int]:
    headers = table.select("thead th") or table.select("tr th")
    columns: dict[str, int] = {}
    for idx, th in enumerate(headers):
        label = th.get_text(" ", strip=True).lower()
        if label in {"name", "player"}:
            columns["player"] = idx
        elif label in {"team", "tm"}:
            columns["team"] = idx
        elif label == "status":
            columns["status"] = idx
        elif label in {"comment", "comments", "note", "notes", "injury", "details"}:
            columns["note"] = idx
        elif label in {"date", "updated", "last updated", "update"}:
            columns["updated"] = idx
    return columns if "player" in columns and "status" in columns else {}


def _row_from_header(
    cells: list[Tag],
    columns: dict[str, int],
    table_team: str | None,
    base_url: str,
) -> InjuryRow | None:
    player, player_url = _player_cell(cells[columns["player"]], base_url)
    if not player:
        return None
    team = table_team
    if "team" in columns and columns["team"] < len(cells):
        team_cell = cells[columns["team"]]
        team = _team_cell(team_cell) or find_team(team_cell.get_text(" ", strip=True)) or team
    status = _normalize_case(_cell_text(cells, columns["status"]))
    raw_note = _cell_text(cells, columns.get("note"))
    updated = _cell_text(cells, columns.get("updated")) or None
    prefix, note = split_date_prefix(raw_note)
    if updated is None:
        updated = prefix
    return InjuryRow(player=player, team=team, status=status, note=note, updated=updated, player_url=player_url)


def _row_from_position(cells: list[Tag], table_team: str | None, base_url: str) -> InjuryRow | None:
    player, player_url = _player_cell(cells[0], base_url)
    if not player:
        return None
    team = _team_cell(cells[0]) or (_team_cell(cells[1]) if len(cells) > 1 else None) or table_team
    status = _normalize_case(_cell_text(cells, 2))
    note = _cell_text(cells, 3)
    if looks_like_date(note):
        note = ""
    updated = None
    for cell in reversed(cells):
        text = cell.get_text(" ", strip=True)
        if looks_like_date(text):
            updated = text
            break
    prefix, note = split_date_prefix(note)
    if updated is None:
        updated = prefix
    return InjuryRow(player=player, team=team, status=status, note=note, updated=updated, player_url=player_url)


def _player_cell(cell: Tag, base_url: str) -> tuple[str | None, str | None]:
    link = cell.find("a")
    text = (link.get_text(" ", strip=True) if link else cell.get_text(" ", strip=True)).strip()
    if not text:
        return None, None
    href = link.get("href") if link else None
    url = urljoin(base_url, href) if href else None
    return _normalize_case(text), url


def _team_cell(cell: Tag) -> str | None:
    img = cell.find("img")
    if img and img.get("alt"):
        team = team_abbr(img["alt"]) or find_team(img["alt"])
        if team:
            return team
    text = cell.get_text(" ", strip=True)
    if _ABBR_RE.match(text):
        return team_abbr(text)
    return None


def _cell_text(cells: list[Tag], idx: int | None) -> str:
    if idx is None or idx >= len(cells):
        return ""
    return " ".join(cells[idx].get_text(" ", strip=True).split())


def _normalize_case(value: str) -> str:
    if value.isupper() or value.islower():
        return value.title()
    return value
