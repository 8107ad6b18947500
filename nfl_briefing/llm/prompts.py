"""Prompt templates for the enhancement collaborator."""

from __future__ import annotations

from ..types import Excerpt


SYSTEM_PROMPT = (
    "You write terse NFL personnel-status bullets. Use ONLY the provided excerpts; "
    "never add facts, numbers or names that are not in them. Each bullet is one fact, "
    "at most 280 characters, formatted as '<Player or TEAM> — <status/action> (<SOURCE>)' "
    "where SOURCE is the excerpt's source label. Skip anything speculative, opinion "
    "or game recap. If nothing qualifies, return an empty list."
)

CATEGORY_FOCUS = {
    "injury": "injury designations, practice participation, IR moves and expected return timelines",
    "roster": "signings, releases, waivers, trades, claims, practice-squad moves and contract extensions",
    "breaking": "official announcements, suspensions, hirings, firings and other major news not covered by injuries or roster moves",
}


def summarize_prompt(
    category: str,
    excerpts: list[Excerpt],
    date_iso: str,
    other_context: list[str] | None = None,
) -> str:
    focus = CATEGORY_FOCUS.get(category, category)
    blocks = []
    for idx, excerpt in enumerate(excerpts, start=1):
        blocks.append(f"[{idx}] SOURCE: {excerpt.source}\nTITLE: {excerpt.title}\nTEXT: {excerpt.text}")
    context = ""
    if other_context:
        listed = "\n".join(f"- {bullet}" for bullet in other_context)
        context = f"\nAlready reported elsewhere (do not repeat these facts):\n{listed}\n"
    return (
        f"Date: {date_iso}\n"
        f"Category: {category} ({focus})\n"
        "Return strict JSON: {\"bullets\": [\"...\"]} with at most 5 bullets.\n"
        f"{context}\n"
        "Excerpts:\n" + "\n\n".join(blocks)
    )


def semantic_dedupe_prompt(bullets: list[str]) -> str:
    listed = "\n".join(f"{idx}. {bullet}" for idx, bullet in enumerate(bullets, start=1))
    return (
        "These bullets may describe the same fact in different words, sometimes from "
        "different sources. Merge bullets that state the same fact into one, keeping the "
        "most specific wording and one of the original source labels in parentheses. "
        "Keep distinct facts separate and preserve the original order otherwise. "
        "Do not invent content.\n"
        "Return strict JSON: {\"bullets\": [\"...\"]}.\n"
        f"Bullets:\n{listed}"
    )
