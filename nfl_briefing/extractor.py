"""
HTML to cleaned article text.

Extraction tries trafilatura, then readability, then plain BeautifulSoup
text, and the result is scrubbed of bylines and site boilerplate so the
classifier sees only article prose.
"""

from __future__ import annotations

import re
from typing import Callable

from bs4 import BeautifulSoup
import trafilatura
from readability import Document


BYLINE_PATTERNS = [
    re.compile(r"^\s*By\s+[A-Z][\w.'-]+(?:\s+[A-Z][\w.'-]+){0,3}(?:\s*[|,]\s*[\w .@]{0,40})?\s*$", re.MULTILINE),
    re.compile(r"^\s*[A-Z][\w.'-]+(?:\s+[A-Z][\w.'-]+){0,3}\s*\|\s*(?:ESPN|NFL\.com|Yahoo Sports|CBS Sports)\b.*$", re.MULTILINE),
    re.compile(r"^\s*(?:Published|Updated|Last updated)\s*:?.*\d{4}.*$", re.MULTILINE | re.IGNORECASE),
]

BOILERPLATE_PATTERNS = [
    re.compile(r"Sign up for .{0,80}?newsletter[^.]*\.?", re.IGNORECASE),
    re.compile(r"Subscribe to [^.]*\.?", re.IGNORECASE),
    re.compile(r"Read more:[^\n]*", re.IGNORECASE),
    re.compile(r"Follow [^.\n]{0,60} on (?:Twitter|X|Instagram|Facebook)[^.\n]*\.?", re.IGNORECASE),
    re.compile(r"\bAdvertisement\b", re.IGNORECASE),
    re.compile(r"Loading\.\.\.", re.IGNORECASE),
    re.compile(r"Click here to [^.]*\.?", re.IGNORECASE),
    re.compile(r"Share this article[^\n]*", re.IGNORECASE),
]

_ABBREVIATIONS = ["Jr.", "Sr.", "Dr.", "Mr.", "Mrs.", "Ms.", "U.S.", "N.F.L.", "ESPN.com", "NFL.com", "St."]
_SENTENCE_SPLIT_RE = re.compile(r"(?:(?<=[.!?])|(?<=[.!?][\"')]))\s+(?=[\"'(]?[A-Z])")
_PLACEHOLDER = "\u2063"


def extract_text(html: str, primary: str, fallback: list[str]) -> str | None:
    order = [primary] + [name for name in fallback if name != primary]
    for method in order:
        extractor = _get_extractor(method)
        if not extractor:
            continue
        text = extractor(html)
        if text:
            return text.strip()
    return None


def extract_article(html: str, primary: str = "trafilatura", fallback: list[str] | None = None) -> str:
    """Extract and clean article prose; returns "" when nothing readable remains."""
    text = extract_text(html, primary, fallback if fallback is not None else ["readability", "bs4"])
    if not text:
        return ""
    return clean_text(text)


def find_canonical_url(html: str) -> str | None:
    """Return ``link[rel=canonical]`` or ``og:url`` when present."""
    soup = BeautifulSoup(html, "html.parser")
    link = soup.find("link", rel=lambda value: value and "canonical" in value)
    if link and link.get("href"):
        return link["href"].strip()
    meta = soup.find("meta", property="og:url")
    if meta and meta.get("content"):
        return meta["content"].strip()
    return None


def clean_text(text: str) -> str:
    """Strip bylines and boilerplate, then collapse whitespace."""
    for pattern in BYLINE_PATTERNS:
        text = pattern.sub("", text)
    for pattern in BOILERPLATE_PATTERNS:
        text = pattern.sub("", text)
    lines = [" ".join(line.split()) for line in text.splitlines()]
    return "\n".join(line for line in lines if line).strip()


def split_sentences(text: str, min_chars: int = 15) -> list[str]:
    """Split prose into sentences, keeping common abbreviations intact."""
    protected = " ".join(text.split())
    for abbr in _ABBREVIATIONS:
        protected = protected.replace(abbr, abbr.replace(".", _PLACEHOLDER))
    sentences = []
    for part in _SENTENCE_SPLIT_RE.split(protected):
        sentence = part.replace(_PLACEHOLDER, ".").strip()
        if len(sentence) > min_chars:
            sentences.append(sentence)
    return sentences


def _get_extractor(name: str) -> Callable[[str], str | None] | None:
    if name == "trafilatura":
        return _extract_trafilatura
    if name == "readability":
        return _extract_readability
    if name == "bs4":
        return _extract_bs4
    return None


def _extract_trafilatura(html: str) -> str | None:
    return trafilatura.extract(html)


def _extract_readability(html: str) -> str | None:
    doc = Document(html)
    content_html = doc.summary()
    return _extract_bs4(content_html)


def _extract_bs4(html: str) -> str | None:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer", "aside"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    cleaned = "\n".join([line.strip() for line in text.splitlines() if line.strip()])
    return cleaned if cleaned else None
