"""URL canonicalization and source naming helpers."""

from __future__ import annotations

from typing import Iterable
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse


DEFAULT_STRIP_QUERY_PARAMS = {
    # tracking
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "utm_id",
    "utm_name",
    # misc common trackers
    "gclid",
    "fbclid",
    "mc_cid",
    "mc_eid",
    "ref",
    "ref_src",
    "ref_url",
    "source",
    "s",
    "cmpid",
    "ex_cid",
    "xid",
    "partner",
    "ocid",
    "soc_src",
    "soc_trk",
    "ftag",
}

# Ordered: more specific domains first.
SOURCE_SHORT_NAMES = [
    ("profootballtalk.nbcsports.com", "PFT"),
    ("profootballrumors.com", "PFR"),
    ("espn.com", "ESPN"),
    ("nfl.com", "NFL.com"),
    ("yahoo.com", "Yahoo"),
    ("cbssports.com", "CBS"),
    ("nbcsports.com", "NBC"),
    ("bleacherreport.com", "B/R"),
    ("si.com", "SI"),
]


def canonicalize_url(url: str, *, strip_params: Iterable[str] | None = None) -> str:
    """Canonicalize a URL for dedup.

    - Lowercase scheme + hostname
    - Remove fragments and trailing slashes
    - Strip tracking query parameters (any utm_* included)
    - Sort remaining query params
    """
    if not url:
        return ""
    strip = set(strip_params) if strip_params is not None else set(DEFAULT_STRIP_QUERY_PARAMS)
    p = urlparse(url.strip())
    scheme = (p.scheme or "https").lower()
    netloc = (p.netloc or "").lower()
    path = p.path or "/"
    if len(path) > 1:
        path = path.rstrip("/")

    kept = []
    for k, v in parse_qsl(p.query, keep_blank_values=True):
        key = k.lower()
        if key in strip or key.startswith("utm_"):
            continue
        kept.append((k, v))
    kept.sort(key=lambda kv: (kv[0].lower(), kv[1]))
    query = urlencode(kept, doseq=True)

    return urlunparse((scheme, netloc, path, "", query, ""))


def source_domain(url: str) -> str:
    """Return the lowercased host without port or leading "www."."""
    host = (urlparse(url.strip()).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def domain_matches(domain: str, allowed: Iterable[str]) -> bool:
    """True when domain equals, or is a subdomain of, an allowed domain."""
    domain = domain.lower()
    for candidate in allowed:
        candidate = candidate.lower()
        if domain == candidate or domain.endswith("." + candidate):
            return True
    return False


def short_source_name(url: str) -> str:
    """Short citation label for a URL, e.g. "ESPN" or "PFT"."""
    domain = source_domain(url)
    for suffix, label in SOURCE_SHORT_NAMES:
        if domain_matches(domain, [suffix]):
            return label
    if not domain:
        return "Unknown"
    parts = domain.split(".")
    label = parts[-2] if len(parts) >= 2 else parts[0]
    return label.upper()
