"""
Citation table and source verification.

Every number shown to a user points at a SourceCitation: a URL plus the
exact text on that page that supports the number. `verify_sources` fetches
each page once and checks that every "..."-separated part of the stored
quote still appears in the page text.
"""
import concurrent.futures
import html
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote as url_quote

import pandas as pd
import requests

from engine.errors import CitationNotFound

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; SourceVerifier/1.0)"
ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"


@dataclass(frozen=True)
class SourceCitation:
    id: str
    name: str
    url: str
    quote: str
    verified_date: Optional[str] = None
    type: str = "webpage"
    derived: bool = False
    derivation: str = ""
    notes: str = ""
    primary_source_id: Optional[str] = None

    @property
    def verified(self):
        return bool(self.verified_date and self.quote)

    @property
    def fragment_url(self):
        return text_fragment_url(self.url, self.quote)


# ------------------------------
# 1. Quote matching
# ------------------------------
def normalize_text(text):
    text = text.lower()
    text = re.sub(r"\s+", " ", text)
    text = re.sub("[‘’]", "'", text)
    text = re.sub("[“”]", '"', text)
    return text.strip()


def quote_parts(quote):
    """Split a quote on "..." omission markers into the parts to look for."""
    return [p.strip() for p in (quote or "").split("...") if p.strip()]


@dataclass(frozen=True)
class QuoteCheck:
    found: bool
    method: str
    parts_total: int = 0
    missing_parts: tuple = ()

    @property
    def parts_found(self):
        return self.parts_total - len(self.missing_parts)


def check_quote(quote, content):
    normalized_content = normalize_text(content)
    parts = quote_parts(quote)
    if not parts:
        return QuoteCheck(found=False, method="empty-quote")

    missing = tuple(p for p in parts if normalize_text(p) not in normalized_content)
    if missing:
        return QuoteCheck(
            found=False, method="missing-parts",
            parts_total=len(parts), missing_parts=missing,
        )
    return QuoteCheck(
        found=True,
        method="all-parts-found" if len(parts) > 1 else "exact",
        parts_total=len(parts),
    )


def check_citation(citation, content):
    """Raise CitationNotFound unless every quote part is on the page."""
    result = check_quote(citation.quote, content)
    if not result.found:
        raise CitationNotFound(citation.id, result.missing_parts, result.parts_total)
    return result


# ------------------------------
# 2. Links
# ------------------------------
def _trim_at_word(text, limit, min_break):
    if len(text) <= limit:
        return text
    last_space = text.rfind(" ", 0, limit + 1)
    return text[:last_space] if last_space > min_break else text[:limit]


def _encode(text):
    # same escaping as encodeURIComponent
    return url_quote(text, safe="-_.!~*'()")


def text_fragment_url(base_url, quote):
    """
    Link that scrolls to and highlights the quote (#:~:text=...).
    Quotes with "..." omissions get one text fragment per part.
    """
    if not quote or not base_url:
        return base_url

    parts = [p for p in re.split(r"\s*\.\.\.\s*", quote) if p.strip()]
    if len(parts) > 1:
        fragments = [
            _encode(_trim_at_word(re.sub(r"\s+", " ", p).strip(), 300, 100))
            for p in parts
        ]
        return base_url + "#:~:text=" + "&text=".join(fragments)

    clean = _trim_at_word(re.sub(r"\s+", " ", quote).strip(), 500, 200)
    return base_url + "#:~:text=" + _encode(clean)


# ------------------------------
# 3. Which numbers need a citation
# ------------------------------
def required_source_ids(profiles):
    ids = set()
    for profile in profiles.values():
        rates = [profile.base_rate.a_to_b, profile.base_rate.b_to_a]
        barrier = profile.barrier_effectiveness
        rates += [barrier.a_to_b, barrier.b_to_a, barrier.scalar]
        ids.update(r.source_id for r in rates if r is not None and r.source_id)
        ids.update(i.source_id for i in profile.interventions if i.source_id)
    return ids


def missing_sources(profiles, citations):
    return sorted(required_source_ids(profiles) - set(citations))


# ------------------------------
# 4. Fetch & verify
# ------------------------------
def strip_html(markup):
    text = re.sub(r"<script[^>]*>[\s\S]*?</script>", "", markup, flags=re.I)
    text = re.sub(r"<style[^>]*>[\s\S]*?</style>", "", text, flags=re.I)
    text = re.sub(r"<[^>]+>", " ", text)
    return html.unescape(text)


def fetch_page_text(url, timeout=15.0, user_agent=DEFAULT_USER_AGENT):
    """
    Fetch a page (following redirects) and return its visible text.
    Anything but HTTP 200 raises requests.HTTPError.
    """
    r = requests.get(
        url,
        headers={"User-Agent": user_agent, "Accept": ACCEPT_HEADER},
        timeout=timeout,
        allow_redirects=True,
    )
    if r.status_code != 200:
        raise requests.HTTPError(f"HTTP {r.status_code}", response=r)
    return strip_html(r.text)


@dataclass(frozen=True)
class VerificationOutcome:
    source_id: str
    name: str
    status: str
    detail: str = ""
    missing_parts: tuple = ()


@dataclass
class VerificationReport:
    passed: List[VerificationOutcome] = field(default_factory=list)
    failed: List[VerificationOutcome] = field(default_factory=list)
    skipped: List[VerificationOutcome] = field(default_factory=list)
    errors: List[VerificationOutcome] = field(default_factory=list)

    @property
    def ok(self):
        return not self.failed and not self.errors

    def to_frame(self):
        rows = self.passed + self.failed + self.skipped + self.errors
        return pd.DataFrame(
            {
                "Source": [o.source_id for o in rows],
                "Status": [o.status for o in rows],
                "Detail": [o.detail for o in rows],
            }
        )


def verify_sources(citations, max_workers=4, fetch=None):
    """
    Verify every citation against its live page.

    Each distinct URL is fetched once, at most `max_workers` at a time.
    A failed fetch or a missing quote is recorded for that source only.
    """
    fetch = fetch or fetch_page_text
    report = VerificationReport()

    to_check = []
    for c in citations.values():
        if c.type == "pdf":
            report.skipped.append(VerificationOutcome(c.id, c.name, "skipped", "PDF format"))
        elif not quote_parts(c.quote):
            report.skipped.append(VerificationOutcome(c.id, c.name, "skipped", "no quote stored"))
        else:
            to_check.append(c)

    urls = list(dict.fromkeys(c.url for c in to_check))
    logger.info("Verifying %d sources across %d pages", len(to_check), len(urls))

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        pages = {url: executor.submit(fetch, url) for url in urls}

        for c in to_check:
            try:
                result = check_citation(c, pages[c.url].result())
            except CitationNotFound as e:
                logger.warning("Quote not found for %s (%s)", c.id, c.url)
                report.failed.append(
                    VerificationOutcome(c.id, c.name, "failed", str(e), tuple(e.missing_parts))
                )
            except requests.RequestException as e:
                logger.warning("Could not fetch %s: %s", c.url, e)
                report.errors.append(VerificationOutcome(c.id, c.name, "error", str(e)))
            else:
                detail = result.method
                if result.parts_total > 1:
                    detail += f", {result.parts_total} parts verified"
                report.passed.append(VerificationOutcome(c.id, c.name, "passed", detail))

    return report
