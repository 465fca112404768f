import threading
from urllib.parse import unquote

import pytest
import requests

from engine.errors import CitationNotFound
from engine.profiles import DirectionalRate, InfectionProfile, RateValue
from engine.sources import (
    SourceCitation,
    check_citation,
    check_quote,
    fetch_page_text,
    missing_sources,
    normalize_text,
    required_source_ids,
    text_fragment_url,
    verify_sources,
)


def _citation(id, url="https://example.org/page", quote="Risk is 8 per 10,000", type="webpage"):
    return SourceCitation(id=id, name=id, url=url, quote=quote, verified_date="2025-01-14", type=type)


def test_normalize_text() -> None:
    assert normalize_text("  The  Risk\n\tIS ‘low’ “ok” ") == "the risk is 'low' \"ok\""


def test_quote_parts_must_all_be_present() -> None:
    page = "<p>Risk per 10,000 exposures. Receptive vaginal: 8</p>"
    result = check_quote("Risk per 10,000 ... Receptive   vaginal", page)
    assert result.found
    assert result.method == "all-parts-found"
    assert result.parts_total == 2

    result = check_quote("Risk per 10,000 ... insertive anal", page)
    assert not result.found
    assert result.missing_parts == ("insertive anal",)
    assert result.parts_found == 1


def test_empty_quote_is_not_found() -> None:
    assert check_quote("  ...  ", "anything").method == "empty-quote"


def test_check_citation_raises() -> None:
    with pytest.raises(CitationNotFound) as exc:
        check_citation(_citation("a", quote="missing words"), "some page")
    assert exc.value.missing_parts == ["missing words"]


def test_text_fragment_url_single_quote() -> None:
    url = text_fragment_url("https://example.org", "8 in 10,000 exposures")
    assert url == "https://example.org#:~:text=8%20in%2010%2C000%20exposures"
    assert text_fragment_url("https://example.org", "") == "https://example.org"


def test_text_fragment_url_multiple_parts() -> None:
    url = text_fragment_url("https://example.org", "first part ... second (part)")
    assert url == "https://example.org#:~:text=first%20part&text=second%20(part)"


def test_text_fragment_url_trims_long_quotes_at_a_word() -> None:
    quote = " ".join(["word"] * 200)
    url = text_fragment_url("https://x.org", quote)
    fragment = url.split("#:~:text=")[1]
    decoded = unquote(fragment)
    assert len(decoded) <= 500
    assert decoded.endswith("word")


def test_required_and_missing_sources(hiv_profile, citations) -> None:
    ids = required_source_ids({"hiv": hiv_profile})
    assert ids == {"hiv_rates", "hiv_condom", "prep_src", "uu_src", "cab_src"}
    del citations["uu_src"]
    assert missing_sources({"hiv": hiv_profile}, citations) == ["uu_src"]


def test_required_sources_skip_blank_ids() -> None:
    profile = InfectionProfile(
        id="x", display_name="X", verified=True, rate_unit="per_act",
        base_rate=DirectionalRate(a_to_b=RateValue(0.1)),
    )
    assert required_source_ids({"x": profile}) == set()


def test_verify_fetches_each_url_once() -> None:
    calls = []
    lock = threading.Lock()

    def fetch(url):
        with lock:
            calls.append(url)
        if url.endswith("down"):
            raise requests.ConnectionError("connection refused")
        return "Risk is 8 per 10,000 exposures"

    citations = {
        "a": _citation("a"),
        "b": _citation("b", quote="8 per 10,000 ... exposures"),
        "c": _citation("c", quote="not on the page"),
        "d": _citation("d", url="https://example.org/down"),
        "e": _citation("e", type="pdf"),
        "f": _citation("f", quote=""),
    }
    report = verify_sources(citations, max_workers=2, fetch=fetch)

    assert sorted(calls) == ["https://example.org/down", "https://example.org/page"]
    assert [o.source_id for o in report.passed] == ["a", "b"]
    assert [o.source_id for o in report.failed] == ["c"]
    assert report.failed[0].missing_parts == ("not on the page",)
    assert [o.source_id for o in report.errors] == ["d"]
    assert [o.source_id for o in report.skipped] == ["e", "f"]
    assert not report.ok
    assert len(report.to_frame()) == 6


class _FakeResponse:
    def __init__(self, status_code, text):
        self.status_code = status_code
        self.text = text


def test_fetch_page_text_strips_markup(monkeypatch) -> None:
    seen = {}

    def fake_get(url, headers=None, timeout=None, allow_redirects=None):
        seen.update(url=url, headers=headers, timeout=timeout)
        return _FakeResponse(
            200,
            "<html><script>var x = 1;</script><style>p{}</style>"
            "<p>8 in 10,000&nbsp;exposures &amp; more</p></html>",
        )

    monkeypatch.setattr("engine.sources.requests.get", fake_get)
    text = fetch_page_text("https://example.org", timeout=3, user_agent="test-agent")
    assert "var x" not in text
    assert normalize_text(text) == "8 in 10,000 exposures & more"
    assert seen["headers"]["User-Agent"] == "test-agent"
    assert seen["timeout"] == 3


def test_fetch_page_text_rejects_non_200(monkeypatch) -> None:
    monkeypatch.setattr(
        "engine.sources.requests.get",
        lambda *a, **k: _FakeResponse(404, "not found"),
    )
    with pytest.raises(requests.HTTPError, match="HTTP 404"):
        fetch_page_text("https://example.org/missing")
