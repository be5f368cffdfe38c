import requests

from conftest import FakeHttp, FakeResponse
from rolescout.config import Settings
from rolescout.core.fetcher import (
    ASHBY_BOARD_URL,
    EnrichmentFetcher,
    classify_content,
    is_dead_reason,
    match_posting_url,
)

LEVER_URL = "https://jobs.lever.co/acme/0a1b2c3d-1111-2222-3333-444455556666"
ASHBY_URL = "https://jobs.ashbyhq.com/acme/5d1f"

POSTING_HTML = (
    "<html><body><h1>Senior Manager, BizOps</h1><p>Location: Austin, TX</p>"
    f"<p>{'We are building things. ' * 60}</p>"
    "<p>Hybrid schedule.</p><div>Similar jobs</div><p>Another role</p></body></html>"
)


def test_classify_content_order() -> None:
    assert classify_content(404, "", "lever", 800) == "HTTP_404"
    assert classify_content(200, "Sorry, this page was not found", "lever", 800) == "LEVER_404_PAGE"
    assert classify_content(200, "Sorry, this page was not found", "other", 800) == "PAGE_404_PAGE"
    assert classify_content(200, "short", "other", 800) == "TEXT_TOO_SHORT"
    assert classify_content(200, "Jobs at DemoCorp " + "x" * 900, "lever", 800) == "DEMO_BOARD"
    assert classify_content(200, "x" * 900, "greenhouse", 800) == ""


def test_dead_reasons() -> None:
    assert is_dead_reason("HTTP_404")
    assert is_dead_reason("HTTP_410")
    assert is_dead_reason("ASHBY_404_PAGE")
    assert not is_dead_reason("HTTP_500")
    assert not is_dead_reason("")


def test_match_posting_url() -> None:
    assert match_posting_url(ASHBY_URL, f"{ASHBY_URL}/")
    assert match_posting_url("https://jobs.ashbyhq.com/acme/role/5d1f", ASHBY_URL)
    assert not match_posting_url(ASHBY_URL, "https://jobs.ashbyhq.com/other/zzz")
    assert not match_posting_url(ASHBY_URL, "https://jobs.ashbyhq.com")
    assert not match_posting_url(ASHBY_URL, "")


def test_fetch_html_extracts_text_and_hints(settings: Settings) -> None:
    http = FakeHttp({LEVER_URL: FakeResponse(200, text=POSTING_HTML)})

    outcome = EnrichmentFetcher(settings, http=http).fetch(LEVER_URL, "lever")

    assert outcome.ok
    assert outcome.http_status == "200"
    assert outcome.text.startswith("Senior Manager, BizOps\nLocation: Austin, TX")
    assert "Similar jobs" not in outcome.text
    assert outcome.location_raw == "Austin, TX"
    assert outcome.work_mode_hint == "hybrid"
    assert "Mozilla" in http.calls[0]["headers"]["User-Agent"]


def test_fetch_reports_http_failures(settings: Settings) -> None:
    http = FakeHttp({LEVER_URL: FakeResponse(404, text="<h1>Gone</h1>")})

    outcome = EnrichmentFetcher(settings, http=http).fetch(LEVER_URL)

    assert not outcome.ok
    assert outcome.http_status == "404"
    assert outcome.failure_reason == "HTTP_404"
    assert outcome.text == ""


def test_fetch_exception_becomes_err(settings: Settings) -> None:
    http = FakeHttp({LEVER_URL: requests.ConnectionError("boom")})

    outcome = EnrichmentFetcher(settings, http=http).fetch(LEVER_URL, "lever")

    assert outcome.http_status == "ERR"
    assert outcome.failure_reason == "EXCEPTION"


def test_ashby_posting_api_is_used_when_it_has_the_description(settings: Settings) -> None:
    http = FakeHttp(
        {
            ASHBY_BOARD_URL.format(board="acme"): FakeResponse(
                200,
                payload={
                    "jobs": [
                        {
                            "jobUrl": ASHBY_URL,
                            "descriptionPlain": "Own BizOps planning. " * 10,
                            "location": "Remote - US",
                            "workplaceType": "Remote",
                            "isRemote": True,
                        }
                    ]
                },
            )
        }
    )

    outcome = EnrichmentFetcher(settings, http=http).fetch(ASHBY_URL, "ashby")

    assert outcome.ok
    assert outcome.text.startswith("Own BizOps planning.")
    assert outcome.location_raw == "Remote - US"
    assert outcome.work_mode_hint == "Remote"
    assert len(http.calls) == 1


def test_ashby_miss_falls_back_to_page_fetch(settings: Settings) -> None:
    http = FakeHttp(
        {
            ASHBY_BOARD_URL.format(board="acme"): FakeResponse(200, payload={"jobs": []}),
            ASHBY_URL: FakeResponse(200, text="<p>Too short</p>"),
        }
    )

    outcome = EnrichmentFetcher(settings, http=http).fetch(ASHBY_URL, "ashby")

    assert outcome.failure_reason == "TEXT_TOO_SHORT"
    assert outcome.http_status == "200"
    assert [call["url"] for call in http.calls] == [ASHBY_BOARD_URL.format(board="acme"), ASHBY_URL]


def test_unexpected_ashby_payload_falls_back_to_page_fetch(settings: Settings) -> None:
    http = FakeHttp(
        {
            ASHBY_BOARD_URL.format(board="acme"): FakeResponse(200, payload=["unexpected"]),
            ASHBY_URL: FakeResponse(200, text=POSTING_HTML),
        }
    )

    outcome = EnrichmentFetcher(settings, http=http).fetch(ASHBY_URL, "ashby")

    assert outcome.ok
    assert outcome.failure_reason != "EXCEPTION"
    assert "We are building things." in outcome.text
    assert [call["url"] for call in http.calls] == [ASHBY_BOARD_URL.format(board="acme"), ASHBY_URL]
