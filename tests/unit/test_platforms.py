import pytest

from rolescout.sources.platforms import ASHBY, GREENHOUSE, LEVER, get_platform, is_banned

LEVER_ID = "0a1b2c3d-1111-2222-3333-444455556666"


def test_lever_accepts_only_slug_and_posting_id() -> None:
    matched = LEVER.match(f"https://jobs.lever.co/acme/{LEVER_ID}/?utm_source=brave")
    assert matched is not None
    assert matched.slug == "acme"
    assert matched.canonical == f"https://jobs.lever.co/acme/{LEVER_ID}"

    assert LEVER.match(f"https://jobs.lever.co/acme/{LEVER_ID}/apply") is None
    assert LEVER.match("https://jobs.lever.co/acme/not-a-posting-id") is None
    assert LEVER.match("https://jobs.lever.co/acme") is None
    assert LEVER.match(f"https://jobs.lever.co/democorp/{LEVER_ID}") is None
    assert LEVER.match(f"https://[jobs]/acme/{LEVER_ID}") is None


def test_posting_canonical_drops_board_query_params() -> None:
    plain = LEVER.match(f"https://jobs.lever.co/acme/{LEVER_ID}")
    sourced = LEVER.match(f"https://jobs.lever.co/acme/{LEVER_ID}?lever-source=LinkedIn")
    assert plain is not None and sourced is not None
    assert sourced.canonical == plain.canonical == f"https://jobs.lever.co/acme/{LEVER_ID}"

    greenhouse = GREENHOUSE.match("https://boards.greenhouse.io/acme/jobs/401?gh_src=abc")
    assert greenhouse is not None
    assert greenhouse.canonical == "https://boards.greenhouse.io/acme/jobs/401"


def test_ashby_requires_board_and_posting_segments() -> None:
    assert ASHBY.match("https://jobs.ashbyhq.com/acme") is None
    assert ASHBY.match("https://jobs.ashbyhq.com/demo/5d1f") is None
    matched = ASHBY.match("https://jobs.ashbyhq.com/Acme/5d1f")
    assert matched is not None
    assert matched.slug == "acme"


def test_greenhouse_requires_numeric_job_id_over_https() -> None:
    assert GREENHOUSE.match("https://boards.greenhouse.io/acme/jobs/4012345") is not None
    assert GREENHOUSE.match("https://job-boards.greenhouse.io/acme/jobs/4012345") is not None
    assert GREENHOUSE.match("https://boards.greenhouse.io/acme/jobs/abc") is None
    assert GREENHOUSE.match("http://boards.greenhouse.io/acme/jobs/4012345") is None
    assert GREENHOUSE.match("https://boards.greenhouse.io/example/jobs/1") is None


def test_platform_hosts_do_not_cross_match() -> None:
    assert LEVER.match("https://jobs.ashbyhq.com/acme/5d1f") is None
    assert ASHBY.match(f"https://jobs.lever.co/acme/{LEVER_ID}") is None


def test_platform_lookup() -> None:
    assert get_platform("LEVER") is LEVER
    with pytest.raises(ValueError):
        get_platform("workday")
    assert is_banned("ashby", "Demo")
    assert not is_banned("ashby", "acme")
    assert not is_banned("workday", "demo")
