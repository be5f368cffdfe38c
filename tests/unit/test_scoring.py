from rolescout.core.scoring import ScoringConfig, build_rank_key, is_scorable, max_comp_k, score_role


def test_senior_bizops_title_scores_above_baseline() -> None:
    result = score_role("Senior Manager, Business Operations", "Acme", "", "", "")

    assert result.fit_score == 78
    assert result.dealbreaker_flag is False
    assert result.location_us_ok == "TRUE"
    assert result.comp_ok == "UNKNOWN"
    assert result.work_mode_final == "UNKNOWN"
    assert result.fit_notes == "+10 Senior Manager title | +18 BizOps/Business Ops title"


def test_non_us_requirement_is_a_dealbreaker_and_clamps_to_zero() -> None:
    result = score_role("Payroll Specialist", "Acme", "Location: London", "", "")

    assert result.fit_score == 0
    assert result.dealbreaker_flag is True
    assert result.location_us_ok == "FALSE"
    assert result.rank_key == "000-acme-payroll specialist"


def test_work_mode_and_comp_signals() -> None:
    result = score_role(
        "Director, Strategy & Operations",
        "Acme",
        "Fully remote role. Base salary $150k - $170k.",
        "",
        "",
    )

    # 50 + 14 director + 18 strategy ops + 6 remote - 15 comp below floor
    assert result.fit_score == 73
    assert result.work_mode_final == "REMOTE"
    assert result.comp_ok == "FALSE"
    assert "Comp max~170k => FALSE" in result.fit_notes
    assert result.rank_key == "073-acme-director, strategy & operations"


def test_comp_at_floor_is_ok() -> None:
    assert max_comp_k("Range 190k to $240k") == 240
    assert max_comp_k("no numbers") == 0
    result = score_role("Chief of Staff", "Acme", "Salary up to $240k", "", "")
    assert result.comp_ok == "TRUE"


def test_in_person_overrides_remote() -> None:
    result = score_role("Chief of Staff", "Acme", "Remote interviews, then on-site five days a week", "", "")
    assert result.work_mode_final == "IN_PERSON"


def test_non_ascii_title_flags_location_without_dealbreaker() -> None:
    result = score_role("事業開発マネージャー", "Acme", "", "", "")

    assert result.fit_score == 15
    assert result.location_us_ok == "FALSE"
    assert result.dealbreaker_flag is False


def test_short_tokens_only_match_whole_words() -> None:
    result = score_role("Strategic Partnerships Lead", "Acme", "", "", "")
    assert "Back-office" not in result.fit_notes


def test_scoring_is_deterministic_and_config_driven() -> None:
    args = ("Head of Business Operations", "Globex", "Hybrid in Austin, TX", "Austin, TX", "hybrid")
    assert score_role(*args) == score_role(*args)

    lower = score_role(*args, config=ScoringConfig(baseline=40))
    assert lower.fit_score == score_role(*args).fit_score - 10


def test_notes_are_capped() -> None:
    result = score_role(
        "Senior Manager Lead Head of Strategy Operations, BizOps, Chief of Staff, GM",
        "Acme",
        "",
        "",
        "",
        ScoringConfig(notes_limit=2),
    )
    assert len(result.fit_notes.split(" | ")) == 2


def test_rank_key_and_scorable_statuses() -> None:
    assert build_rank_key(7, "Acme", "Ops Lead") == "007-acme-ops lead"
    assert is_scorable("Enriched", "")
    assert is_scorable("FetchError", "TEXT_TOO_SHORT")
    assert not is_scorable("FetchError", "HTTP_500")
    assert not is_scorable("New", "")
    assert not is_scorable("Dead", "HTTP_404")
