"""Deterministic fit scoring.

`score_role` is a pure function of its inputs: the same title / company / text
always yields the same `ScoreResult`, and nothing here touches the ledger.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rolescout.types import ScoreResult

SCORABLE_FAILURE = "TEXT_TOO_SHORT"


@dataclass(frozen=True, slots=True)
class ScoringConfig:
    baseline: int = 50
    comp_floor_k: int = 180
    notes_limit: int = 6
    non_ascii_min_chars: int = 3


@dataclass(frozen=True, slots=True)
class TitleSignal:
    pattern: re.Pattern[str]
    points: int
    note: str


def _signal(pattern: str, points: int, note: str) -> TitleSignal:
    return TitleSignal(pattern=re.compile(pattern), points=points, note=note)


POSITIVE_TITLE_SIGNALS: tuple[TitleSignal, ...] = (
    _signal(r"biz\s?ops|business operations|business ops", 18, "BizOps/Business Ops title"),
    _signal(
        r"strategy operations|strategic operations|strategy & operations|strategy and operations",
        18,
        "Strategy Ops title",
    ),
    _signal(r"\bhead of\b.*(strategy|business operations|bizops|operations)", 16, "Head of Strategy/BizOps/Operations"),
    _signal(r"chief of staff", 12, "Chief of Staff"),
    _signal(r"\bgeneral manager\b|\bgm\b", 10, "GM"),
    _signal(
        r"strategic finance|corp(orate)? strategy|corporate development|biz dev|business development",
        8,
        "Adjacent strategic function",
    ),
)

NEGATIVE_TITLE_SIGNALS: tuple[TitleSignal, ...] = (
    _signal(r"\baccountant\b|accounting|controller|\btax\b|\baudit", -25, "Accounting/Controller"),
    _signal(r"payroll|\bap\b|\bar\b|billing specialist", -20, "Back-office ops"),
    _signal(r"\bhr\b|talent|recruit(ing|er)", -15, "HR/Talent"),
    _signal(r"sales development|\bsdr\b|\bbdr\b", -15, "SDR/BDR"),
)

NON_US_LOCATION_RE = re.compile(
    r"(location\s*[:\-]\s*(london|uk|england|europe|berlin|paris|dublin|india|singapore|australia|toronto|vancouver)"
    r"|based\s+in\s+(our\s+)?(london|berlin|paris|dublin|toronto|sydney)\s"
    r"|must\s+be\s+(based|located)\s+in\s+(the\s+)?(uk|eu|europe)"
    r"|headquarters?\s+in\s+(london|berlin|paris)"
    r"|role\s+is\s+in\s+(london|berlin|paris))",
    re.IGNORECASE,
)
REMOTE_RE = re.compile(r"remote-first|fully remote|100% remote|\bremote\b")
HYBRID_RE = re.compile(r"hybrid")
IN_PERSON_RE = re.compile(r"on[- ]site|onsite|in[- ]office|must be in office|five days a week|5 days a week")
COMP_RE = re.compile(r"\$?\b(1[5-9]\d|2\d\d)\s?k\b", re.IGNORECASE)
NON_ASCII_RE = re.compile(r"[^\x00-\x7F]")


def _seniority(title: str) -> tuple[int, list[str]]:
    points = 0
    notes: list[str] = []
    senior_manager = re.search(r"\b(senior manager|sr\.?\s*manager)\b", title)

    if re.search(r"\b(associate|analyst|coordinator|specialist)\b", title):
        points -= 22
        notes.append("-22 Junior seniority (associate/analyst/etc.)")
    elif re.search(r"\bmanager\b", title) and not senior_manager:
        points -= 8
        notes.append("-8 Manager (non-senior) title")

    if senior_manager:
        points += 10
        notes.append("+10 Senior Manager title")
    if re.search(r"\b(lead|principal)\b", title):
        points += 8
        notes.append("+8 Lead/Principal title")
    if re.search(r"\b(head of|director|vp|vice president)\b", title):
        points += 14
        notes.append("+14 Head/Director/VP title")
    return points, notes


def max_comp_k(jd_text: str) -> int:
    """Largest '###k' figure (150k-299k) mentioned in the text, 0 when none."""
    values = [int(match.group(1)) for match in COMP_RE.finditer(jd_text or "")]
    return max(values, default=0)


def build_rank_key(score: int, company: str, title: str) -> str:
    return f"{score:03d}-{(company or '').lower()}-{(title or '').lower()}"


def score_role(
    title: str,
    company: str,
    jd_text: str,
    location_raw: str,
    work_mode_hint: str,
    config: ScoringConfig | None = None,
) -> ScoreResult:
    config = config or ScoringConfig()
    t = (title or "").lower()
    text = f"{jd_text or ''} {location_raw or ''}".lower()

    score = config.baseline
    notes: list[str] = []

    points, seniority_notes = _seniority(t)
    score += points
    notes.extend(seniority_notes)

    for signal in POSITIVE_TITLE_SIGNALS:
        if signal.pattern.search(t):
            score += signal.points
            notes.append(f"+{signal.points} {signal.note}")
    for signal in NEGATIVE_TITLE_SIGNALS:
        if signal.pattern.search(t):
            score += signal.points
            notes.append(f"{signal.points} {signal.note}")

    location_us_ok = "TRUE"
    if len(NON_ASCII_RE.findall(title or "")) >= config.non_ascii_min_chars:
        score -= 35
        notes.append("-35 Non-English / non-ASCII title")
        location_us_ok = "FALSE"

    non_us_required = bool(NON_US_LOCATION_RE.search(text))
    if non_us_required:
        location_us_ok = "FALSE"
        score -= 40
        notes.append("-40 Non-US location required")

    work_mode_final = "UNKNOWN"
    work = f"{(work_mode_hint or '').lower()} {text}"
    if REMOTE_RE.search(work):
        work_mode_final = "REMOTE"
        score += 6
        notes.append("+6 Remote")
    if HYBRID_RE.search(work):
        work_mode_final = "REMOTE_OR_HYBRID" if work_mode_final == "REMOTE" else "HYBRID"
        score += 2
        notes.append("+2 Hybrid")
    if IN_PERSON_RE.search(work):
        work_mode_final = "IN_PERSON"
        score -= 6
        notes.append("-6 In-person requirement")

    comp_ok = "UNKNOWN"
    top_k = max_comp_k(jd_text)
    if top_k:
        comp_ok = "TRUE" if top_k >= config.comp_floor_k else "FALSE"
        notes.append(f"Comp max~{top_k}k => {comp_ok}")
        if comp_ok == "FALSE":
            score -= 15

    score = max(0, min(100, score))
    return ScoreResult(
        fit_score=score,
        fit_notes=" | ".join(notes[: config.notes_limit]),
        dealbreaker_flag=non_us_required,
        location_us_ok=location_us_ok,
        comp_ok=comp_ok,
        work_mode_final=work_mode_final,
        rank_key=build_rank_key(score, company, title),
    )


def is_scorable(status: str, failure_reason: str | None) -> bool:
    return status == "Enriched" or (status == "FetchError" and (failure_reason or "") == SCORABLE_FAILURE)
