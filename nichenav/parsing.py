"""
NicheNav Backend: Model Output Parsing

Two stages between free-form model text and typed records:
    1. extract_json_object() + parse_json_object(): text -> untyped dict
    2. coerce_niche_analysis() / coerce_validation_report(): dict -> typed model

Stage 2 repairs out-of-range numbers silently (clamping, defaults). It only
raises when a required field is missing or a required list is empty.
"""

import json
import math
import re
from typing import Any

from nichenav.errors import IncompleteResponse, MalformedJson, NoJsonFound
from nichenav.models import (
    CompetitorRecord,
    MicroNiche,
    NicheAnalysisResult,
    RoadmapPhase,
    SuccessRoadmap,
    ValidationReport,
)

# ─────────────────────────────────────────────────────────────────────────────
# Bounds & defaults
# ─────────────────────────────────────────────────────────────────────────────

SEARCH_VOLUME_ACCEPTED_RANGE = (100, 100_000)
SEARCH_VOLUME_CLAMP_RANGE = (500, 50_000)
SCORE_RANGE = (1, 100)
DEFAULT_MONETIZATION_SCORE = 70
DEFAULT_VALIDATION_SCORE = 75
DEFAULT_MONETIZATION_POTENTIAL = 70
DEFAULT_PROFITABILITY_SCORE = 70
DEFAULT_COMPETITION = "medium"
DEFAULT_TIME_TO_MARKET = "Not specified"
MAX_MICRO_NICHES = 7

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
_COMPETITION_RE = re.compile(r"\b(low|medium|high)\b")


# ─────────────────────────────────────────────────────────────────────────────
# Stage 1: text -> dict
# ─────────────────────────────────────────────────────────────────────────────


def extract_json_object(text: str) -> str:
    """
    Return the span from the first '{' to the last '}' of the model output.

    Surrounding whitespace and markdown code-fence markers are removed first,
    so prose before/after the object and ```json fences are tolerated.

    Raises:
        NoJsonFound: if either brace is missing or the last '}' precedes the first '{'.
    """
    if not text or not isinstance(text, str):
        raise NoJsonFound("Model output is empty")
    cleaned = _FENCE_RE.sub("", text.strip()).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        raise NoJsonFound("No JSON object found in model output")
    return cleaned[start:end + 1]


def parse_json_object(candidate: str) -> dict:
    """json.loads the candidate; anything but a JSON object is MalformedJson."""
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as e:
        raise MalformedJson(candidate, str(e)) from e
    if not isinstance(parsed, dict):
        raise MalformedJson(candidate, "top-level value is not an object")
    return parsed


# ─────────────────────────────────────────────────────────────────────────────
# Coercion helpers
# ─────────────────────────────────────────────────────────────────────────────


def _to_number(value: Any) -> float | None:
    """
    Read ints, floats and strings like '12,500' or '4.5%'. Booleans are not numbers.

    Values too large for a float (JSON 1e400, very long integers) come back as
    +/-inf so range checks clamp them. NaN is not a number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf if value > 0 else -math.inf
    elif isinstance(value, float):
        number = value
    elif isinstance(value, str):
        cleaned = value.strip().replace(",", "").rstrip("%").strip()
        try:
            number = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _to_count(value: Any) -> int:
    """Non-negative integer count; unreadable, negative or infinite values read as 0."""
    number = _to_number(value)
    if number is None or not math.isfinite(number):
        return 0
    return max(0, int(number))


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _score(value: Any, default: int) -> int:
    number = _to_number(value)
    if number is None:
        return default
    return int(round(_clamp(number, *SCORE_RANGE)))


def _text(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value).strip()
    return ""


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    items = (_text(v) for v in value)
    return [item for item in items if item]


def _competition(value: Any) -> str:
    if not isinstance(value, str):
        return DEFAULT_COMPETITION
    match = _COMPETITION_RE.search(value.lower())
    return match.group(1) if match else DEFAULT_COMPETITION


def _first(data: dict, *keys: str) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _niche_search_volume(value: Any) -> int | None:
    """Positive volumes outside the accepted range are pulled into the clamp range."""
    number = _to_number(value)
    if number is None or number <= 0:
        return None
    low, high = SEARCH_VOLUME_ACCEPTED_RANGE
    if not low <= number <= high:
        number = _clamp(number, *SEARCH_VOLUME_CLAMP_RANGE)
    return int(number)


# ─────────────────────────────────────────────────────────────────────────────
# Stage 2: dict -> NicheAnalysisResult
# ─────────────────────────────────────────────────────────────────────────────


def coerce_micro_niche(raw: Any, index: int = 0) -> MicroNiche:
    """Validate one micro-niche object. Trends are attached later by the pipeline."""
    if not isinstance(raw, dict):
        raise IncompleteResponse(f"microNiches[{index}] is not an object")

    name = _text(raw.get("name"))
    description = _text(raw.get("description"))
    search_volume = _niche_search_volume(_first(raw, "searchVolume", "search_volume"))
    examples = _str_list(raw.get("examples"))

    missing = [
        field
        for field, ok in (
            ("name", bool(name)),
            ("description", bool(description)),
            ("searchVolume", search_volume is not None),
            ("examples", bool(examples)),
        )
        if not ok
    ]
    if missing:
        raise IncompleteResponse(f"microNiches[{index}] missing {', '.join(missing)}")

    return MicroNiche(
        name=name,
        description=description,
        search_volume=search_volume,
        competition=_competition(raw.get("competition")),
        monetization_score=_score(
            _first(raw, "monetizationScore", "monetization_score"), DEFAULT_MONETIZATION_SCORE
        ),
        validation_score=_score(
            _first(raw, "validationScore", "validation_score"), DEFAULT_VALIDATION_SCORE
        ),
        examples=examples,
    )


def coerce_niche_analysis(data: dict, topic: str, user_id: str) -> NicheAnalysisResult:
    """
    Turn the parsed analysis payload into a NicheAnalysisResult.

    The aggregate search volume is kept as the model reported it. When it is
    missing, not positive or too large to represent, the sum of the micro-niche
    volumes stands in.

    Raises:
        IncompleteResponse: microNiches missing/empty, or a niche lacks a required field.
    """
    raw_niches = _first(data, "microNiches", "micro_niches")
    if not isinstance(raw_niches, list) or not raw_niches:
        raise IncompleteResponse("Response has no microNiches")

    micro_niches = [
        coerce_micro_niche(raw, index)
        for index, raw in enumerate(raw_niches[:MAX_MICRO_NICHES])
    ]

    overall = _to_number(_first(data, "overallSearchVolume", "searchVolume"))
    if overall is None or overall <= 0 or not math.isfinite(overall):
        search_volume = sum(n.search_volume for n in micro_niches)
    else:
        search_volume = int(overall)

    return NicheAnalysisResult(
        topic=topic,
        micro_niches=micro_niches,
        search_volume=search_volume,
        competition=_competition(_first(data, "overallCompetition", "competition")),
        monetization_potential=_score(data.get("monetizationPotential"), DEFAULT_MONETIZATION_POTENTIAL),
        user_id=user_id,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Stage 2: dict -> ValidationReport
# ─────────────────────────────────────────────────────────────────────────────


def _coerce_competitor(raw: Any, index: int) -> CompetitorRecord:
    if not isinstance(raw, dict):
        raise IncompleteResponse(f"competitors[{index}] is not an object")
    name = _text(raw.get("name"))
    if not name:
        raise IncompleteResponse(f"competitors[{index}] missing name")

    engagement = _to_number(raw.get("engagement"))
    return CompetitorRecord(
        name=name,
        website=_text(raw.get("website")) or None,
        social_media=_text(_first(raw, "socialMedia", "social_media")) or None,
        followers=_to_count(raw.get("followers")),
        engagement=round(_clamp(engagement, 0.0, 100.0), 1) if engagement is not None else 0.0,
        strengths=_str_list(raw.get("strengths")),
        weaknesses=_str_list(raw.get("weaknesses")),
    )


def _coerce_roadmap(raw: Any) -> SuccessRoadmap | None:
    if not isinstance(raw, dict):
        return None
    phases = {}
    for key in ("phase1", "phase2", "phase3"):
        phase = raw.get(key)
        if not isinstance(phase, dict):
            continue
        phases[key] = RoadmapPhase(
            timeline=_text(phase.get("timeline")),
            budget=_text(phase.get("budget")),
            objectives=_str_list(phase.get("objectives")),
            key_actions=_str_list(_first(phase, "keyActions", "key_actions")),
        )
    return SuccessRoadmap(**phases) if phases else None


def coerce_validation_report(
    data: dict,
    niche_id: str,
    micro_niche_name: str,
    user_id: str,
) -> ValidationReport:
    """
    Turn the parsed report payload into a ValidationReport.

    Raises:
        IncompleteResponse: competitors missing/empty, or a competitor has no name.
    """
    raw_competitors = _first(data, "competitors", "competitorAnalysis")
    if not isinstance(raw_competitors, list) or not raw_competitors:
        raise IncompleteResponse("Response has no competitors")

    competitors = [_coerce_competitor(raw, index) for index, raw in enumerate(raw_competitors)]

    return ValidationReport(
        niche_id=niche_id,
        user_id=user_id,
        micro_niche_name=micro_niche_name,
        profitability_score=_score(data.get("profitabilityScore"), DEFAULT_PROFITABILITY_SCORE),
        audience_size=_to_count(data.get("audienceSize")),
        competitor_analysis=competitors,
        content_gaps=_str_list(data.get("contentGaps")),
        monetization_strategies=_str_list(data.get("monetizationStrategies")),
        risk_factors=_str_list(data.get("riskFactors")),
        time_to_market=_text(data.get("timeToMarket")) or DEFAULT_TIME_TO_MARKET,
        success_roadmap=_coerce_roadmap(data.get("successRoadmap")),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Full chains
# ─────────────────────────────────────────────────────────────────────────────


def parse_niche_analysis(raw_text: str, topic: str, user_id: str) -> NicheAnalysisResult:
    return coerce_niche_analysis(parse_json_object(extract_json_object(raw_text)), topic, user_id)


def parse_validation_report(
    raw_text: str,
    niche_id: str,
    micro_niche_name: str,
    user_id: str,
) -> ValidationReport:
    data = parse_json_object(extract_json_object(raw_text))
    return coerce_validation_report(data, niche_id, micro_niche_name, user_id)
