"""
SurveyLens Backend — Segment Pattern Detector

Finds demographic and geographic segments whose purchase intent differs
from the rest of the sample. Patterns feed the recommendation ranker.
"""

import re

from surveylens import stats
from surveylens.analyzer import UNKNOWN_VALUE, find_question, purchase_intent_scores
from surveylens.config import log
from surveylens.models import DEMOGRAPHIC_FIELDS, Pattern, PatternSegment, Question, SurveyResponse

MIN_SEGMENT_SIZE = 10
MIN_ABS_LIFT = 10.0
PATTERN_ALPHA = 0.05

IMPACT_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def impact_for_lift(lift: float) -> str:
    magnitude = abs(lift)
    if magnitude > 40:
        return "critical"
    if magnitude > 25:
        return "high"
    if magnitude > 15:
        return "medium"
    return "low"


def detect_patterns(questions: list[Question], responses: list[SurveyResponse]) -> list[Pattern]:
    """
    Compare each demographic segment's purchase intent with everyone else.

    Requires a question tagged role="purchase_intent"; without one there is
    nothing to compare and the result is empty.
    """
    intent_q = find_question(questions, "purchase_intent")
    if intent_q is None:
        return []

    scores = purchase_intent_scores(intent_q, responses)
    if len(scores) < MIN_SEGMENT_SIZE:
        return []

    baseline = stats.mean(list(scores.values()))
    patterns: list[Pattern] = []

    for field in DEMOGRAPHIC_FIELDS:
        segments: dict[str, list[str]] = {}
        for response in responses:
            value = getattr(response.demographics, field) or UNKNOWN_VALUE
            if value != UNKNOWN_VALUE and response.id in scores:
                segments.setdefault(value, []).append(response.id)

        for value, member_ids in segments.items():
            if len(member_ids) < MIN_SEGMENT_SIZE:
                continue
            members = set(member_ids)
            inside = [scores[rid] for rid in member_ids]
            outside = [s for rid, s in scores.items() if rid not in members]

            p_value = stats.welch_t_test(inside, outside)
            segment_mean = stats.mean(inside)
            lift = stats.calculate_lift(baseline, segment_mean)

            if p_value >= PATTERN_ALPHA or abs(lift) <= MIN_ABS_LIFT:
                continue

            patterns.append(_build_pattern(field, value, inside, segment_mean, lift, p_value))

    patterns.sort(key=lambda p: (IMPACT_ORDER[p.impact], -p.confidence))
    log("INFO", "patterns detected", patterns=len(patterns), baseline=round(baseline, 1))
    return patterns


def _build_pattern(
    field: str,
    value: str,
    inside: list[float],
    segment_mean: float,
    lift: float,
    p_value: float,
) -> Pattern:
    geographic = field == "location"
    name = f"{value} Consumers" if geographic else f"{field.capitalize()} {value}"
    direction = "higher" if lift > 0 else "lower"

    return Pattern(
        id=f"{'geo' if geographic else 'demo'}-{field}-{_slug(value)}",
        type="geographic" if geographic else "demographic",
        title=name,
        description=(
            f"{name} show {abs(lift):.0f}% {direction} purchase intent than the overall sample "
            f"({segment_mean:.1f} vs baseline, n={len(inside)})"
        ),
        confidence=round((1 - p_value) * 100, 1),
        p_value=p_value,
        sample_size=len(inside),
        segments=[
            PatternSegment(name=name, size=len(inside), purchase_intent=round(segment_mean, 1), lift=round(lift, 1))
        ],
        impact=impact_for_lift(lift),
        lift=round(lift, 1),
    )


def _slug(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-") or "segment"
