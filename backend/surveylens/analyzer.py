"""
SurveyLens Backend — Response Analyzer

Per-question statistics, multiple-choice tabulation, demographic cross-tabs
with significance flags, and the survey-level overview.

Pure functions over in-memory responses. Nothing here raises for data-quality
reasons: missing or malformed answers shrink the output instead.
"""

import re
from collections import Counter
from typing import Optional

from surveylens import stats
from surveylens.config import log
from surveylens.insights import generate_multiple_choice_insights, generate_scale_insights
from surveylens.models import (
    DEMOGRAPHIC_FIELDS,
    ConfidenceInterval,
    DemographicBreakdown,
    DemographicGroup,
    DistributionBucket,
    OptionCount,
    Overview,
    Question,
    QuestionAnalysis,
    ScaleStatistics,
    Significance,
    SurveyResponse,
)

# Groups at or below this size are noise, not signal.
MIN_GROUP_SIZE = 5
# Subgroups smaller than this get no significance estimate.
MIN_SIGNIFICANCE_SAMPLE = 10
SIGNIFICANCE_ALPHA = 0.05
UNKNOWN_VALUE = "Unknown"

_PRICE_RE = re.compile(r"(\d+(?:\.\d+)?)")


# -----------------------------------------------------------------------------
# Question Analysis
# -----------------------------------------------------------------------------


def analyze_question_responses(question: Question, responses: list[SurveyResponse]) -> QuestionAnalysis:
    """
    Analyze every response to one question.

    Scale questions get a statistics block, multiple-choice questions a
    breakdown block. Other types only report answer counts.
    """
    if question.type == "scale":
        return _analyze_scale_question(question, responses)
    if question.type == "multiple_choice":
        return _analyze_multiple_choice_question(question, responses)

    answered = [a for a in _answers(question, responses) if a is not None and a.value is not None]
    return QuestionAnalysis(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        total_responses=len(answered),
        skipped=len(responses) - len(answered),
        completion_rate=_rate(len(answered), len(responses)),
    )


def analyze_survey(questions: list[Question], responses: list[SurveyResponse]) -> list[QuestionAnalysis]:
    """Analyze each question in survey order."""
    return [analyze_question_responses(q, responses) for q in questions]


def _analyze_scale_question(question: Question, responses: list[SurveyResponse]) -> QuestionAnalysis:
    raw = [a.value for a in _answers(question, responses) if a is not None and a.value is not None]
    values = stats.numeric_values(raw)

    excluded = len(raw) - len(values)
    if excluded:
        log(
            "WARN",
            "non-numeric scale answers excluded",
            question_id=question.id,
            excluded=excluded,
        )

    n = len(values)
    if n == 0:
        return QuestionAnalysis(
            question_id=question.id,
            question_text=question.text,
            question_type=question.type,
            total_responses=0,
            skipped=len(responses),
            completion_rate=0.0,
        )

    std_dev = stats.population_std(values)
    lower, upper = stats.confidence_interval(values)
    statistics = ScaleStatistics(
        mean=stats.mean(values),
        median=stats.median(values),
        mode=stats.mode(values),
        std_dev=std_dev,
        variance=std_dev ** 2,
        confidence_interval=ConfidenceInterval(lower=lower, upper=upper),
        distribution=[
            DistributionBucket(value=value, count=count, percentage=pct)
            for value, count, pct in stats.distribution(values)
        ],
    )

    by_demographic = analyze_demographic_breakdowns(question, responses)

    return QuestionAnalysis(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        total_responses=n,
        skipped=len(responses) - n,
        completion_rate=_rate(n, len(responses)),
        statistics=statistics,
        by_demographic=by_demographic,
        insights=generate_scale_insights(statistics, by_demographic),
    )


def _analyze_multiple_choice_question(question: Question, responses: list[SurveyResponse]) -> QuestionAnalysis:
    answered = [
        a.value for a in _answers(question, responses)
        if a is not None and a.value is not None and a.value != []
    ]
    total = len(answered)

    counts: Counter = Counter()
    for value in answered:
        for option in (value if isinstance(value, list) else [value]):
            counts[str(option)] += 1

    # Counter.most_common is stable for equal counts (first-seen order).
    breakdown = [
        OptionCount(option=option, count=count, percentage=count / total * 100)
        for option, count in counts.most_common()
    ]

    by_demographic = analyze_demographic_breakdowns(question, responses)

    return QuestionAnalysis(
        question_id=question.id,
        question_text=question.text,
        question_type=question.type,
        total_responses=total,
        skipped=len(responses) - total,
        completion_rate=_rate(total, len(responses)),
        breakdown=breakdown,
        by_demographic=by_demographic,
        insights=generate_multiple_choice_insights(breakdown),
    )


# -----------------------------------------------------------------------------
# Demographic Cross-Tabulation
# -----------------------------------------------------------------------------


def analyze_demographic_breakdowns(
    question: Question,
    responses: list[SurveyResponse],
) -> list[DemographicBreakdown]:
    """
    Cross-tabulate a question by each demographic field.

    Groups with MIN_GROUP_SIZE members or fewer are dropped, and a field is
    omitted entirely when fewer than two groups survive.
    """
    total = len(responses)
    overall_values = stats.numeric_values(
        a.value for a in _answers(question, responses) if a is not None
    )
    overall_mean = stats.mean(overall_values) if overall_values else None

    result: list[DemographicBreakdown] = []
    for field in DEMOGRAPHIC_FIELDS:
        groups: dict[str, list[SurveyResponse]] = {}
        for response in responses:
            key = getattr(response.demographics, field) or UNKNOWN_VALUE
            groups.setdefault(key, []).append(response)

        retained: list[DemographicGroup] = []
        for value, members in groups.items():
            group = _summarize_group(question, value, members, total, overall_mean)
            if group.count > MIN_GROUP_SIZE:
                retained.append(group)

        if len(retained) > 1:
            result.append(DemographicBreakdown(demographic=field, field=field, breakdown=retained))

    return result


def _summarize_group(
    question: Question,
    value: str,
    members: list[SurveyResponse],
    total: int,
    overall_mean: Optional[float],
) -> DemographicGroup:
    if question.type == "scale" and overall_mean is not None:
        values = stats.numeric_values(
            a.value for a in _answers(question, members) if a is not None
        )
        if values:
            return DemographicGroup(
                value=value,
                mean=stats.mean(values),
                count=len(values),
                percentage=_rate(len(values), total),
                significance=calculate_significance(values, overall_mean),
            )

    return DemographicGroup(
        value=value,
        count=len(members),
        percentage=_rate(len(members), total),
    )


def calculate_significance(values: list[float], overall_mean: float) -> Optional[Significance]:
    """
    Approximate z-test of a subgroup mean against the overall mean.

    A directional flag for surfacing interesting subgroups, not an inferential
    statistic: the subgroup is part of the population it is compared with.
    Returns None below MIN_SIGNIFICANCE_SAMPLE members.
    """
    n = len(values)
    if n < MIN_SIGNIFICANCE_SAMPLE:
        return None

    sample_mean = stats.mean(values)
    diff = sample_mean - overall_mean
    se = stats.sample_std(values) / n ** 0.5

    if se == 0:
        p_value = 1.0 if diff == 0 else 0.0
    else:
        p_value = stats.two_tailed_p_value(diff / se)

    return Significance(
        p_value=p_value,
        significant=p_value < SIGNIFICANCE_ALPHA,
        vs_overall=stats.format_signed_percent(stats.calculate_lift(overall_mean, sample_mean)),
    )


# -----------------------------------------------------------------------------
# Survey Overview
# -----------------------------------------------------------------------------


def build_overview(
    questions: list[Question],
    analyses: list[QuestionAnalysis],
    responses: list[SurveyResponse],
) -> Overview:
    """
    Aggregate headline metrics from role-tagged questions.

    purchase_intent: scale mean rescaled to 0-100.
    price: median of the stated prices.
    benefit: most chosen option.
    """
    by_id = {a.question_id: a for a in analyses}
    overview = Overview(sample_size=len(responses))

    intent_q = find_question(questions, "purchase_intent")
    if intent_q is not None:
        analysis = by_id.get(intent_q.id)
        if analysis is not None and analysis.statistics is not None and intent_q.scale_max > 0:
            overview.avg_purchase_intent = round(analysis.statistics.mean / intent_q.scale_max * 100, 1)

    price_q = find_question(questions, "price")
    if price_q is not None:
        prices = [p for p in (parse_price(a.value) for a in _answers(price_q, responses) if a is not None) if p]
        if prices:
            overview.optimal_price = round(stats.median(prices), 2)

    benefit_q = find_question(questions, "benefit")
    if benefit_q is not None:
        analysis = by_id.get(benefit_q.id)
        if analysis is not None and analysis.breakdown:
            overview.top_benefit = analysis.breakdown[0].option

    return overview


def find_question(questions: list[Question], role: str) -> Optional[Question]:
    """First question tagged with role, or None."""
    for question in questions:
        if question.role == role:
            return question
    return None


def purchase_intent_scores(question: Question, responses: list[SurveyResponse]) -> dict[str, float]:
    """Map response id -> purchase intent on a 0-100 scale, for numeric answers only."""
    scores: dict[str, float] = {}
    if question.scale_max <= 0:
        return scores
    for response in responses:
        answer = response.answer_for(question.id)
        if answer is not None and stats.is_numeric(answer.value):
            scores[response.id] = float(answer.value) / question.scale_max * 100
    return scores


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def _answers(question: Question, responses: list[SurveyResponse]):
    return [r.answer_for(question.id) for r in responses]


def _rate(part: int, whole: int) -> float:
    return part / whole * 100 if whole else 0.0


def parse_price(value) -> Optional[float]:
    """Prices may arrive as numbers or strings such as "$29.99/mo"."""
    if stats.is_numeric(value):
        return float(value) if value > 0 else None
    if isinstance(value, str):
        match = _PRICE_RE.search(value.replace(",", ""))
        if match:
            price = float(match.group(1))
            return price if price > 0 else None
    return None
