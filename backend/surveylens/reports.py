"""
SurveyLens Backend — Market Insights & Executive Summary

LLM-written narrative over the computed results. Both generators fall back
to a summary built from the numbers when the LLM is unavailable or returns
unusable output.
"""

from typing import Optional

from surveylens.config import generate_error_code, log
from surveylens.llm import LLMError, LLMValidationError, call_llm_structured
from surveylens.models import (
    ExecutiveSummary,
    InsightEvidence,
    MarketInsight,
    MarketInsightList,
    Overview,
    Pattern,
    ProductInfo,
    QuestionAnalysis,
    Recommendation,
)
from surveylens.prompts import build_executive_summary_prompt, build_insights_prompt

GO_THRESHOLD = 70
CAUTION_THRESHOLD = 50
MAX_INSIGHTS = 5
INSIGHTS_FALLBACK_WARNING = "Market insights were generated from the data only"


# -----------------------------------------------------------------------------
# Market Insights
# -----------------------------------------------------------------------------


async def generate_market_insights(
    product_info: ProductInfo,
    overview: Overview,
    patterns: list[Pattern],
    analyses: list[QuestionAnalysis],
    test_id: str | None = None,
) -> tuple[list[MarketInsight], Optional[str]]:
    """
    Returns:
        (insights, warning). warning is None when the LLM produced the insights.
    """
    question_insights = [text for a in analyses for text in a.insights]
    messages = build_insights_prompt(
        product_info.model_dump(),
        overview.model_dump(),
        [p.model_dump() for p in patterns],
        question_insights,
    )
    try:
        result = await call_llm_structured(messages, MarketInsightList, test_id=test_id)
        if result.insights:
            log("INFO", "market insights generated", test_id=test_id, insights=len(result.insights))
            return result.insights[:MAX_INSIGHTS], None
        log("WARN", "llm returned no market insights, using fallback", test_id=test_id)
        return fallback_market_insights(overview, patterns, question_insights), INSIGHTS_FALLBACK_WARNING
    except (LLMError, LLMValidationError) as e:
        code = generate_error_code()
        log("ERROR", "market insights failed, using fallback", test_id=test_id, error=str(e), error_code=code)
        return (
            fallback_market_insights(overview, patterns, question_insights),
            f"{INSIGHTS_FALLBACK_WARNING} (ref {code})",
        )


def fallback_market_insights(
    overview: Overview,
    patterns: list[Pattern],
    question_insights: list[str],
) -> list[MarketInsight]:
    insights: list[MarketInsight] = []
    intent = overview.avg_purchase_intent

    insights.append(MarketInsight(
        id="insight-purchase-intent",
        type="opportunity" if intent >= GO_THRESHOLD else "risk" if intent < CAUTION_THRESHOLD else "finding",
        category="market",
        priority="high",
        title=f"{intent:g}% Average Purchase Intent",
        summary=_intent_summary(intent),
        evidence=InsightEvidence(
            data_points=[f"Average purchase intent: {intent:g}%"],
            sample_size=overview.sample_size,
            confidence=80,
        ),
    ))

    if overview.optimal_price:
        insights.append(MarketInsight(
            id="insight-price",
            type="finding",
            category="pricing",
            priority="medium",
            title=f"Respondents Anchor Around ${overview.optimal_price:g}",
            summary=f"The median stated price is ${overview.optimal_price:g}.",
            evidence=InsightEvidence(
                data_points=[f"Median price: ${overview.optimal_price:g}"],
                sample_size=overview.sample_size,
                confidence=70,
            ),
        ))

    for pattern in patterns[:2]:
        insights.append(MarketInsight(
            id=f"insight-{pattern.id}",
            type="opportunity" if pattern.lift > 0 else "risk",
            category="segmentation",
            priority="high" if pattern.impact in ("critical", "high") else "medium",
            title=pattern.title,
            summary=pattern.description,
            evidence=InsightEvidence(
                data_points=[f"Lift: {pattern.lift:+.1f}%", f"p={pattern.p_value:.3f}"],
                sample_size=pattern.sample_size,
                confidence=pattern.confidence,
            ),
        ))

    if len(insights) < MAX_INSIGHTS and question_insights:
        insights.append(MarketInsight(
            id="insight-questions",
            type="finding",
            category="product",
            priority="low",
            title="Question-Level Signals",
            summary=question_insights[0],
            evidence=InsightEvidence(
                data_points=question_insights[:3],
                sample_size=overview.sample_size,
                confidence=60,
            ),
        ))

    return insights[:MAX_INSIGHTS]


def _intent_summary(intent: float) -> str:
    if intent >= GO_THRESHOLD:
        return "Purchase intent is strong enough to support a launch."
    if intent >= CAUTION_THRESHOLD:
        return "Purchase intent is moderate; refine positioning before scaling."
    return "Purchase intent is weak; revisit the concept before investing further."


# -----------------------------------------------------------------------------
# Executive Summary
# -----------------------------------------------------------------------------


async def generate_executive_summary(
    product_info: ProductInfo,
    overview: Overview,
    insights: list[MarketInsight],
    recommendations: list[Recommendation],
    test_id: str | None = None,
) -> tuple[ExecutiveSummary, Optional[str]]:
    """
    Returns:
        (summary, warning). warning is None when the LLM wrote the summary.
    """
    messages = build_executive_summary_prompt(
        product_info.model_dump(),
        overview.model_dump(),
        [i.model_dump() for i in insights],
        [r.model_dump() for r in recommendations],
    )
    try:
        summary = await call_llm_structured(messages, ExecutiveSummary, test_id=test_id)
        log("INFO", "executive summary generated", test_id=test_id, launch_status=summary.launch_status)
        return summary, None
    except (LLMError, LLMValidationError) as e:
        code = generate_error_code()
        log("ERROR", "executive summary failed, using fallback", test_id=test_id, error=str(e), error_code=code)
        return (
            fallback_executive_summary(product_info, overview, recommendations),
            f"Executive summary was generated from the data only (ref {code})",
        )


def launch_status_for(intent: float) -> str:
    if intent >= GO_THRESHOLD:
        return "GO"
    if intent >= CAUTION_THRESHOLD:
        return "CAUTION"
    return "NO-GO"


def fallback_executive_summary(
    product_info: ProductInfo,
    overview: Overview,
    recommendations: list[Recommendation],
) -> ExecutiveSummary:
    intent = overview.avg_purchase_intent
    status = launch_status_for(intent)
    bottom_line = {
        "GO": f"Launch {product_info.name}: demand is strong.",
        "CAUTION": f"Proceed with {product_info.name} cautiously and refine positioning first.",
        "NO-GO": f"Do not launch {product_info.name} in its current form.",
    }[status]

    implications = []
    if overview.optimal_price:
        implications.append(f"Price around ${overview.optimal_price:g} to match stated willingness to pay.")
    if overview.top_benefit:
        implications.append(f'Position around "{overview.top_benefit}", the most valued benefit.')

    risks = [f"Sample of {overview.sample_size} respondents may not represent the full market."]
    if status != "GO":
        risks.append(f"Purchase intent of {intent:g}% is below the 70% launch benchmark.")

    return ExecutiveSummary(
        bottom_line=bottom_line,
        launch_status=status,
        key_finding=f"{intent:g}% average purchase intent across {overview.sample_size} respondents.",
        strategic_implications=implications,
        recommended_actions=[r.title for r in recommendations[:3]],
        risks=risks,
        confidence=min(90.0, 50.0 + overview.sample_size / 10),
    )
