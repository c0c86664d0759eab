"""
SurveyLens Backend — Recommendation Ranker

Maps the overview, detected patterns and insights to a priority-ordered
action list. Pure function; ids are deterministic so repeated runs agree.
"""

from surveylens.models import (
    ExpectedOutcome,
    MarketInsight,
    Overview,
    Pattern,
    Recommendation,
    RecommendationAction,
    SupportingData,
)

PRIORITY_ORDER = {"critical": 0, "high": 1, "medium": 2, "low": 3}
LAUNCH_INTENT_THRESHOLD = 70
MAX_PATTERN_RECOMMENDATIONS = 3
DEFAULT_INTENT = 50.0
PROJECTED_EARLY_CUSTOMERS = 1000


def generate_recommendations(
    insights: list[MarketInsight],
    patterns: list[Pattern],
    overview: Overview,
) -> list[Recommendation]:
    """
    Fixed rule set, in emission order:
        1. purchase intent ≥ 70 → critical launch acceleration
        2. optimal price present → high pricing
        3. up to 3 critical/high patterns → segment targeting, priority = impact
        4. top benefit present → high messaging
    Then a stable sort by priority.
    """
    recommendations: list[Recommendation] = []
    insight_ids = [i.id for i in insights]

    # 1. Purchase intent
    if overview.avg_purchase_intent >= LAUNCH_INTENT_THRESHOLD:
        recommendations.append(Recommendation(
            id="rec-launch",
            category="strategy",
            priority="critical",
            title="Strong Market Signal - Accelerate Launch",
            description=(
                f"{overview.avg_purchase_intent:g}% purchase intent indicates strong product-market fit. "
                "Recommend immediate launch."
            ),
            reasoning="High purchase intent (>70%) historically correlates with successful launches.",
            supporting_data=SupportingData(
                insight_ids=insight_ids,
                metrics={"purchase_intent": overview.avg_purchase_intent},
            ),
            actions=[
                RecommendationAction(
                    action="Finalize product development",
                    timeline="Week 1-2",
                    difficulty="medium",
                    estimated_impact="Essential for launch",
                ),
                RecommendationAction(
                    action="Begin pre-launch marketing",
                    timeline="Week 2-3",
                    difficulty="easy",
                    estimated_impact="Build early waitlist",
                ),
            ],
            expected_outcome=[
                ExpectedOutcome(metric="Early Customers", current=0, projected=PROJECTED_EARLY_CUSTOMERS, lift=100),
            ],
            timeline="Immediate",
            difficulty="medium",
        ))

    # 2. Pricing
    if overview.optimal_price:
        price = format_price(overview.optimal_price)
        recommendations.append(Recommendation(
            id="rec-pricing",
            category="pricing",
            priority="high",
            title=f"Set Launch Price at {price}",
            description="Data-driven price point that balances conversion and revenue.",
            reasoning="Based on the median price respondents said they would pay.",
            supporting_data=SupportingData(metrics={"optimal_price": overview.optimal_price}),
            actions=[
                RecommendationAction(
                    action=f"Set product price to {price}",
                    timeline="Pre-launch",
                    difficulty="easy",
                    estimated_impact="Maximize revenue",
                ),
            ],
            expected_outcome=[
                ExpectedOutcome(
                    metric="Revenue",
                    current=0,
                    projected=overview.optimal_price * PROJECTED_EARLY_CUSTOMERS,
                    lift=100,
                ),
            ],
            timeline="Pre-launch",
            difficulty="easy",
        ))

    # 3. Segment targeting
    strong = [p for p in patterns if p.impact in ("critical", "high")][:MAX_PATTERN_RECOMMENDATIONS]
    current_intent = overview.avg_purchase_intent or DEFAULT_INTENT
    for pattern in strong:
        recommendations.append(Recommendation(
            id=f"rec-pattern-{pattern.id}",
            category="geographic" if pattern.type == "geographic" else "strategy",
            priority=pattern.impact,
            title=f"Target {pattern.title}",
            description=pattern.description,
            reasoning=f"Shows {pattern.lift:+.1f}% purchase intent versus the average respondent.",
            supporting_data=SupportingData(pattern_ids=[pattern.id], metrics={"lift": pattern.lift}),
            actions=[
                RecommendationAction(
                    action=f"Create targeted messaging for {pattern.title}",
                    timeline="Week 2-4",
                    difficulty="medium",
                    estimated_impact=f"{pattern.lift:+.1f}% conversion in this segment",
                ),
            ],
            expected_outcome=[
                ExpectedOutcome(
                    metric="Segment Conversion",
                    current=current_intent,
                    projected=current_intent * (1 + pattern.lift / 100),
                    lift=pattern.lift,
                ),
            ],
            timeline="Month 1",
            difficulty="medium",
        ))

    # 4. Messaging
    if overview.top_benefit:
        recommendations.append(Recommendation(
            id="rec-messaging",
            category="brand",
            priority="high",
            title=f'Lead with "{overview.top_benefit}" in Marketing',
            description="This benefit resonates strongest with your target audience.",
            reasoning="Most selected benefit across all respondents.",
            supporting_data=SupportingData(metrics={"top_benefit_score": 100}),
            actions=[
                RecommendationAction(
                    action="Feature in hero messaging",
                    timeline="Immediate",
                    difficulty="easy",
                    estimated_impact="Improve message clarity",
                ),
                RecommendationAction(
                    action="Highlight in ad creative",
                    timeline="Week 1-2",
                    difficulty="easy",
                    estimated_impact="Increase click-through rates",
                ),
            ],
            timeline="Immediate",
            difficulty="easy",
        ))

    return sort_by_priority(recommendations)


def sort_by_priority(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Stable sort: critical, high, medium, low. Ties keep their order."""
    return sorted(recommendations, key=lambda r: PRIORITY_ORDER[r.priority])


def format_price(price: float) -> str:
    """50.0 -> '$50', 29.99 -> '$29.99', 29.999 -> '$30'."""
    cents = round(float(price), 2)
    if cents.is_integer():
        return f"${int(cents)}"
    return f"${cents:.2f}"
