"""
SurveyLens Backend — Rule-Based Question Insights

Deterministic one-sentence findings derived from question statistics.
No sentence is emitted when no rule fires; an empty list is valid output.
"""

from surveylens.models import DemographicBreakdown, OptionCount, ScaleStatistics

CONSENSUS_STD_DEV = 1.5
POLARIZED_STD_DEV = 3.0
MAJORITY_PERCENTAGE = 50.0
NO_WINNER_SPREAD = 10.0


def generate_scale_insights(
    statistics: ScaleStatistics,
    demographics: list[DemographicBreakdown],
) -> list[str]:
    insights: list[str] = []

    # Distribution shape
    if statistics.std_dev < CONSENSUS_STD_DEV:
        insights.append(f"Strong consensus with low variance (σ={statistics.std_dev:.2f})")
    elif statistics.std_dev > POLARIZED_STD_DEV:
        insights.append(f"High variance indicates polarized opinions (σ={statistics.std_dev:.2f})")

    # Demographic differences: one sentence per field, naming the highest-mean significant group
    for demo in demographics:
        significant = [g for g in demo.breakdown if g.significance is not None and g.significance.significant]
        if not significant:
            continue
        top = sorted(significant, key=lambda g: g.mean or 0, reverse=True)[0]
        direction = "higher" if not top.significance.vs_overall.startswith("-") else "lower"
        insights.append(
            f"{demo.demographic}: {top.value} shows significantly {direction} response "
            f"({top.significance.vs_overall} vs overall, p<0.05)"
        )

    return insights


def generate_multiple_choice_insights(breakdown: list[OptionCount]) -> list[str]:
    """Breakdown must already be sorted by count, descending."""
    insights: list[str] = []
    if not breakdown:
        return insights

    top = breakdown[0]
    if top.percentage > MAJORITY_PERCENTAGE:
        insights.append(f'Clear majority preference for "{top.option}" ({top.percentage:.1f}%)')

    if len(breakdown) >= 3 and breakdown[0].percentage - breakdown[2].percentage < NO_WINNER_SPREAD:
        insights.append("No clear winner - top 3 options within 10% of each other")

    return insights
