"""
SurveyLens Backend — Comprehensive Analysis Pipeline

Steps:
    1. Per-question analysis (statistics, breakdowns, cross-tabs, insights)
    2. Overview (purchase intent, optimal price, top benefit)
    3. Segment patterns
    4. Personas + market insights (LLM, concurrent)
    5. Recommendations
    6. Executive summary (LLM)

LLM steps fall back to data-only output and add a warning; they never fail
the pipeline.
"""

import asyncio
import time
from datetime import datetime, timezone

from surveylens.analyzer import analyze_survey, build_overview
from surveylens.config import log
from surveylens.models import AnalysisResult, ProcessRequest, ProductInfo
from surveylens.patterns import detect_patterns
from surveylens.personas import generate_personas
from surveylens.recommendations import generate_recommendations
from surveylens.reports import generate_executive_summary, generate_market_insights


async def run_comprehensive_analysis(test_id: str, request: ProcessRequest) -> AnalysisResult:
    """
    Run every analysis step for one test.

    Raises:
        ValueError: If product_info is missing.
    """
    if request.product_info is None:
        raise ValueError("product_info is required")

    product_info: ProductInfo = request.product_info
    questions = request.survey.questions
    responses = request.responses
    start = time.perf_counter()

    log(
        "INFO",
        "analysis started",
        test_id=test_id,
        questions=len(questions),
        responses=len(responses),
    )

    analyses = analyze_survey(questions, responses)
    overview = build_overview(questions, analyses, responses)
    patterns = detect_patterns(questions, responses)

    (personas, persona_warnings), (insights, insights_warning) = await asyncio.gather(
        generate_personas(product_info, questions, responses, test_id=test_id),
        generate_market_insights(product_info, overview, patterns, analyses, test_id=test_id),
    )

    recommendations = generate_recommendations(insights, patterns, overview)

    summary, summary_warning = await generate_executive_summary(
        product_info, overview, insights, recommendations, test_id=test_id
    )

    warnings = list(persona_warnings)
    warnings.extend(w for w in (insights_warning, summary_warning) if w)

    duration_ms = int((time.perf_counter() - start) * 1000)
    log(
        "INFO",
        "analysis completed",
        test_id=test_id,
        duration_ms=duration_ms,
        patterns=len(patterns),
        recommendations=len(recommendations),
        personas=len(personas),
        warnings=len(warnings),
    )

    return AnalysisResult(
        test_id=test_id,
        status="completed",
        completed_at=datetime.now(timezone.utc),
        overview=overview,
        questions=analyses,
        patterns=patterns,
        recommendations=recommendations,
        personas=personas,
        insights=insights,
        executive_summary=summary,
        warnings=warnings,
    )
