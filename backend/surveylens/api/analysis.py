"""
SurveyLens Backend — Analysis API

POST /api/analysis/questions: per-question statistics for raw responses.
POST /api/analysis/recommendations: rank recommendations from precomputed results.
POST /api/tests/{test_id}/simulate: synthetic respondents for a survey.
POST /api/tests/{test_id}/process: full analysis pipeline, cached by test id.
GET /api/tests/{test_id}/results: cached analysis result.
DELETE /api/tests/{test_id}/cache: drop the cached result.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException

from surveylens.analyzer import analyze_survey
from surveylens.cache import ResultCache, get_result_cache
from surveylens.config import generate_error_code, log
from surveylens.models import (
    AnalysisResult,
    ProcessRequest,
    QuestionAnalysisRequest,
    QuestionAnalysisResponse,
    RecommendationRequest,
    RecommendationResponse,
    SimulationRequest,
    SimulationResponse,
)
from surveylens.pipeline import run_comprehensive_analysis
from surveylens.recommendations import generate_recommendations
from surveylens.synthetic import generate_synthetic_responses

router = APIRouter(prefix="/api", tags=["analysis"])


@router.post("/analysis/questions", response_model=QuestionAnalysisResponse)
async def analyze_questions(body: QuestionAnalysisRequest) -> QuestionAnalysisResponse:
    """
    POST /api/analysis/questions

    Body: { "questions": [...], "responses": [...] }
    Returns: { "questions": [QuestionAnalysis] }
    """
    log("INFO", "question analysis requested", questions=len(body.questions), responses=len(body.responses))
    return QuestionAnalysisResponse(questions=analyze_survey(body.questions, body.responses))


@router.post("/analysis/recommendations", response_model=RecommendationResponse)
async def rank_recommendations(body: RecommendationRequest) -> RecommendationResponse:
    """
    POST /api/analysis/recommendations

    Body: { "insights": [...], "patterns": [...], "overview": {...} }
    Returns: { "recommendations": [...] } sorted by priority.
    """
    return RecommendationResponse(
        recommendations=generate_recommendations(body.insights, body.patterns, body.overview)
    )


@router.post("/tests/{test_id}/process", response_model=AnalysisResult)
async def process_test(
    test_id: str,
    body: ProcessRequest,
    cache: ResultCache = Depends(get_result_cache),
) -> AnalysisResult:
    """
    POST /api/tests/{test_id}/process

    Runs the comprehensive analysis and caches the result.
    400 if product_info is missing; 500 with an error code if the pipeline crashes.
    """
    if body.product_info is None:
        raise HTTPException(status_code=400, detail="Product info required")

    try:
        result = await run_comprehensive_analysis(test_id, body)
    except Exception as e:
        code = generate_error_code()
        log("ERROR", "analysis pipeline failed", test_id=test_id, error=str(e), error_code=code)
        cache.set(test_id, AnalysisResult(
            test_id=test_id,
            status="failed",
            completed_at=datetime.now(timezone.utc),
            error=f"Analysis failed (ref {code})",
        ))
        raise HTTPException(
            status_code=500,
            detail={"message": "Analysis failed. Please try again.", "error_code": code},
        )

    cache.set(test_id, result)
    return result


@router.post("/tests/{test_id}/simulate", response_model=SimulationResponse)
async def simulate_responses(
    test_id: str,
    body: SimulationRequest,
    cache: ResultCache = Depends(get_result_cache),
) -> SimulationResponse:
    """
    POST /api/tests/{test_id}/simulate

    Body: { "product_info": {...}, "survey": {...}, "sample_size": int }
    Returns: { "test_id", "responses": [SurveyResponse], "warning" }

    Drops any cached result for the test. 400 if the survey has no questions.
    """
    if not body.survey.questions:
        raise HTTPException(status_code=400, detail="Survey has no questions")

    responses, warning = await generate_synthetic_responses(
        body.product_info, body.survey, body.sample_size, test_id=test_id
    )
    cache.invalidate(test_id)
    return SimulationResponse(test_id=test_id, responses=responses, warning=warning)


@router.get("/tests/{test_id}/results", response_model=AnalysisResult)
async def get_results(
    test_id: str,
    cache: ResultCache = Depends(get_result_cache),
) -> AnalysisResult:
    """
    GET /api/tests/{test_id}/results

    Returns the cached AnalysisResult, or 404 if the test has not been processed.
    """
    result = cache.get(test_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Results not found")
    return result


@router.delete("/tests/{test_id}/cache")
async def invalidate_results(
    test_id: str,
    cache: ResultCache = Depends(get_result_cache),
) -> dict:
    """
    DELETE /api/tests/{test_id}/cache

    Returns: { "invalidated": bool }
    """
    invalidated = cache.invalidate(test_id)
    log("INFO", "result cache invalidated", test_id=test_id, invalidated=invalidated)
    return {"invalidated": invalidated}
