"""
SurveyLens Backend — Survey API (POST /api/surveys/generate)
"""

from fastapi import APIRouter

from surveylens.models import SurveyGenerateRequest, SurveyGenerateResponse
from surveylens.surveys import generate_survey

router = APIRouter(prefix="/api/surveys", tags=["surveys"])


@router.post("/generate", response_model=SurveyGenerateResponse)
async def generate(body: SurveyGenerateRequest) -> SurveyGenerateResponse:
    """
    POST /api/surveys/generate

    Body: { "product_info": {...}, "validation_goals": [...] }
    Returns: { "survey": SurveyDraft, "warning": str | null }

    Never fails on LLM errors: the template survey is returned with a warning.
    """
    survey, warning = await generate_survey(body.product_info, body.validation_goals)
    return SurveyGenerateResponse(survey=survey, warning=warning)
