"""
SurveyLens Backend — Survey Generation

LLM-drafted validation survey with a fixed template fallback. Either way the
survey carries the purchase-intent, price and benefit questions the analysis
overview depends on.
"""

from typing import Optional

from surveylens.analyzer import find_question
from surveylens.config import generate_error_code, log
from surveylens.llm import LLMError, LLMValidationError, call_llm_structured
from surveylens.models import ProductInfo, Question, SurveyDraft, SurveySection
from surveylens.prompts import build_survey_prompt

REQUIRED_ROLES = ("purchase_intent", "price")

AGE_BRACKETS = ["18-24", "25-34", "35-44", "45-54", "55-64", "65+"]
DEFAULT_BENEFITS = ["Saves time", "Saves money", "Easy to use", "Better quality"]


async def generate_survey(
    product_info: ProductInfo,
    validation_goals: list[str],
    test_id: str | None = None,
) -> tuple[SurveyDraft, Optional[str]]:
    """
    Draft a survey for the product.

    Returns:
        (survey, warning). warning is None when the LLM draft was usable;
        otherwise the template survey is returned with an explanation.
    """
    messages = build_survey_prompt(product_info.model_dump(), validation_goals)
    try:
        draft = await call_llm_structured(messages, SurveyDraft, test_id=test_id)
    except (LLMError, LLMValidationError) as e:
        code = generate_error_code()
        log("ERROR", "survey generation failed, using template", test_id=test_id, error=str(e), error_code=code)
        return template_survey(product_info), f"AI survey generation unavailable; using template survey (ref {code})"

    missing = [role for role in REQUIRED_ROLES if find_question(draft.questions, role) is None]
    if missing or not draft.questions:
        log("WARN", "generated survey missing required questions, using template", test_id=test_id, missing=missing)
        return template_survey(product_info), "Generated survey was incomplete; using template survey"

    log(
        "INFO",
        "survey generated",
        test_id=test_id,
        sections=len(draft.sections),
        questions=len(draft.questions),
    )
    return draft, None


def template_survey(product_info: ProductInfo) -> SurveyDraft:
    """Five-section survey: screener, problem, concept, pricing, features."""
    name = product_info.name
    audience = product_info.target_audience or "people like you"
    benefits = product_info.key_features or DEFAULT_BENEFITS

    return SurveyDraft(
        sections=[
            SurveySection(
                id="section-screener",
                title="About You",
                description="Qualify respondents",
                questions=[
                    Question(id="q1", type="multiple_choice", text="What is your age?", options=AGE_BRACKETS),
                ],
            ),
            SurveySection(
                id="section-problem",
                title="The Problem",
                description=f"How {audience} experience the problem today",
                questions=[
                    Question(
                        id="q2",
                        type="scale",
                        text=f"How much of a problem is what {name} solves for you today?",
                    ),
                    Question(
                        id="q3",
                        type="text_long",
                        text="How do you currently deal with this problem?",
                    ),
                ],
            ),
            SurveySection(
                id="section-concept",
                title="Product Concept",
                description=product_info.description,
                questions=[
                    Question(
                        id="q4",
                        type="scale",
                        text=f"How likely are you to purchase {name}?",
                        role="purchase_intent",
                    ),
                    Question(
                        id="q5",
                        type="yes_no",
                        text=f"Would you recommend {name} to a friend?",
                    ),
                ],
            ),
            SurveySection(
                id="section-pricing",
                title="Pricing",
                description="Willingness to pay",
                questions=[
                    Question(
                        id="q6",
                        type="text_short",
                        text=f"What is the most you would pay for {name} (in dollars)?",
                        role="price",
                    ),
                ],
            ),
            SurveySection(
                id="section-features",
                title="Features",
                description="Benefit preference",
                questions=[
                    Question(
                        id="q7",
                        type="multiple_choice",
                        text=f"Which benefit of {name} matters most to you?",
                        options=benefits,
                        role="benefit",
                    ),
                ],
            ),
        ],
        settings={"estimated_time": 5},
    )
