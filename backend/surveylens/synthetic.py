"""
SurveyLens Backend — Synthetic Respondents

Simulates survey respondents with the LLM, in batches. Any batch the LLM
cannot produce is filled with deterministic template respondents so a
simulation always returns the requested sample size.
"""

import asyncio
import random
import re
import zlib
from typing import Optional

from surveylens.config import generate_error_code, log
from surveylens.llm import LLMError, LLMValidationError, call_llm_structured
from surveylens.models import (
    Demographics,
    ProductInfo,
    Question,
    SurveyAnswer,
    SurveyDraft,
    SurveyResponse,
    SyntheticRespondent,
    SyntheticRespondentBatch,
)
from surveylens.prompts import build_synthetic_responses_prompt
from surveylens.surveys import AGE_BRACKETS

BATCH_SIZE = 25
MAX_CONCURRENT_BATCHES = 4
DEFAULT_PRICE = 50.0

GENDERS = ["female", "male", "non-binary"]
INCOME_BRACKETS = ["<25k", "25k-50k", "50k-75k", "75k-100k", "100k+"]
LOCATIONS = ["New York", "Los Angeles", "Chicago", "Austin", "Seattle", "Denver", "Atlanta", "Boston"]

_POSITIVE_COMMENTS = ["This would save me a lot of hassle.", "I'd try it as soon as it launches."]
_NEUTRAL_COMMENTS = ["Depends on the price and reviews.", "I'd want to see it in action first."]
_NEGATIVE_COMMENTS = ["What I use today works well enough.", "Not something I need right now."]

_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


async def generate_synthetic_responses(
    product_info: ProductInfo,
    survey: SurveyDraft,
    sample_size: int,
    test_id: str | None = None,
) -> tuple[list[SurveyResponse], Optional[str]]:
    """
    Simulate sample_size respondents answering the survey.

    Returns:
        (responses, warning). warning is None when every respondent came
        from the LLM; otherwise it says how many were templated.
    """
    questions = survey.questions
    prefix = test_id or "synthetic"
    semaphore = asyncio.Semaphore(MAX_CONCURRENT_BATCHES)

    async def run_batch(offset: int, size: int) -> tuple[list[SurveyResponse], int, Optional[str]]:
        async with semaphore:
            return await _generate_batch(offset, size, product_info, questions, prefix, test_id)

    offsets = range(0, sample_size, BATCH_SIZE)
    results = await asyncio.gather(
        *(run_batch(offset, min(BATCH_SIZE, sample_size - offset)) for offset in offsets)
    )

    responses: list[SurveyResponse] = []
    templated = 0
    error_codes: list[str] = []
    for batch, batch_templated, code in results:
        responses.extend(batch)
        templated += batch_templated
        if code:
            error_codes.append(code)

    log(
        "INFO",
        "synthetic responses generated",
        test_id=test_id,
        sample_size=sample_size,
        batches=len(results),
        templated=templated,
    )

    if not templated:
        return responses, None
    warning = f"{templated} of {sample_size} synthetic respondents were generated from templates"
    if error_codes:
        warning += f" (ref {error_codes[0]})"
    return responses, warning


async def _generate_batch(
    offset: int,
    size: int,
    product_info: ProductInfo,
    questions: list[Question],
    prefix: str,
    test_id: str | None,
) -> tuple[list[SurveyResponse], int, Optional[str]]:
    messages = build_synthetic_responses_prompt(
        product_info.model_dump(),
        [q.model_dump() for q in questions],
        size,
    )
    try:
        batch = await call_llm_structured(messages, SyntheticRespondentBatch, test_id=test_id)
    except (LLMError, LLMValidationError) as e:
        code = generate_error_code()
        log(
            "ERROR",
            "synthetic batch failed, using templates",
            test_id=test_id,
            offset=offset,
            size=size,
            error=str(e),
            error_code=code,
        )
        templates = [template_response(offset + i, product_info, questions, prefix) for i in range(size)]
        return templates, size, code

    respondents = batch.respondents[:size]
    if len(respondents) < size:
        log("WARN", "llm returned too few respondents, padding with templates",
            test_id=test_id, offset=offset, expected=size, received=len(respondents))

    responses = [_to_response(offset + i, r, questions, prefix) for i, r in enumerate(respondents)]
    responses += [
        template_response(offset + i, product_info, questions, prefix)
        for i in range(len(respondents), size)
    ]
    return responses, size - len(respondents), None


def _to_response(
    index: int,
    respondent: SyntheticRespondent,
    questions: list[Question],
    prefix: str,
) -> SurveyResponse:
    """Keep answers to questions in the survey, in survey order."""
    answers = [
        SurveyAnswer(question_id=q.id, value=respondent.answers[q.id])
        for q in questions
        if q.id in respondent.answers
    ]
    return SurveyResponse(
        id=f"{prefix}-r{index + 1}",
        answers=answers,
        demographics=respondent.demographics,
        metadata={"source": "ai"},
    )


def template_response(
    index: int,
    product_info: ProductInfo,
    questions: list[Question],
    prefix: str = "synthetic",
) -> SurveyResponse:
    """
    Deterministic respondent for a product and position in the sample.

    A single enthusiasm level drives every answer, so purchase intent,
    price and yes/no answers stay consistent with each other.
    """
    rng = random.Random(zlib.crc32(f"{product_info.name}:{index}".encode()))
    enthusiasm = rng.random()
    demographics = Demographics(
        age=rng.choice(AGE_BRACKETS),
        gender=rng.choice(GENDERS),
        income=rng.choice(INCOME_BRACKETS),
        location=rng.choice(LOCATIONS),
    )
    anchor = price_anchor(product_info.price_range)

    answers = []
    for question in questions:
        value = _template_answer(question, enthusiasm, anchor, rng)
        if value is not None:
            answers.append(SurveyAnswer(question_id=question.id, value=value))

    return SurveyResponse(
        id=f"{prefix}-r{index + 1}",
        answers=answers,
        demographics=demographics,
        metadata={"source": "template"},
    )


def _template_answer(question: Question, enthusiasm: float, anchor: float, rng: random.Random):
    if question.role == "price":
        return round(anchor * (0.6 + 0.8 * enthusiasm))
    if question.type == "scale":
        span = question.scale_max - question.scale_min
        raw = question.scale_min + round(enthusiasm * span + rng.uniform(-1, 1))
        return max(question.scale_min, min(question.scale_max, raw))
    if question.type == "multiple_choice":
        return rng.choice(question.options) if question.options else None
    if question.type == "yes_no":
        return "Yes" if enthusiasm + rng.uniform(-0.2, 0.2) >= 0.5 else "No"
    if enthusiasm >= 0.66:
        return rng.choice(_POSITIVE_COMMENTS)
    if enthusiasm >= 0.33:
        return rng.choice(_NEUTRAL_COMMENTS)
    return rng.choice(_NEGATIVE_COMMENTS)


def price_anchor(price_range: Optional[str]) -> float:
    """Midpoint of the numbers in a price range such as "$40-$80"; 50 when none."""
    if not price_range:
        return DEFAULT_PRICE
    numbers = [float(n) for n in _NUMBER_RE.findall(price_range.replace(",", ""))]
    numbers = [n for n in numbers if n > 0]
    if not numbers:
        return DEFAULT_PRICE
    return sum(numbers) / len(numbers)
