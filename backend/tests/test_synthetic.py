"""
SurveyLens Backend — Synthetic Respondent Tests

LLM batches are mocked via litellm.acompletion; template respondents are
checked for determinism and answer ranges.
"""

import pytest

from surveylens.analyzer import analyze_survey, build_overview
from surveylens.models import ProductInfo, SurveyDraft
from surveylens.synthetic import (
    BATCH_SIZE,
    DEFAULT_PRICE,
    generate_synthetic_responses,
    price_anchor,
    template_response,
)

RESPONDENTS = {
    "respondents": [
        {
            "demographics": {"age": "25-34", "gender": "female", "income": "50k-75k", "location": "Austin"},
            "answers": {"q1": 8, "q2": "$45", "q3": "Saves time", "q99": "not in survey"},
        },
        {
            "demographics": {"age": 41, "gender": "male", "income": 90000, "location": "Denver"},
            "answers": {"q1": 3, "q3": "App control"},
        },
    ],
}


@pytest.fixture
def survey(survey_payload) -> SurveyDraft:
    return SurveyDraft.model_validate(survey_payload)


@pytest.fixture
def product(product_info) -> ProductInfo:
    return ProductInfo.model_validate(product_info)


class TestGenerateSyntheticResponses:

    @pytest.mark.asyncio
    async def test_llm_respondents(self, mock_llm_with_response, product, survey):
        mock = mock_llm_with_response(RESPONDENTS)

        responses, warning = await generate_synthetic_responses(product, survey, 2, test_id="t1")

        assert warning is None
        assert mock.call_count == 1
        assert [r.id for r in responses] == ["t1-r1", "t1-r2"]
        assert [a.question_id for a in responses[0].answers] == ["q1", "q2", "q3"]
        assert responses[0].metadata == {"source": "ai"}
        assert responses[1].demographics.age == "41"
        assert responses[1].demographics.income == "90000"
        assert responses[1].answer_for("q2") is None

    @pytest.mark.asyncio
    async def test_bare_list_accepted(self, mock_llm_with_response, product, survey):
        mock_llm_with_response(RESPONDENTS["respondents"])

        responses, warning = await generate_synthetic_responses(product, survey, 2)

        assert warning is None
        assert [r.id for r in responses] == ["synthetic-r1", "synthetic-r2"]

    @pytest.mark.asyncio
    async def test_short_batch_padded_with_templates(self, mock_llm_with_response, product, survey):
        mock_llm_with_response(RESPONDENTS)

        responses, warning = await generate_synthetic_responses(product, survey, 3, test_id="t1")

        assert len(responses) == 3
        assert responses[2].id == "t1-r3"
        assert responses[2].metadata == {"source": "template"}
        assert warning == "1 of 3 synthetic respondents were generated from templates"

    @pytest.mark.asyncio
    async def test_batches_cover_sample(self, mock_llm_with_response, product, survey):
        mock = mock_llm_with_response(RESPONDENTS)
        sample_size = BATCH_SIZE * 2 + 10

        responses, _ = await generate_synthetic_responses(product, survey, sample_size, test_id="t1")

        assert mock.call_count == 3
        assert [r.id for r in responses] == [f"t1-r{i + 1}" for i in range(sample_size)]

    @pytest.mark.asyncio
    async def test_template_fallback_on_llm_failure(self, mock_llm_failure, product, survey):
        first, warning = await generate_synthetic_responses(product, survey, 30, test_id="t1")
        second, _ = await generate_synthetic_responses(product, survey, 30, test_id="t1")

        assert len(first) == 30
        assert first == second
        assert all(r.metadata == {"source": "template"} for r in first)
        assert warning.startswith("30 of 30 synthetic respondents were generated from templates")
        assert "ref SL-" in warning

    @pytest.mark.asyncio
    async def test_template_respondents_feed_overview(self, mock_llm_failure, product, survey):
        responses, _ = await generate_synthetic_responses(product, survey, 50)

        overview = build_overview(survey.questions, analyze_survey(survey.questions, responses), responses)

        assert overview.sample_size == 50
        assert 0 < overview.avg_purchase_intent <= 100
        assert 36 <= overview.optimal_price <= 84
        assert overview.top_benefit in product.key_features


class TestTemplateResponse:

    def test_answers_within_question_bounds(self, product, survey):
        for index in range(20):
            response = template_response(index, product, survey.questions)

            intent = response.answer_for("q1").value
            assert 1 <= intent <= 10
            assert 36 <= response.answer_for("q2").value <= 84
            assert response.answer_for("q3").value in {"Saves time", "Consistent taste", "App control"}

    def test_deterministic_per_index(self, product, survey):
        assert template_response(3, product, survey.questions) == template_response(3, product, survey.questions)
        assert template_response(3, product, survey.questions) != template_response(4, product, survey.questions)

    def test_choice_without_options_is_skipped(self, product):
        survey = SurveyDraft.model_validate({
            "sections": [{"id": "s", "title": "S", "questions": [
                {"id": "q1", "text": "Pick one", "type": "multiple_choice", "options": []},
                {"id": "q2", "text": "Would you recommend it?", "type": "yes_no"},
            ]}],
        })

        response = template_response(0, product, survey.questions)

        assert [a.question_id for a in response.answers] == ["q2"]
        assert response.answers[0].value in {"Yes", "No"}


class TestPriceAnchor:

    @pytest.mark.parametrize("price_range,expected", [
        ("$40-$80", 60.0),
        ("$1,200", 1200.0),
        ("around $25/mo", 25.0),
        ("free", DEFAULT_PRICE),
        (None, DEFAULT_PRICE),
    ])
    def test_price_anchor(self, price_range, expected):
        assert price_anchor(price_range) == expected
