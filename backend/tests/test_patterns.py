"""
SurveyLens Backend — Segment Pattern Detector Tests
"""

import pytest

from surveylens.models import Question, SurveyDraft, SurveyResponse
from surveylens.patterns import detect_patterns, impact_for_lift
from tests.conftest import make_response, scale_question


@pytest.fixture
def survey(survey_payload) -> SurveyDraft:
    return SurveyDraft.model_validate(survey_payload)


@pytest.fixture
def responses(responses_payload) -> list[SurveyResponse]:
    return [SurveyResponse.model_validate(r) for r in responses_payload]


class TestImpactForLift:

    @pytest.mark.parametrize("lift,impact", [
        (41, "critical"),
        (40, "high"),
        (25.5, "high"),
        (25, "medium"),
        (16, "medium"),
        (15, "low"),
        (-45, "critical"),
        (-12, "low"),
    ])
    def test_thresholds(self, lift, impact):
        assert impact_for_lift(lift) == impact


class TestDetectPatterns:

    def test_finds_geographic_segments(self, survey, responses):
        patterns = detect_patterns(survey.questions, responses)

        assert [p.id for p in patterns] == ["geo-location-austin", "geo-location-denver"]

        austin = patterns[0]
        assert austin.type == "geographic"
        assert austin.title == "Austin Consumers"
        assert austin.impact == "critical"
        assert austin.lift == 41.2
        assert austin.sample_size == 10
        assert austin.p_value < 0.05
        assert austin.segments[0].purchase_intent == 90.0

        denver = patterns[1]
        assert denver.lift < 0
        assert denver.impact == "low"
        assert "lower" in denver.description

    def test_small_lifts_are_ignored(self, survey, responses):
        ids = {p.id for p in detect_patterns(survey.questions, responses)}
        assert not any(i.startswith("demo-age") or i.startswith("demo-gender") for i in ids)

    def test_requires_purchase_intent_question(self, responses):
        questions = [Question.model_validate(scale_question("q1"))]
        assert detect_patterns(questions, responses) == []

    def test_requires_minimum_sample(self, survey):
        responses = [
            SurveyResponse.model_validate(make_response(f"r{i}", {"q1": 9 if i < 5 else 2}, location="Austin" if i < 5 else "Denver"))
            for i in range(9)
        ]
        assert detect_patterns(survey.questions, responses) == []

    def test_demographic_pattern_title(self, survey):
        responses = [
            SurveyResponse.model_validate(make_response(
                f"r{i}",
                {"q1": (9 if i % 2 else 8) if i < 12 else (4 if i % 2 else 5)},
                gender="female" if i < 12 else "male",
            ))
            for i in range(24)
        ]
        patterns = detect_patterns(survey.questions, responses)

        female = next(p for p in patterns if p.id == "demo-gender-female")
        assert female.type == "demographic"
        assert female.title == "Gender female"
