"""
SurveyLens Backend — Shared Test Fixtures

Provides mocked LLM responses, survey data builders and an HTTP client
for deterministic, fast unit tests.
"""

import json
import os
import sys
from dataclasses import dataclass
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

# Ensure surveylens package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# -----------------------------------------------------------------------------
# Environment Setup (before importing surveylens modules)
# -----------------------------------------------------------------------------

os.environ.setdefault("GROQ_API_KEY", "test-groq-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")
os.environ.setdefault("RATE_LIMIT", "1000/minute")


# -----------------------------------------------------------------------------
# Mock Response Classes
# -----------------------------------------------------------------------------


@dataclass
class MockLLMMessage:
    """Mock message from LLM response."""
    content: str
    reasoning_content: Optional[str] = None


@dataclass
class MockLLMChoice:
    """Mock choice from LLM response."""
    message: MockLLMMessage


@dataclass
class MockLLMUsage:
    """Mock usage stats from LLM response."""
    total_tokens: int = 100
    prompt_tokens: int = 50
    completion_tokens: int = 50


@dataclass
class MockLLMResponse:
    """Mock LLM completion response."""
    choices: list[MockLLMChoice]
    usage: MockLLMUsage = None

    def __post_init__(self):
        if self.usage is None:
            self.usage = MockLLMUsage()


def create_mock_llm_response(content: str) -> MockLLMResponse:
    """Create a mock LLM response with given content."""
    return MockLLMResponse(
        choices=[MockLLMChoice(message=MockLLMMessage(content=content))]
    )


# -----------------------------------------------------------------------------
# Survey Data Builders
# -----------------------------------------------------------------------------


def make_response(response_id: str, answers: dict, **demographics) -> dict:
    """Build a SurveyResponse payload: answers maps question id -> value."""
    return {
        "id": response_id,
        "answers": [{"question_id": qid, "value": value} for qid, value in answers.items()],
        "demographics": demographics,
    }


def scale_question(qid: str = "q1", role: str | None = None, text: str = "How likely are you to buy?") -> dict:
    return {"id": qid, "text": text, "type": "scale", "scale_min": 1, "scale_max": 10, "role": role}


def mc_question(qid: str, options: list[str], role: str | None = None) -> dict:
    return {"id": qid, "text": "Which do you prefer?", "type": "multiple_choice", "options": options, "role": role}


@pytest.fixture
def product_info() -> dict:
    return {
        "name": "BrewBuddy",
        "description": "Smart cold brew maker with app-controlled steeping.",
        "industry": "Kitchen appliances",
        "target_audience": "Coffee lovers aged 25-44",
        "price_range": "$40-$80",
        "key_features": ["Saves time", "Consistent taste", "App control"],
        "competitors": ["OXO Cold Brew"],
    }


@pytest.fixture
def survey_payload() -> dict:
    """Three-question survey: purchase intent, price, benefit."""
    return {
        "sections": [
            {
                "id": "section-concept",
                "title": "Concept",
                "questions": [
                    scale_question("q1", role="purchase_intent"),
                    {"id": "q2", "text": "What would you pay?", "type": "text_short", "role": "price"},
                    mc_question("q3", ["Saves time", "Consistent taste", "App control"], role="benefit"),
                ],
            }
        ],
    }


@pytest.fixture
def responses_payload() -> list[dict]:
    """
    40 responses. Respondents in Austin answer 9, everyone else 5, so Austin
    stands out as a segment. Each (age, gender, income) cluster has 10 members.
    """
    responses = []
    for i in range(40):
        austin = i < 10
        responses.append(make_response(
            f"r{i}",
            {
                "q1": 9 if austin else 5 + (i % 2),
                "q2": "$50" if i % 2 else 50,
                "q3": "Saves time" if i % 4 else "App control",
            },
            age="25-34" if i % 2 else "35-44",
            gender="female" if (i // 2) % 2 else "male",
            income="50k-75k",
            location="Austin" if austin else "Denver",
        ))
    return responses


# -----------------------------------------------------------------------------
# LLM Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_llm(monkeypatch):
    """
    Mock litellm.acompletion to return predictable responses.

    Returns the mock function so tests can customize responses.
    """
    async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
        return create_mock_llm_response('{"status": "ok"}')

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


@pytest.fixture
def mock_llm_with_response(monkeypatch):
    """
    Factory fixture to mock LLM with a specific response.

    Usage:
        def test_example(mock_llm_with_response):
            mock = mock_llm_with_response({"key": "value"})
    """
    def _create_mock(response_data):
        async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
            return create_mock_llm_response(json.dumps(response_data))

        mock = AsyncMock(side_effect=mock_acompletion)
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_failure(monkeypatch):
    """Mock LLM to simulate all providers failing."""
    async def mock_acompletion(*args, **kwargs):
        raise Exception("Rate limit exceeded")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


PERSONA_RESPONSE = {
    "name": "Maya Chen",
    "age": 30,
    "location": "Austin, TX",
    "archetype": "Busy Coffee Enthusiast",
    "key_quotes": ["I'd pay for consistency."],
}

INSIGHTS_RESPONSE = {
    "insights": [
        {"id": "austin-opportunity", "type": "opportunity", "category": "segmentation",
         "priority": "high", "title": "Austin Loves It", "summary": "Austin is 41% above average."},
    ],
}

SUMMARY_RESPONSE = {
    "bottom_line": "Launch in Austin first.",
    "launch_status": "CAUTION",
    "key_finding": "Austin over-indexes by 41%",
    "confidence": 75,
}


@pytest.fixture
def mock_llm_by_prompt(monkeypatch):
    """Mock LLM that answers persona, insight and summary prompts with matching JSON."""
    async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
        prompt = kwargs["messages"][-1]["content"]
        if "customer personas" in prompt:
            return create_mock_llm_response(json.dumps(PERSONA_RESPONSE))
        if "actionable insights" in prompt:
            return create_mock_llm_response(json.dumps(INSIGHTS_RESPONSE))
        return create_mock_llm_response(json.dumps(SUMMARY_RESPONSE))

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


# -----------------------------------------------------------------------------
# HTTP Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def result_cache():
    """Fresh cache per test, injected in place of the process-wide one."""
    from surveylens.cache import InMemoryResultCache
    return InMemoryResultCache(default_ttl=60)


@pytest.fixture
async def client(result_cache):
    """Async HTTP client for testing FastAPI endpoints."""
    from surveylens.cache import get_result_cache
    from surveylens.main import app
    app.dependency_overrides[get_result_cache] = lambda: result_cache
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# -----------------------------------------------------------------------------
# LLM Module Reset Fixture
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_llm_state():
    """Reset LLM rate-limit cooldowns before and after each test."""
    import surveylens.llm as llm_module
    llm_module._rate_limited_until.clear()
    yield
    llm_module._rate_limited_until.clear()
