"""
SurveyLens Backend — Prompts Module Unit Tests

Tests for prompts.py: message format, embedded data, fix-JSON retry messages.
These tests verify prompt builders without making LLM calls.
"""

import json

from surveylens.prompts import (
    EXECUTIVE_SUMMARY_PROMPT,
    SURVEY_PROMPT,
    build_executive_summary_prompt,
    build_fix_json_prompt,
    build_insights_prompt,
    build_persona_chat_messages,
    build_persona_chat_prompt,
    build_persona_prompt,
    build_survey_prompt,
    build_synthetic_responses_prompt,
)


# -----------------------------------------------------------------------------
# Message Format Validation Helpers
# -----------------------------------------------------------------------------


def assert_valid_message_list(messages: list[dict]) -> None:
    """Assert that messages is a valid list of message dicts."""
    assert isinstance(messages, list), "Messages should be a list"
    assert len(messages) > 0, "Messages should not be empty"

    for msg in messages:
        assert msg["role"] in ["system", "user", "assistant"], f"Invalid role: {msg['role']}"
        assert isinstance(msg["content"], str), "Content should be a string"
        assert len(msg["content"]) > 0, "Content should not be empty"


def assert_prompt_contains(messages: list[dict], *keywords: str) -> None:
    """Assert that the prompt content contains all specified keywords."""
    content = " ".join(msg["content"] for msg in messages)
    for keyword in keywords:
        assert keyword.lower() in content.lower(), f"Prompt should contain '{keyword}'"


PRODUCT = {"name": "BrewBuddy", "description": "Smart cold brew maker"}
OVERVIEW = {"avg_purchase_intent": 72.5, "optimal_price": 49.0, "top_benefit": "Saves time", "sample_size": 120}


class TestBuildSurveyPrompt:

    def test_message_format(self):
        messages = build_survey_prompt(PRODUCT, ["Validate pricing"])
        assert_valid_message_list(messages)
        assert messages[0]["content"].startswith(SURVEY_PROMPT)

    def test_includes_product_and_goals(self):
        messages = build_survey_prompt(PRODUCT, ["Validate pricing", "Test messaging"])
        assert_prompt_contains(messages, "BrewBuddy", "- Validate pricing", "- Test messaging", "purchase_intent")

    def test_default_goal(self):
        messages = build_survey_prompt(PRODUCT, [])
        assert_prompt_contains(messages, "General product validation")


class TestBuildPersonaPrompt:

    def test_includes_cluster(self):
        characteristics = {"avg_age": 30, "income": "50k-75k", "avg_purchase_intent": 80.0}
        messages = build_persona_prompt(PRODUCT, 12, characteristics)
        assert_valid_message_list(messages)
        assert_prompt_contains(messages, "Cluster (12 respondents)", '"income": "50k-75k"', "key_quotes")


class TestBuildPersonaChatPrompt:

    def test_renders_persona(self):
        persona = {
            "name": "Maya Chen",
            "age": 30,
            "location": "Austin",
            "demographics": {"occupation": "Designer"},
            "psychographics": {"values": ["Quality"], "pain_points": ["Time"], "goals": ["Calm mornings"]},
            "key_quotes": ["I love cold brew."],
            "purchase_intent": 81.4,
            "price_point": 45.0,
            "sample_size": 12,
        }
        prompt = build_persona_chat_prompt(persona, PRODUCT)

        assert prompt.startswith("You are Maya Chen, a 30-year-old Designer from Austin.")
        assert "Your purchase intent: 81%" in prompt
        assert "Your acceptable price point: $45" in prompt
        assert "1. I love cold brew." in prompt
        assert "You represent 12 survey respondents" in prompt

    def test_chat_messages_order(self):
        history = [{"role": "user", "content": "Hi"}, {"role": "assistant", "content": "Hello!"}]
        messages = build_persona_chat_messages("You are Maya Chen.", history, "Would you buy it?")

        assert_valid_message_list(messages)
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        assert messages[0]["content"] == "You are Maya Chen."
        assert messages[-1]["content"] == "Would you buy it?"


class TestBuildInsightsPrompt:

    def test_optional_sections(self):
        messages = build_insights_prompt(PRODUCT, OVERVIEW, [], [])
        assert "# Segment Patterns" not in messages[0]["content"]
        assert "# Question-Level Findings" not in messages[0]["content"]

    def test_includes_patterns_and_findings(self):
        patterns = [{"id": "geo-location-austin", "lift": 41.2}]
        messages = build_insights_prompt(PRODUCT, OVERVIEW, patterns, ["Strong consensus with low variance (σ=0.43)"])
        assert_valid_message_list(messages)
        assert_prompt_contains(messages, "geo-location-austin", "- Strong consensus")


class TestBuildExecutiveSummaryPrompt:

    def test_embeds_results(self):
        messages = build_executive_summary_prompt(PRODUCT, OVERVIEW, [{"id": "i1"}], [{"id": "rec-launch"}])
        assert_valid_message_list(messages)
        assert messages[0]["content"].startswith(EXECUTIVE_SUMMARY_PROMPT)
        assert_prompt_contains(messages, "72.5", "rec-launch", "GO | CAUTION | NO-GO")


class TestBuildFixJsonPrompt:

    def test_appends_to_last_user_message(self):
        messages = [{"role": "user", "content": "Original task"}]
        schema = {"type": "object", "properties": {"a": {"type": "string"}}}

        retry = build_fix_json_prompt(messages, "{bad", "Expecting value", schema)

        assert len(retry) == 1
        assert retry[0]["content"].startswith("Original task")
        assert "{bad" in retry[0]["content"]
        assert "Expecting value" in retry[0]["content"]
        assert json.dumps(schema, indent=2) in retry[0]["content"]

    def test_does_not_mutate_input(self):
        messages = [{"role": "user", "content": "Original task"}]
        build_fix_json_prompt(messages, "{bad", "err", {})
        assert messages == [{"role": "user", "content": "Original task"}]

    def test_adds_user_message_after_assistant(self):
        messages = [{"role": "user", "content": "Task"}, {"role": "assistant", "content": "{bad"}]
        retry = build_fix_json_prompt(messages, "{bad", "err", {})

        assert len(retry) == 3
        assert retry[-1]["role"] == "user"
        assert_valid_message_list(retry)


class TestBuildSyntheticResponsesPrompt:

    def test_includes_questions_and_count(self):
        questions = [{"id": "q1", "type": "scale", "text": "How likely are you to buy?", "scale_min": 1, "scale_max": 10}]
        messages = build_synthetic_responses_prompt(PRODUCT, questions, 25)

        assert_valid_message_list(messages)
        assert_prompt_contains(messages, "BrewBuddy", "How likely are you to buy?", "exactly 25 respondents")
        assert '"respondents"' in messages[0]["content"]
