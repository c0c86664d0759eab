"""
SurveyLens Backend — LLM Prompt Templates

All prompts are defined here. The analyst system prompt is injected in llm.py.
"""

import json


# -----------------------------------------------------------------------------
# 1. build_survey_prompt
# -----------------------------------------------------------------------------

SURVEY_PROMPT = """
# Role
You are the "Survey Designer" module for SurveyLens, a product validation tool. Given a product description and the user's validation goals, you design a market research survey.

You output a single JSON object. Nothing else: no markdown, no explanation, no text before or after the JSON.

# Structure

Create 4-6 sections: a screener, problem understanding, product concept, pricing, and (when goals require it) feature or messaging preference.

Question types you may use:
- "scale": 1-10 rating. Always set scale_min=1 and scale_max=10.
- "multiple_choice": single answer from "options".
- "yes_no": binary question.
- "text_short" / "text_long": open-ended.

Every survey MUST contain:
- exactly one "scale" question with role "purchase_intent" ("How likely are you to purchase ...?")
- exactly one question with role "price" asking what the respondent would pay (answer in dollars)
- exactly one "multiple_choice" question with role "benefit" listing the product's candidate benefits

Other questions have role null. Methodology names such as Van Westendorp, MaxDiff or Kano may inform the wording but the survey stays within the question types above.

# Output Format

{
  "sections": [
    {
      "id": "section-1",
      "title": "Screener",
      "description": "Qualify respondents",
      "questions": [
        {
          "id": "q1",
          "type": "multiple_choice",
          "text": "Question text",
          "options": ["Option 1", "Option 2"],
          "scale_min": 1,
          "scale_max": 10,
          "role": null
        }
      ]
    }
  ],
  "settings": {"estimated_time": 8}
}

# Rules

- Question ids are unique across the whole survey ("q1", "q2", ...).
- 10-20 questions in total.
- Questions must be specific to the product, not generic.
"""


def build_survey_prompt(product_info: dict, validation_goals: list[str]) -> list[dict]:
    """
    Build prompt to draft a survey for a product.

    Expected output schema: SurveyDraft

    Returns:
        [{"role": "user", "content": "..."}]
    """
    goals = "\n".join(f"- {g}" for g in validation_goals) or "- General product validation"
    content = (
        SURVEY_PROMPT
        + f"\n\n# Product\n{json.dumps(product_info, indent=2)}"
        + f"\n\n# Validation Goals\n{goals}"
    )
    return [{"role": "user", "content": content}]


# -----------------------------------------------------------------------------
# 2. build_persona_prompt
# -----------------------------------------------------------------------------

PERSONA_PROMPT = """
# Role
You are a market research expert who creates customer personas from survey data. Create a realistic, data-driven persona that represents one cluster of respondents. The persona should feel specific to the product and industry.

You output a single JSON object. Nothing else.

# Output Format

{
  "name": "First Last (realistic for the demographic)",
  "age": 34,
  "location": "City, State",
  "archetype": "2-4 word persona archetype",
  "demographics": {
    "income": "income bracket",
    "education": "education level",
    "occupation": "specific job title",
    "family_status": "family situation"
  },
  "psychographics": {
    "values": ["value1", "value2", "value3"],
    "lifestyle": ["lifestyle1", "lifestyle2"],
    "pain_points": ["pain1", "pain2", "pain3"],
    "goals": ["goal1", "goal2", "goal3"]
  },
  "key_quotes": [
    "Quote this persona would say about the product",
    "Quote about price or value"
  ],
  "behaviors": {
    "shopping_habits": "1-2 sentences",
    "brand_loyalty": "1 sentence",
    "influencers": "who influences their decisions",
    "decision_factors": ["factor1", "factor2", "factor3"]
  }
}

# Rules

- Keep "age" equal to the cluster's average age.
- Keep "demographics.income" equal to the cluster's most common income.
"""


def build_persona_prompt(product_info: dict, cluster_size: int, characteristics: dict) -> list[dict]:
    """
    Build prompt for one persona from cluster characteristics.

    Expected output schema: PersonaDraft
    """
    content = (
        PERSONA_PROMPT
        + f"\n\n# Product\n{json.dumps(product_info, indent=2)}"
        + f"\n\n# Cluster ({cluster_size} respondents)\n{json.dumps(characteristics, indent=2)}"
    )
    return [{"role": "user", "content": content}]


def build_persona_chat_prompt(persona: dict, product_info: dict) -> str:
    """System prompt used when chatting with a persona. Returned as a plain string."""
    psycho = persona.get("psychographics", {})
    demo = persona.get("demographics", {})
    quotes = "\n".join(f"{i + 1}. {q}" for i, q in enumerate(persona.get("key_quotes", [])))
    return (
        f"You are {persona['name']}, a {persona['age']}-year-old "
        f"{demo.get('occupation') or 'consumer'} from {persona['location']}.\n\n"
        f"Values: {', '.join(psycho.get('values', []))}\n"
        f"Pain points: {', '.join(psycho.get('pain_points', []))}\n"
        f"Goals: {', '.join(psycho.get('goals', []))}\n\n"
        f"Your voice:\n{quotes}\n\n"
        f"You were surveyed about \"{product_info.get('name', '')}\" - {product_info.get('description', '')}\n"
        f"Your purchase intent: {persona['purchase_intent']:.0f}%\n"
        f"Your acceptable price point: ${persona['price_point']:.0f}\n\n"
        f"Stay in character. You represent {persona['sample_size']} survey respondents with similar "
        "characteristics and can only speak for yourself."
    )


def build_persona_chat_messages(system_prompt: str, history: list[dict], message: str) -> list[dict]:
    """System prompt, prior turns in order, then the new user message."""
    turns = [{"role": m["role"], "content": m["content"]} for m in history]
    return [{"role": "system", "content": system_prompt}, *turns, {"role": "user", "content": message}]


# -----------------------------------------------------------------------------
# 3. build_insights_prompt
# -----------------------------------------------------------------------------

INSIGHTS_PROMPT = """
# Role
You are a marketing analyst. Generate 3-5 actionable insights about the market research results below.

Return ONLY a JSON object:

{
  "insights": [
    {
      "id": "unique-slug",
      "type": "opportunity | risk | strategy | finding",
      "category": "market | pricing | positioning | segmentation | channel | product",
      "priority": "high | medium | low",
      "title": "Clear title",
      "summary": "One sentence summary",
      "evidence": {"data_points": ["stat1", "stat2"], "sample_size": 500, "confidence": 85}
    }
  ]
}

# Rules

- Every data point must come from the results provided. Do not invent numbers.
- Prefer segment-level findings (patterns) over restating the overall average.
"""


def build_insights_prompt(
    product_info: dict,
    overview: dict,
    patterns: list[dict],
    question_insights: list[str],
) -> list[dict]:
    """
    Build prompt for market-level insights.

    Expected output schema: MarketInsightList
    """
    parts = [INSIGHTS_PROMPT]
    parts.append(f"\n\n# Product\n{json.dumps(product_info, indent=2)}")
    parts.append(f"\n\n# Overview\n{json.dumps(overview, indent=2)}")
    if patterns:
        parts.append(f"\n\n# Segment Patterns\n{json.dumps(patterns, indent=2)}")
    if question_insights:
        parts.append("\n\n# Question-Level Findings\n" + "\n".join(f"- {i}" for i in question_insights))
    return [{"role": "user", "content": "".join(parts)}]


# -----------------------------------------------------------------------------
# 4. build_executive_summary_prompt
# -----------------------------------------------------------------------------

EXECUTIVE_SUMMARY_PROMPT = """
# Role
You write C-level executive summaries of product validation research for a launch decision.

Return ONLY a JSON object:

{
  "bottom_line": "One sentence launch recommendation",
  "launch_status": "GO | CAUTION | NO-GO",
  "key_finding": "The single most important finding",
  "strategic_implications": ["...", "..."],
  "recommended_actions": ["...", "..."],
  "risks": ["...", "..."],
  "confidence": 0-100
}

# Rules

- GO when purchase intent is 70 or above, CAUTION from 50 to 70, NO-GO below 50, unless the data gives a strong reason otherwise.
- Use only numbers from the data below.
"""


def build_executive_summary_prompt(
    product_info: dict,
    overview: dict,
    insights: list[dict],
    recommendations: list[dict],
) -> list[dict]:
    """
    Build prompt for the executive summary.

    Expected output schema: ExecutiveSummary
    """
    content = (
        EXECUTIVE_SUMMARY_PROMPT
        + f"\n\n# Product\n{json.dumps(product_info, indent=2)}"
        + f"\n\n# Overview\n{json.dumps(overview, indent=2)}"
        + f"\n\n# Insights\n{json.dumps(insights, indent=2)}"
        + f"\n\n# Recommendations\n{json.dumps(recommendations, indent=2)}"
    )
    return [{"role": "user", "content": content}]


# -----------------------------------------------------------------------------
# 5. build_fix_json_prompt
# -----------------------------------------------------------------------------


def build_fix_json_prompt(
    messages: list[dict],
    broken_output: str,
    error: str,
    expected_schema: dict,
) -> list[dict]:
    """
    Build the retry messages after malformed LLM JSON output.

    The fix instructions are appended to the last user message so the LLM
    keeps the original context. Does not mutate the input.
    """
    fix_instruction = (
        "\n\n---\n\n"
        f"Your previous response had a JSON error. Here is what you returned:\n\n"
        f"```\n{broken_output}\n```\n\n"
        f"The error was: {error}\n\n"
        "Please output ONLY valid JSON matching this schema (no markdown, no explanation):\n"
        f"{json.dumps(expected_schema, indent=2)}"
    )
    retry_messages = [dict(m) for m in messages]
    if retry_messages and retry_messages[-1].get("role") == "user":
        retry_messages[-1]["content"] += fix_instruction
    else:
        retry_messages.append({"role": "user", "content": fix_instruction})
    return retry_messages


# -----------------------------------------------------------------------------
# 6. build_synthetic_responses_prompt
# -----------------------------------------------------------------------------

SYNTHETIC_RESPONSES_PROMPT = """
# Role
You simulate survey respondents for SurveyLens, a product validation tool. Each respondent is a distinct, realistic consumer who answers every question of the survey below the way that person would.

You output a single JSON object. Nothing else: no markdown, no explanation.

# Output Format

{
  "respondents": [
    {
      "demographics": {
        "age": "25-34",
        "gender": "female",
        "income": "50k-75k",
        "location": "Austin"
      },
      "answers": {
        "q1": 7,
        "q2": "Option from the question's list",
        "q3": "$45"
      }
    }
  ]
}

# Rules

- "age" is one of: 18-24, 25-34, 35-44, 45-54, 55-64, 65+.
- "gender" is one of: female, male, non-binary.
- "income" is one of: <25k, 25k-50k, 50k-75k, 75k-100k, 100k+.
- "location" is a US city name.
- "answers" maps question id to the answer. Scale answers are integers within the question's range, multiple choice answers are copied exactly from "options", yes/no answers are "Yes" or "No", price answers are dollar amounts.
- Vary demographics and enthusiasm across respondents; not everyone likes the product.
- Keep each respondent internally consistent: someone unlikely to buy names a low price.
"""


def build_synthetic_responses_prompt(product_info: dict, questions: list[dict], count: int) -> list[dict]:
    """
    Build prompt for one batch of simulated respondents.

    Expected output schema: SyntheticRespondentBatch
    """
    content = (
        SYNTHETIC_RESPONSES_PROMPT
        + f"\n\n# Product\n{json.dumps(product_info, indent=2)}"
        + f"\n\n# Survey Questions\n{json.dumps(questions, indent=2)}"
        + f"\n\n# Task\nGenerate exactly {count} respondents."
    )
    return [{"role": "user", "content": content}]
