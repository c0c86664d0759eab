"""
SurveyLens Backend — Persona Generation

Clusters respondents by (age, gender, income), summarizes each cluster and
asks the LLM for a persona. A template persona stands in for any cluster the
LLM cannot describe.
"""

import asyncio
import re
import zlib
from collections import Counter
from typing import Optional

from surveylens import stats
from surveylens.analyzer import UNKNOWN_VALUE, find_question, parse_price, purchase_intent_scores
from surveylens.config import generate_error_code, log
from surveylens.llm import LLMError, LLMValidationError, call_llm, call_llm_structured
from surveylens.models import (
    Persona,
    PersonaBehaviors,
    PersonaChatMessage,
    PersonaDemographics,
    PersonaDraft,
    PersonaPsychographics,
    ProductInfo,
    Question,
    SurveyResponse,
)
from surveylens.prompts import build_persona_chat_messages, build_persona_chat_prompt, build_persona_prompt

MIN_CLUSTER_SIZE = 5
MAX_PERSONAS = 5
DEFAULT_AGE = 35
DEFAULT_PRICE_POINT = 50.0

ARCHETYPES = [
    "Practical Value Seeker",
    "Early Adopter",
    "Quality-Focused Professional",
    "Budget-Conscious Planner",
    "Convenience Maximizer",
]

_FIRST_NAMES = {
    "female": ["Sarah", "Maya", "Emily", "Priya", "Grace"],
    "male": ["James", "Daniel", "Marcus", "Arjun", "Ethan"],
    "other": ["Alex", "Jordan", "Taylor", "Casey", "Riley"],
}
_LAST_NAMES = ["Chen", "Martinez", "Johnson", "Patel", "Kim", "Nguyen", "Brooks", "Reyes"]

_AGE_RE = re.compile(r"\d+")


# -----------------------------------------------------------------------------
# Clustering
# -----------------------------------------------------------------------------


def cluster_responses(responses: list[SurveyResponse]) -> list[tuple[str, list[SurveyResponse]]]:
    """
    Group responses by (age, gender, income).

    Clusters below MIN_CLUSTER_SIZE are dropped; the rest are returned
    largest first, capped at MAX_PERSONAS.
    """
    clusters: dict[str, list[SurveyResponse]] = {}
    for response in responses:
        demo = response.demographics
        key = "-".join(
            value or UNKNOWN_VALUE for value in (demo.age, demo.gender, demo.income)
        )
        clusters.setdefault(key, []).append(response)

    kept = [(key, members) for key, members in clusters.items() if len(members) >= MIN_CLUSTER_SIZE]
    kept.sort(key=lambda item: len(item[1]), reverse=True)
    return kept[:MAX_PERSONAS]


def cluster_characteristics(
    members: list[SurveyResponse],
    questions: list[Question],
) -> dict:
    """Summary of a cluster used both in the prompt and by the template persona."""
    ages = [a for a in (average_age(m.demographics.age) for m in members) if a is not None]

    intent_q = find_question(questions, "purchase_intent")
    scores = purchase_intent_scores(intent_q, members) if intent_q else {}

    price_q = find_question(questions, "price")
    prices: list[float] = []
    if price_q is not None:
        for member in members:
            answer = member.answer_for(price_q.id)
            price = parse_price(answer.value) if answer is not None else None
            if price:
                prices.append(price)

    return {
        "avg_age": round(stats.mean(ages)) if ages else DEFAULT_AGE,
        "gender": _most_common(m.demographics.gender for m in members),
        "income": _most_common(m.demographics.income for m in members),
        "location": _most_common(m.demographics.location for m in members),
        "avg_purchase_intent": round(stats.mean(list(scores.values())), 1) if scores else 0.0,
        "avg_price_point": round(stats.mean(prices), 2) if prices else DEFAULT_PRICE_POINT,
    }


def average_age(bracket: Optional[str]) -> Optional[float]:
    """'25-34' -> 29.5, '65+' -> 65, '41' -> 41. None when there is no number."""
    if not bracket:
        return None
    numbers = [int(n) for n in _AGE_RE.findall(bracket)]
    if not numbers:
        return None
    return sum(numbers[:2]) / len(numbers[:2])


def _most_common(values) -> str:
    counts = Counter(v for v in values if v)
    if not counts:
        return UNKNOWN_VALUE
    return counts.most_common(1)[0][0]


# -----------------------------------------------------------------------------
# Generation
# -----------------------------------------------------------------------------


async def generate_personas(
    product_info: ProductInfo,
    questions: list[Question],
    responses: list[SurveyResponse],
    test_id: str | None = None,
) -> tuple[list[Persona], list[str]]:
    """
    Build one persona per cluster, concurrently.

    Returns:
        (personas, warnings). A warning is added for each cluster that fell
        back to a template persona.
    """
    clusters = cluster_responses(responses)
    if not clusters:
        log("INFO", "no persona clusters large enough", test_id=test_id, responses=len(responses))
        return [], []

    results = await asyncio.gather(*(
        _generate_one(index, key, members, product_info, questions, test_id)
        for index, (key, members) in enumerate(clusters)
    ))

    personas = [persona for persona, _ in results]
    warnings = [warning for _, warning in results if warning]
    log(
        "INFO",
        "personas generated",
        test_id=test_id,
        personas=len(personas),
        template_personas=len(warnings),
    )
    return personas, warnings


async def _generate_one(
    index: int,
    cluster_key: str,
    members: list[SurveyResponse],
    product_info: ProductInfo,
    questions: list[Question],
    test_id: str | None,
) -> tuple[Persona, Optional[str]]:
    characteristics = cluster_characteristics(members, questions)
    product = product_info.model_dump()
    messages = build_persona_prompt(product, len(members), characteristics)

    try:
        draft = await call_llm_structured(messages, PersonaDraft, test_id=test_id)
        return _finalize(index, draft, characteristics, len(members), product, "ai"), None
    except (LLMError, LLMValidationError) as e:
        code = generate_error_code()
        log(
            "ERROR",
            "persona generation failed, using template",
            test_id=test_id,
            cluster=cluster_key,
            error=str(e),
            error_code=code,
        )
        draft = template_persona(index, cluster_key, characteristics, product_info)
        warning = f"Persona for cluster {cluster_key} used a template (ref {code})"
        return _finalize(index, draft, characteristics, len(members), product, "template"), warning


def _finalize(
    index: int,
    draft: PersonaDraft,
    characteristics: dict,
    size: int,
    product: dict,
    generated_by: str,
) -> Persona:
    data = draft.model_dump()
    data.update(
        id=f"persona-{index + 1}",
        purchase_intent=characteristics["avg_purchase_intent"],
        price_point=characteristics["avg_price_point"],
        sample_size=size,
        generated_by=generated_by,
    )
    data["system_prompt"] = build_persona_chat_prompt(data, product)
    return Persona(**data)


def template_persona(
    index: int,
    cluster_key: str,
    characteristics: dict,
    product_info: ProductInfo,
) -> PersonaDraft:
    """Deterministic persona built from cluster characteristics alone."""
    seed = zlib.crc32(cluster_key.encode())
    gender = characteristics["gender"].lower()
    first_names = _FIRST_NAMES.get(gender, _FIRST_NAMES["other"])
    name = f"{first_names[seed % len(first_names)]} {_LAST_NAMES[seed % len(_LAST_NAMES)]}"

    location = characteristics["location"]
    if location == UNKNOWN_VALUE:
        location = "United States"

    intent = characteristics["avg_purchase_intent"]
    price = characteristics["avg_price_point"]
    return PersonaDraft(
        name=name,
        age=characteristics["avg_age"],
        location=location,
        archetype=ARCHETYPES[index % len(ARCHETYPES)],
        demographics=PersonaDemographics(
            income=characteristics["income"],
            education="Bachelor's degree",
            occupation="Professional",
            family_status="Not specified",
        ),
        psychographics=PersonaPsychographics(
            values=["Quality", "Value for money", "Convenience"],
            lifestyle=["Busy schedule", "Researches before buying"],
            pain_points=[f"Finding a reliable {product_info.industry or 'product'} option", "Overpaying"],
            goals=["Save time", "Make confident purchases"],
        ),
        key_quotes=[
            f"{product_info.name} sounds {'promising' if intent >= 50 else 'interesting, but I need convincing'}.",
            f"I'd expect to pay around ${price:.0f}.",
        ],
        behaviors=PersonaBehaviors(
            shopping_habits="Compares options online before purchasing.",
            brand_loyalty="Moderate; switches for clear value.",
            influencers="Online reviews and friends",
            decision_factors=["Price", "Reviews", "Features"],
        ),
    )


# -----------------------------------------------------------------------------
# Chat
# -----------------------------------------------------------------------------

MAX_CHAT_HISTORY = 20

CHAT_FALLBACK_REPLY = (
    "I appreciate the question! Speaking for people like me, the product has potential, "
    "but I'd need to know more about the price and how it fits my routine."
)


async def chat_with_persona(
    persona: Persona,
    message: str,
    history: list[PersonaChatMessage],
    test_id: str | None = None,
) -> tuple[str, Optional[str]]:
    """
    Answer a message in the persona's voice.

    Only the most recent MAX_CHAT_HISTORY turns are sent. When no provider
    answers, a canned in-character reply is returned with a warning.
    """
    recent = [m.model_dump() for m in history[-MAX_CHAT_HISTORY:]]
    messages = build_persona_chat_messages(persona.system_prompt, recent, message)
    try:
        reply = await call_llm(messages, test_id=test_id)
    except LLMError as e:
        code = generate_error_code()
        log("ERROR", "persona chat failed", test_id=test_id, persona_id=persona.id, error=str(e), error_code=code)
        return CHAT_FALLBACK_REPLY, f"Persona chat unavailable; returned a canned reply (ref {code})"

    log("INFO", "persona chat reply", test_id=test_id, persona_id=persona.id, history=len(recent))
    return reply.strip(), None
