"""
SurveyLens Backend — Persona API

POST /api/tests/{test_id}/personas/{persona_id}/chat: talk to a persona from
the cached analysis result.
"""

from fastapi import APIRouter, Depends, HTTPException

from surveylens.cache import ResultCache, get_result_cache
from surveylens.models import PersonaChatRequest, PersonaChatResponse
from surveylens.personas import chat_with_persona

router = APIRouter(prefix="/api/tests", tags=["personas"])


@router.post("/{test_id}/personas/{persona_id}/chat", response_model=PersonaChatResponse)
async def chat(
    test_id: str,
    persona_id: str,
    body: PersonaChatRequest,
    cache: ResultCache = Depends(get_result_cache),
) -> PersonaChatResponse:
    """
    Body: { "message": str, "conversation_history": [{"role", "content"}] }
    Returns: { "persona_id", "response", "warning" }

    404 if the test has no cached result or the persona is not in it.
    """
    result = cache.get(test_id)
    if result is None:
        raise HTTPException(status_code=404, detail="Results not found")

    persona = next((p for p in result.personas if p.id == persona_id), None)
    if persona is None:
        raise HTTPException(status_code=404, detail="Persona not found")

    reply, warning = await chat_with_persona(persona, body.message, body.conversation_history, test_id=test_id)
    return PersonaChatResponse(persona_id=persona_id, response=reply, warning=warning)
