"""
Character analysis endpoint.

Drafts an AI analysis and tagline from a character's photos, tags and note.
Nothing is persisted here; the wizard saves the character once the user
accepts the draft.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies import get_generation_service
from schemas.api import CharacterAnalyzeRequest, CharacterAnalyzeResponse
from services.generation import GenerationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["characters"])


ANALYSIS_APOLOGY = "Sorry, something went wrong generating your character analysis."


@router.post("/character-analyze", response_model=CharacterAnalyzeResponse)
async def analyze_character(
    request: Request,
    generation: GenerationService = Depends(get_generation_service),
):
    """
    Generate a cinematic analysis and a tagline for a draft character.

    Body: {name, photoUrls[], tags[], description}. Up to four photos are
    shown to the model. Any failure returns 500 with an apology as the
    analysis and an empty tagline.
    """
    try:
        payload = CharacterAnalyzeRequest.model_validate(await request.json())

        draft = await run_in_threadpool(
            generation.analyze_character,
            payload.name,
            payload.photo_urls,
            payload.tags,
            payload.description,
        )
        return CharacterAnalyzeResponse(analysis=draft.analysis, tagline=draft.tagline)

    except Exception:
        logger.exception("[Analysis] Character analysis error")
        return JSONResponse(
            status_code=500,
            content={"analysis": ANALYSIS_APOLOGY, "tagline": ""},
        )
