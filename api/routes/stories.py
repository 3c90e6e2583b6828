"""
Stories API endpoints.

Story generation plus read access to the caller's stories. Every query runs
with the caller's bearer token so row-level security decides what is visible.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from api.dependencies import (
    build_story_generator,
    get_api_session,
    get_bearer_token,
    get_database,
    get_generation_service,
    storage_for,
)
from db.client import DatabaseClient
from schemas.api import (
    ErrorResponse,
    GenerateStoryRequest,
    GenerateStoryResponse,
    StoryListResponse,
)
from schemas.records import Story
from services.auth import AuthSession
from services.generation import GenerationService
from services.story_generation import StoryGenerationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stories"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@router.post(
    "/generate-story",
    response_model=GenerateStoryResponse,
    responses={code: {"model": ErrorResponse} for code in (400, 401, 404, 500)},
)
async def generate_story(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    database: DatabaseClient = Depends(get_database),
    generation: GenerationService = Depends(get_generation_service),
):
    """
    Write a story from the caller's characters and save it.

    Body: {genre, prompt_context, characters_used[], owner_id}.
    Header: Authorization: Bearer <token>.

    Returns {success, title}, or {error} with 400 (no characters), 401 (no
    token), 404 (no visible characters) or 500 (fetch, generation or save
    failure).
    """
    try:
        body = await request.json()
        logger.info("[StoryGen] Incoming request payload: %s", body)
        payload = GenerateStoryRequest.model_validate(body)

        if not payload.characters_used:
            logger.error("[StoryGen] No characters provided.")
            return _error(400, "No characters provided.")

        if not token:
            logger.error("[StoryGen] Missing or invalid token in request header")
            return _error(401, "Missing access token.")

        generator = build_story_generator(database, generation, token)
        result = await generator.generate(
            genre=payload.genre,
            prompt_context=payload.prompt_context,
            characters_used=payload.characters_used,
            owner_id=payload.owner_id,
        )
        return GenerateStoryResponse(success=True, title=result.title)

    except StoryGenerationError as e:
        return _error(e.status_code, e.message)
    except Exception:
        logger.exception("[StoryGen] Unexpected server error")
        return _error(500, "Unexpected error.")


@router.get("/stories", response_model=StoryListResponse)
async def list_stories(
    session: Optional[AuthSession] = Depends(get_api_session),
    database: DatabaseClient = Depends(get_database),
):
    """List the caller's stories, newest first."""
    if session is None:
        return _error(401, "Missing access token.")

    try:
        stories = await storage_for(database, session.access_token).list_stories(session.user_id)
    except APIError as e:
        logger.error("[Stories] Could not list stories: %s", e)
        return _error(500, "Could not load stories.")
    return StoryListResponse(stories=stories)


@router.get("/stories/{story_id}", response_model=Story)
async def get_story(
    story_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    database: DatabaseClient = Depends(get_database),
):
    """Get one story the caller can see."""
    if not token:
        return _error(401, "Missing access token.")

    try:
        story = await storage_for(database, token).get_story(story_id)
    except APIError as e:
        logger.error("[Stories] Could not load story %s: %s", story_id, e)
        return _error(500, "Could not load story.")
    if story is None:
        return _error(404, "Story not found.")
    return story
