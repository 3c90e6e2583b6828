"""
Characters API endpoints.

Listing and deletion for the caller's characters. Creation happens through
the wizard pages, after the user accepts an analysis draft.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from postgrest.exceptions import APIError

from api.dependencies import get_api_session, get_database, storage_for
from db.client import DatabaseClient
from schemas.api import CharacterListResponse, DeleteCharacterResponse, ErrorResponse
from services.auth import AuthSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/characters", tags=["characters"])


@router.get("", response_model=CharacterListResponse)
async def list_characters(
    session: Optional[AuthSession] = Depends(get_api_session),
    database: DatabaseClient = Depends(get_database),
):
    """List the caller's characters, newest first."""
    if session is None:
        return JSONResponse(status_code=401, content={"error": "Missing access token."})

    try:
        characters = await storage_for(database, session.access_token).list_characters(session.user_id)
    except APIError as e:
        logger.error("[Characters] Could not list characters: %s", e)
        return JSONResponse(status_code=500, content={"error": "Could not load characters."})
    return CharacterListResponse(characters=characters)


@router.delete(
    "/{character_id}",
    response_model=DeleteCharacterResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def delete_character(
    character_id: str,
    session: Optional[AuthSession] = Depends(get_api_session),
    database: DatabaseClient = Depends(get_database),
):
    """Delete one of the caller's characters. There is no undo."""
    if session is None:
        return JSONResponse(status_code=401, content={"error": "Missing access token."})

    try:
        await storage_for(database, session.access_token).delete_character(
            session.user_id, character_id
        )
    except APIError as e:
        logger.error("[Characters] Could not delete %s: %s", character_id, e)
        return JSONResponse(status_code=500, content={"error": "Could not delete character."})

    logger.info("[Characters] Deleted %s for %s", character_id, session.user_id)
    return DeleteCharacterResponse(success=True)
