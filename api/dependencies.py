"""
Dependency injection for FastAPI routes.

Provides shared dependencies like the database client factory, service
instances, the bearer token of API calls and the cookie session of pages.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request, Response

from config.settings import (
    ACCESS_TOKEN_COOKIE,
    REFRESH_TOKEN_COOKIE,
    REFRESH_TOKEN_MAX_AGE,
    get_settings,
)
from db.client import DatabaseClient
from services.auth import AuthService, AuthSession
from services.generation import GenerationService
from services.photo_storage import PhotoStorage
from services.storage import StorageService
from services.story_generation import StoryGenerator
from services.wizard import CharacterWizard


@lru_cache()
def get_database() -> DatabaseClient:
    """Get the Supabase client factory (cached)."""
    return DatabaseClient()


@lru_cache()
def get_generation_service() -> GenerationService:
    """Get generation service instance (cached)."""
    return GenerationService()


def get_auth_service(database: DatabaseClient = Depends(get_database)) -> AuthService:
    return AuthService(database)


def get_bearer_token(request: Request) -> Optional[str]:
    """Access token from an `Authorization: Bearer <token>` header, if any."""
    header = request.headers.get("authorization") or ""
    token = header.replace("Bearer ", "", 1).strip()
    return token or None


def get_optional_session(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> Optional[AuthSession]:
    """Resolve the page session from its cookies; None when signed out."""
    access_token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE)
    if not access_token and not refresh_token:
        return None
    return auth.resolve_session(access_token, refresh_token)


def get_api_session(
    token: Optional[str] = Depends(get_bearer_token),
    auth: AuthService = Depends(get_auth_service),
) -> Optional[AuthSession]:
    """Resolve the bearer token of a JSON API call; None when absent or rejected."""
    if not token:
        return None
    return auth.resolve_session(token)


def storage_for(database: DatabaseClient, access_token: str) -> StorageService:
    """Storage service whose queries run as the token's owner."""
    return StorageService(db_client=database.for_token(access_token))


def build_wizard(
    database: DatabaseClient,
    generation: GenerationService,
    session: AuthSession,
) -> CharacterWizard:
    client = database.for_token(session.access_token)
    return CharacterWizard(
        photos=PhotoStorage(client),
        generation=generation,
        storage=StorageService(db_client=client),
    )


def build_story_generator(
    database: DatabaseClient,
    generation: GenerationService,
    access_token: str,
) -> StoryGenerator:
    return StoryGenerator(
        storage=storage_for(database, access_token),
        generation=generation,
        diagnostics=StorageService(db_client=database.get_client()),
    )


def remember_session(response: Response, session: AuthSession) -> Response:
    """Write session cookies when the tokens are new (login or refresh)."""
    secure = get_settings().cookie_secure
    response.set_cookie(
        ACCESS_TOKEN_COOKIE,
        session.access_token,
        max_age=session.expires_in or 3600,
        httponly=True,
        secure=secure,
        samesite="lax",
    )
    if session.refresh_token:
        response.set_cookie(
            REFRESH_TOKEN_COOKIE,
            session.refresh_token,
            max_age=REFRESH_TOKEN_MAX_AGE,
            httponly=True,
            secure=secure,
            samesite="lax",
        )
    return response


def forget_session(response: Response) -> Response:
    response.delete_cookie(ACCESS_TOKEN_COOKIE)
    response.delete_cookie(REFRESH_TOKEN_COOKIE)
    return response
