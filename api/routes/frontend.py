"""
Server-rendered pages.

Login, magic-link callback, playground, the character wizard, the story form
and the story reader. Pages keep the Supabase session in HttpOnly cookies and
query the store with the user's token, so row-level security scopes every
list and lookup to the signed-in user.
"""

import logging
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from postgrest.exceptions import APIError
from supabase import AuthError

from api.dependencies import (
    build_story_generator,
    build_wizard,
    forget_session,
    get_auth_service,
    get_database,
    get_generation_service,
    get_optional_session,
    remember_session,
    storage_for,
)
from config.settings import (
    CHARACTER_TAGS,
    MAX_DESCRIPTION_LENGTH,
    MAX_PHOTOS,
    MAX_TAGS,
    MIN_PHOTOS,
    STORY_FLAVORS,
    STORY_GENRES,
    avatar_url_for,
)
from db.client import DatabaseClient
from services.auth import AuthService, AuthSession
from services.generation import GenerationService
from services.photo_storage import PhotoUpload
from services.prompts import build_prompt_context
from services.story_generation import StoryGenerationError
from services.wizard import WizardState, WizardStep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["frontend"])

PROJECT_ROOT = Path(__file__).parent.parent.parent
templates = Jinja2Templates(directory=str(PROJECT_ROOT / "templates"))

LOAD_FAILED = "Could not load your characters and stories. Try again."


# ============================================
# HELPER FUNCTIONS
# ============================================


def _to_home() -> RedirectResponse:
    return RedirectResponse("/", status_code=303)


def _finish(response: Response, session: Optional[AuthSession]) -> Response:
    """Rewrite session cookies if the tokens were refreshed during this request."""
    if session is not None and session.refreshed:
        remember_session(response, session)
    return response


async def _render(
    request: Request,
    template: str,
    session: Optional[AuthSession],
    database: Optional[DatabaseClient] = None,
    status_code: int = 200,
    **context,
) -> Response:
    """Render a page with the signed-in user's header."""
    avatar_url = None
    if session is not None:
        avatar_url = avatar_url_for(session.user_id)
        if database is not None:
            try:
                profile = await storage_for(database, session.access_token).get_profile(session.user_id)
            except APIError as e:
                logger.warning("[Pages] Could not load profile %s: %s", session.user_id, e)
                profile = None
            if profile is not None and profile.avatar_url:
                avatar_url = profile.avatar_url

    response = templates.TemplateResponse(
        request,
        template,
        {"session": session, "avatar_url": avatar_url, **context},
        status_code=status_code,
    )
    return _finish(response, session)


def _known_tags(tags: list[str]) -> list[str]:
    return [t for t in tags if t in CHARACTER_TAGS]


def _draft_from_form(
    name: str,
    tags: list[str],
    description: str,
    photo_urls: list[str],
    ai_analysis: str = "",
    tagline: str = "",
    step: WizardStep = WizardStep.REVIEW,
) -> WizardState:
    return WizardState(
        step=step,
        name=name.strip(),
        tags=_known_tags(tags),
        description=description.strip(),
        photo_urls=[u for u in photo_urls if u],
        ai_analysis=ai_analysis,
        tagline=tagline,
    )


async def _render_wizard(
    request: Request,
    session: AuthSession,
    database: DatabaseClient,
    state: WizardState,
) -> Response:
    return await _render(
        request,
        "new_character.html",
        session,
        database,
        state=state,
        all_tags=CHARACTER_TAGS,
        min_photos=MIN_PHOTOS,
        max_photos=MAX_PHOTOS,
        max_tags=MAX_TAGS,
        max_description=MAX_DESCRIPTION_LENGTH,
    )


async def _render_playground(
    request: Request,
    session: AuthSession,
    database: DatabaseClient,
    error: Optional[str] = None,
) -> Response:
    storage = storage_for(database, session.access_token)
    try:
        characters = await storage.list_characters(session.user_id)
        stories = await storage.list_stories(session.user_id)
    except APIError as e:
        logger.error("[Pages] Could not load playground for %s: %s", session.user_id, e)
        characters, stories = [], []
        error = error or LOAD_FAILED
    names = {c.id: c.name for c in characters}
    return await _render(
        request,
        "playground.html",
        session,
        database,
        characters=characters,
        stories=stories,
        character_names=names,
        error=error,
    )


async def _render_story_form(
    request: Request,
    session: AuthSession,
    database: DatabaseClient,
    error: Optional[str] = None,
    selected: Optional[list[str]] = None,
    genre: str = "",
    prompt: str = "",
    flavors: Optional[list[str]] = None,
    extra_detail: str = "",
) -> Response:
    try:
        characters = await storage_for(database, session.access_token).list_characters(session.user_id)
    except APIError as e:
        logger.error("[Pages] Could not load characters for %s: %s", session.user_id, e)
        characters = []
        error = error or LOAD_FAILED
    return await _render(
        request,
        "new_story.html",
        session,
        database,
        characters=characters,
        genres=STORY_GENRES,
        all_flavors=STORY_FLAVORS,
        selected=selected or [],
        genre=genre,
        prompt=prompt,
        flavors=flavors or [],
        extra_detail=extra_detail,
        error=error,
    )


# ============================================
# LOGIN
# ============================================


@router.get("/")
async def home(
    request: Request,
    error_description: Optional[str] = None,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Login form, or a link to the playground when already signed in."""
    return await _render(
        request,
        "home.html",
        session,
        database if session else None,
        message=error_description,
    )


@router.post("/login")
async def send_login_link(
    request: Request,
    email: str = Form(""),
    auth: AuthService = Depends(get_auth_service),
):
    """Email a magic link."""
    email = email.strip()
    if not email:
        return await _render(request, "home.html", None, message="Enter your email address.", email=email)

    try:
        auth.send_magic_link(email)
    except AuthError as e:
        return await _render(request, "home.html", None, message=str(e), email=email)

    return await _render(
        request, "home.html", None,
        message="Check your email for the magic link!",
        email=email,
    )


@router.get("/auth/callback")
async def auth_callback(
    token_hash: Optional[str] = None,
    otp_type: str = Query("email", alias="type"),
    auth: AuthService = Depends(get_auth_service),
    database: DatabaseClient = Depends(get_database),
):
    """Finish a magic-link login: verify, upsert the profile, set cookies."""
    if not token_hash:
        return _to_home()

    session = auth.complete_magic_link(token_hash, otp_type)
    if session is None:
        return RedirectResponse("/?error_description=That+login+link+is+invalid+or+expired.", status_code=303)

    try:
        await storage_for(database, session.access_token).upsert_profile(
            session.user_id, session.email, avatar_url_for(session.user_id)
        )
    except APIError as e:
        logger.error("[Auth] Profile upsert failed for %s: %s", session.user_id, e)

    logger.info("[Auth] Signed in %s", session.user_id)
    return remember_session(RedirectResponse("/playground", status_code=303), session)


@router.post("/logout")
async def logout():
    return forget_session(_to_home())


# ============================================
# PLAYGROUND
# ============================================


@router.get("/playground")
async def playground(
    request: Request,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """The user's characters and stories, newest first."""
    if session is None:
        return _to_home()
    return await _render_playground(request, session, database)


@router.get("/characters/{character_id}/delete")
async def confirm_delete_character(
    request: Request,
    character_id: str,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Confirmation page for deleting a character (used without JavaScript)."""
    if session is None:
        return _to_home()

    try:
        character = await storage_for(database, session.access_token).get_character(character_id)
    except APIError as e:
        logger.warning("[Pages] Could not load character %s: %s", character_id, e)
        character = None
    if character is None:
        return _finish(RedirectResponse("/playground", status_code=303), session)
    return await _render(request, "confirm_delete.html", session, database, character=character)


@router.post("/characters/{character_id}/delete")
async def delete_character(
    request: Request,
    character_id: str,
    confirm: str = Form(""),
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Delete a character once the user confirmed; cancelling touches nothing."""
    if session is None:
        return _to_home()
    if confirm != "yes":
        return _finish(RedirectResponse("/playground", status_code=303), session)

    try:
        await storage_for(database, session.access_token).delete_character(
            session.user_id, character_id
        )
    except APIError as e:
        logger.error("[Pages] Could not delete character %s: %s", character_id, e)
        return await _render_playground(
            request, session, database, error="Could not delete character. Try again."
        )

    return _finish(RedirectResponse("/playground", status_code=303), session)


# ============================================
# CHARACTER WIZARD
# ============================================


@router.get("/new-character")
async def new_character(
    request: Request,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Step 1: the character form."""
    if session is None:
        return _to_home()
    return await _render_wizard(request, session, database, WizardState())


@router.post("/new-character")
async def submit_character(
    request: Request,
    name: str = Form(""),
    tags: list[str] = Form([]),
    description: str = Form(""),
    photo_urls: list[str] = Form([]),
    photos: list[UploadFile] = File([]),
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
    generation: GenerationService = Depends(get_generation_service),
):
    """Step 1 -> 2: upload photos and draft the analysis."""
    if session is None:
        return _to_home()

    uploads = []
    for photo in photos:
        if not photo.filename:
            continue
        uploads.append(PhotoUpload(
            filename=photo.filename,
            data=await photo.read(),
            content_type=photo.content_type,
        ))

    wizard = build_wizard(database, generation, session)
    state = await wizard.submit(
        owner_id=session.user_id,
        name=name,
        tags=_known_tags(tags),
        description=description,
        kept_photo_urls=[u for u in photo_urls if u],
        uploads=uploads,
    )
    return await _render_wizard(request, session, database, state)


@router.post("/new-character/edit")
async def edit_character_draft(
    request: Request,
    name: str = Form(""),
    tags: list[str] = Form([]),
    description: str = Form(""),
    photo_urls: list[str] = Form([]),
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
    generation: GenerationService = Depends(get_generation_service),
):
    """Step 2 -> 1: back to the form with the draft's fields."""
    if session is None:
        return _to_home()

    wizard = build_wizard(database, generation, session)
    state = wizard.edit(_draft_from_form(name, tags, description, photo_urls))
    return await _render_wizard(request, session, database, state)


@router.post("/new-character/accept")
async def accept_character_draft(
    request: Request,
    name: str = Form(""),
    tags: list[str] = Form([]),
    description: str = Form(""),
    photo_urls: list[str] = Form([]),
    ai_analysis: str = Form(""),
    tagline: str = Form(""),
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
    generation: GenerationService = Depends(get_generation_service),
):
    """Step 2: save the accepted draft and go to the playground."""
    if session is None:
        return _to_home()

    wizard = build_wizard(database, generation, session)
    state = await wizard.accept(
        session.user_id,
        _draft_from_form(name, tags, description, photo_urls, ai_analysis, tagline),
    )
    if state.step == WizardStep.SAVED:
        return _finish(RedirectResponse("/playground", status_code=303), session)
    return await _render_wizard(request, session, database, state)


# ============================================
# STORIES
# ============================================


@router.get("/story/new")
async def new_story(
    request: Request,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Story form: pick characters, a genre, a prompt and flavors."""
    if session is None:
        return _to_home()
    return await _render_story_form(request, session, database)


@router.post("/story/new")
async def create_story(
    request: Request,
    characters: list[str] = Form([]),
    genre: str = Form(""),
    prompt: str = Form(""),
    flavors: list[str] = Form([]),
    extra_detail: str = Form(""),
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
    generation: GenerationService = Depends(get_generation_service),
):
    """Generate a story and open it."""
    if session is None:
        return _to_home()

    form = {
        "selected": characters,
        "genre": genre,
        "prompt": prompt,
        "flavors": [f for f in flavors if f in STORY_FLAVORS],
        "extra_detail": extra_detail,
    }
    if not characters or genre not in STORY_GENRES:
        return await _render_story_form(
            request, session, database,
            error="Select at least 1 character and choose a genre.",
            **form,
        )

    generator = build_story_generator(database, generation, session.access_token)
    try:
        result = await generator.generate(
            genre=genre,
            prompt_context=build_prompt_context(prompt, form["flavors"], extra_detail),
            characters_used=characters,
            owner_id=session.user_id,
        )
    except StoryGenerationError as e:
        logger.error("[Pages] Story generation failed (%d): %s", e.status_code, e.message)
        return await _render_story_form(
            request, session, database, error="Error generating story. Try again.", **form
        )
    except Exception:
        logger.exception("[Pages] Unexpected error generating story")
        return await _render_story_form(
            request, session, database, error="Unexpected error occurred.", **form
        )

    return _finish(RedirectResponse(f"/story/{result.story_id}", status_code=303), session)


@router.get("/story/{story_id}")
async def read_story(
    request: Request,
    story_id: str,
    session: Optional[AuthSession] = Depends(get_optional_session),
    database: DatabaseClient = Depends(get_database),
):
    """Read one of the user's stories."""
    if session is None:
        return _to_home()

    try:
        story = await storage_for(database, session.access_token).get_story(story_id)
    except APIError as e:
        logger.warning("[Pages] Could not load story %s: %s", story_id, e)
        story = None
    if story is None:
        return await _render(request, "not_found.html", session, database, status_code=404)
    return await _render(request, "story.html", session, database, story=story)
