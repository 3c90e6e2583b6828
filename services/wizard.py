"""
Character creation wizard.

    FORM --submit--> ANALYZING --(uploads + analysis ok)--> REVIEW --accept--> SAVED
      ^                  |                                     |
      +----(any failure)-+                 FORM <----edit------+

The wizard holds no server-side state: each step returns a WizardState the
page renders, and the draft travels back in the next form post. A character
row is only written by accept().
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from config.settings import (
    MAX_DESCRIPTION_LENGTH,
    MAX_PHOTOS,
    MAX_TAGS,
    MIN_PHOTOS,
    MIN_TAGS,
)
from services.generation import GenerationService
from services.photo_storage import PhotoStorage, PhotoUpload
from services.storage import StorageService

logger = logging.getLogger(__name__)


ANALYSIS_FAILED = "Could not generate character analysis. Please try again."
SAVE_FAILED = "Could not save character. Try again."


class WizardStep(str, Enum):
    FORM = "form"
    ANALYZING = "analyzing"
    REVIEW = "review"
    SAVED = "saved"


class WizardState(BaseModel):
    """Everything the wizard page needs to render the current step."""

    step: WizardStep = WizardStep.FORM
    name: str = ""
    tags: list[str] = Field(default_factory=list)
    description: str = ""
    photo_urls: list[str] = Field(default_factory=list)
    ai_analysis: str = ""
    tagline: str = ""
    error: Optional[str] = None
    character_id: Optional[str] = None


def validate_character(
    name: str,
    photo_count: int,
    tags: list[str],
    description: Optional[str] = None,
) -> Optional[str]:
    """Return the first problem with a character form, or None."""
    if not name.strip():
        return "Character name required."
    if photo_count < MIN_PHOTOS:
        return f"Upload at least {MIN_PHOTOS} photos."
    if photo_count > MAX_PHOTOS:
        return f"Max {MAX_PHOTOS} images allowed."
    if len(tags) < MIN_TAGS:
        return f"Select at least {MIN_TAGS} tag."
    if len(tags) > MAX_TAGS:
        return f"Select up to {MAX_TAGS} tags."
    if description and len(description) > MAX_DESCRIPTION_LENGTH:
        return f"Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer."
    return None


def _unique(values: Iterable[str]) -> list[str]:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class CharacterWizard:
    """Drives the two-step character creation flow."""

    def __init__(
        self,
        photos: PhotoStorage,
        generation: GenerationService,
        storage: StorageService,
    ):
        self.photos = photos
        self.generation = generation
        self.storage = storage

    async def submit(
        self,
        owner_id: str,
        name: str,
        tags: list[str],
        description: str = "",
        kept_photo_urls: Optional[list[str]] = None,
        uploads: Optional[list[PhotoUpload]] = None,
    ) -> WizardState:
        """
        Validate step 1, upload new photos, and draft the analysis.

        Photos kept from an earlier attempt are not uploaded again. Any
        failure returns to FORM with an inline error.
        """
        uploads = uploads or []
        state = WizardState(
            name=name.strip(),
            tags=_unique(tags),
            description=(description or "").strip(),
            photo_urls=_unique(kept_photo_urls or []),
        )

        error = validate_character(
            state.name,
            len(state.photo_urls) + len(uploads),
            state.tags,
            state.description,
        )
        if error:
            return state.model_copy(update={"error": error})

        state.step = WizardStep.ANALYZING
        logger.info(
            "[Wizard] Analyzing %r: %d kept photos, %d new",
            state.name, len(state.photo_urls), len(uploads),
        )

        for upload in uploads:
            try:
                url = await run_in_threadpool(
                    self.photos.upload_photo,
                    owner_id,
                    upload.filename,
                    upload.data,
                    upload.content_type,
                )
            except Exception as e:
                logger.warning("[Wizard] Photo upload failed for %s: %s", upload.filename, e)
                return state.model_copy(update={
                    "step": WizardStep.FORM,
                    "error": f"Photo upload failed. ({str(e) or 'Unknown error'})",
                })
            state.photo_urls.append(url)

        try:
            draft = await run_in_threadpool(
                self.generation.analyze_character,
                state.name,
                state.photo_urls,
                state.tags,
                state.description,
            )
        except Exception:
            logger.exception("[Wizard] Analysis call failed for %r", state.name)
            return state.model_copy(update={"step": WizardStep.FORM, "error": ANALYSIS_FAILED})

        if not draft.analysis.strip():
            return state.model_copy(update={"step": WizardStep.FORM, "error": ANALYSIS_FAILED})

        return state.model_copy(update={
            "step": WizardStep.REVIEW,
            "ai_analysis": draft.analysis,
            "tagline": draft.tagline,
        })

    def edit(self, state: WizardState) -> WizardState:
        """Go back to step 1, keeping the form fields and uploaded photos."""
        return state.model_copy(update={
            "step": WizardStep.FORM,
            "ai_analysis": "",
            "tagline": "",
            "error": None,
        })

    async def accept(self, owner_id: str, state: WizardState) -> WizardState:
        """Persist the reviewed draft as a character row."""
        error = validate_character(
            state.name, len(state.photo_urls), state.tags, state.description
        )
        if error:
            return state.model_copy(update={"step": WizardStep.FORM, "error": error})

        try:
            character = await self.storage.create_character(
                owner_id=owner_id,
                name=state.name,
                photo_urls=state.photo_urls,
                tags=state.tags,
                description=state.description,
                ai_analysis=state.ai_analysis,
                tagline=state.tagline,
            )
        except Exception:
            logger.exception("[Wizard] Could not save character %r", state.name)
            return state.model_copy(update={"step": WizardStep.REVIEW, "error": SAVE_FAILED})

        logger.info("[Wizard] Saved character %s (%r)", character.id, character.name)
        return state.model_copy(update={
            "step": WizardStep.SAVED,
            "character_id": character.id,
            "error": None,
        })
