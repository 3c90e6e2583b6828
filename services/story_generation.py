"""
Story generation pipeline.

Shared by POST /api/generate-story and the story form page. Each failure
branch raises StoryGenerationError with the HTTP status and message the API
returns; nothing is written unless the model produced a usable story.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from postgrest.exceptions import APIError

from services.generation import GenerationService
from services.model_output import ModelOutputError
from services.prompts import build_character_block
from services.storage import StorageService

logger = logging.getLogger(__name__)


class StoryGenerationError(Exception):
    """A story request failed at a known branch."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass
class StoryResult:
    story_id: str
    title: str


class StoryGenerator:
    """Fetches character bios, writes the story, and stores it."""

    def __init__(
        self,
        storage: StorageService,
        generation: GenerationService,
        diagnostics: Optional[StorageService] = None,
    ):
        """
        Args:
            storage: Storage bound to the caller's token (row-level security applies)
            generation: Language-model service
            diagnostics: Unscoped storage used only for debug listings
        """
        self.storage = storage
        self.generation = generation
        self.diagnostics = diagnostics

    async def generate(
        self,
        genre: str,
        prompt_context: Optional[str],
        characters_used: list[str],
        owner_id: Optional[str],
    ) -> StoryResult:
        """
        Write and store a story for characters the caller can see.

        Raises:
            StoryGenerationError: 400 no ids, 404 no visible characters,
                500 fetch, generation or insert failure
        """
        character_ids = [str(c).strip() for c in characters_used if str(c).strip()]
        if not character_ids:
            raise StoryGenerationError(400, "No characters provided.")

        logger.info("[StoryGen] Fetching characters with IDs: %s", character_ids)
        try:
            characters = await self.storage.get_character_bios(character_ids)
        except APIError as e:
            logger.error("[StoryGen] Store error fetching characters: %s", e)
            raise StoryGenerationError(500, "Error fetching character data.") from e

        if not characters:
            await self._log_visible_characters()
            logger.error("[StoryGen] No character records returned for %s", character_ids)
            raise StoryGenerationError(404, "No characters found with given IDs.")

        logger.info("[StoryGen] Characters fetched: %s", [c.get("name") for c in characters])

        try:
            story = await run_in_threadpool(
                self.generation.write_story,
                build_character_block(characters),
                genre,
                prompt_context,
            )
        except ModelOutputError as e:
            logger.error("[StoryGen] Parsed result is invalid: %s", e.reason)
            raise StoryGenerationError(500, "Failed to generate story.") from e

        try:
            row = await self.storage.create_story(
                owner_id=owner_id,
                title=story.title,
                full_story=story.story,
                genre=genre,
                prompt_context=prompt_context,
                characters_used=character_ids,
            )
        except APIError as e:
            logger.error("[StoryGen] Error inserting story: %s", e)
            raise StoryGenerationError(500, "Failed to save story.") from e

        logger.info("[StoryGen] Story %s saved: %r", row.id, row.title)
        return StoryResult(story_id=row.id, title=row.title)

    async def _log_visible_characters(self) -> None:
        if self.diagnostics is None or not logger.isEnabledFor(logging.DEBUG):
            return
        try:
            rows = await self.diagnostics.list_all_characters()
        except APIError as e:
            logger.debug("[StoryGen] Diagnostic character listing failed: %s", e)
            return
        logger.debug("[StoryGen] All characters in store: %s", rows)
