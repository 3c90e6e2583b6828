"""
Character analysis and story writing with OpenAI chat completions.

One call per operation. Replies are requested in JSON mode and read back with
services.model_output, which reports why a reply was unusable.
"""

import logging
from typing import Iterable, Optional

from openai import OpenAI

from config import require_secret, get_settings
from config.settings import (
    ANALYSIS_MAX_TOKENS,
    ANALYSIS_TEMPERATURE,
    STORY_MAX_TOKENS,
    STORY_TEMPERATURE,
)
from schemas.records import CharacterAnalysis, GeneratedStory
from services.model_output import ModelOutputError, parse_model_output
from services.prompts import build_analysis_messages, build_story_messages

logger = logging.getLogger(__name__)


class GenerationService:
    """Service for the two language-model calls the app makes."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize generation service.

        Args:
            api_key: OpenAI API key (defaults to OPENAI_API_KEY from secret manager)
            model: Chat model name (defaults to the OPENAI_MODEL setting)
        """
        self._api_key = api_key
        self._client: Optional[OpenAI] = None
        self.model = model or get_settings().openai_model

    @property
    def client(self) -> OpenAI:
        """
        OpenAI client, created on first use.

        Raises:
            ValueError: If OPENAI_API_KEY is not configured
        """
        if self._client is None:
            self._client = OpenAI(api_key=self._api_key or require_secret("OPENAI_API_KEY"))
        return self._client

    def _complete(self, messages: list[dict], temperature: float, max_tokens: int) -> str:
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
            response_format={"type": "json_object"},
        )
        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""

    def analyze_character(
        self,
        name: str,
        photo_urls: Iterable[str],
        tags: Iterable[str],
        description: Optional[str] = None,
    ) -> CharacterAnalysis:
        """
        Write a cinematic analysis and tagline for a character from its photos.

        A reply without a usable JSON object yields empty analysis and tagline.
        Transport and authentication errors propagate.

        Args:
            name: Character name
            photo_urls: Public photo URLs (first four are sent)
            tags: Personality tags
            description: Optional user note

        Returns:
            CharacterAnalysis draft
        """
        messages = build_analysis_messages(name, photo_urls, tags, description)
        content = self._complete(messages, ANALYSIS_TEMPERATURE, ANALYSIS_MAX_TOKENS)
        logger.debug("[Analysis] Raw model output: %s", content)

        try:
            return parse_model_output(content, CharacterAnalysis)
        except ModelOutputError as e:
            logger.warning("[Analysis] Unusable model output for %r: %s", name, e.reason)
            return CharacterAnalysis()

    def write_story(
        self,
        character_block: str,
        genre: str,
        prompt_context: Optional[str] = None,
    ) -> GeneratedStory:
        """
        Write a story for the given characters, genre and setup.

        Raises:
            ModelOutputError: If the reply lacks a non-empty title or story
        """
        messages = build_story_messages(character_block, genre, prompt_context)
        content = self._complete(messages, STORY_TEMPERATURE, STORY_MAX_TOKENS)
        logger.debug("[StoryGen] Raw model output: %s", content)

        return parse_model_output(content, GeneratedStory)
