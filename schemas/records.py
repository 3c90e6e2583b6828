"""
Row models for the Supabase tables and models for the JSON the language model
is asked to return.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


# ============================================
# TABLE ROWS
# ============================================


class Profile(BaseModel):
    """Row of the profiles table (id is the auth user id)."""

    id: str
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class Character(BaseModel):
    """Row of the characters table."""

    id: str
    owner_id: Optional[str] = None
    name: str
    photo_urls: list[str] = Field(default_factory=list, description="Ordered photo URLs (3-6)")
    tags: list[str] = Field(default_factory=list, description="Personality tags (1-6)")
    description: Optional[str] = Field(default=None, description="Optional user note, at most 200 chars")
    ai_analysis: Optional[str] = None
    tagline: Optional[str] = None
    created_at: Optional[str] = None

    @property
    def cover_photo(self) -> Optional[str]:
        return self.photo_urls[0] if self.photo_urls else None


class Story(BaseModel):
    """Row of the stories table."""

    id: str
    owner_id: Optional[str] = None
    title: str
    full_story: str = ""
    genre: Optional[str] = None
    prompt_context: Optional[str] = None
    characters_used: list[str] = Field(default_factory=list)
    cover_image_url: Optional[str] = ""
    scene_image_urls: list[str] = Field(default_factory=list)
    created_at: Optional[str] = None

    @property
    def paragraphs(self) -> list[str]:
        return [p.strip() for p in self.full_story.split("\n") if p.strip()]


# ============================================
# MODEL OUTPUT
# ============================================


class CharacterAnalysis(BaseModel):
    """Analysis draft returned by the model; missing fields read as empty."""

    analysis: str = ""
    tagline: str = ""

    @field_validator("analysis", "tagline", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value


class GeneratedStory(BaseModel):
    """Story returned by the model; both fields must be present and non-blank."""

    title: str = Field(min_length=1)
    story: str = Field(min_length=1)

    @field_validator("title", "story", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value
