"""
API request and response models.
"""

from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.records import Character, Story


# ============================================
# REQUEST MODELS
# ============================================


class CharacterAnalyzeRequest(BaseModel):
    """Draft character sent for AI analysis."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(default="", description="Character name")
    photo_urls: list[str] = Field(
        default_factory=list,
        alias="photoUrls",
        description="Public URLs of the uploaded photos, in upload order",
    )
    tags: list[str] = Field(default_factory=list, description="Personality tags")
    description: Optional[str] = Field(default="", description="Optional user note")


class GenerateStoryRequest(BaseModel):
    """Request to write a story from existing characters."""

    genre: str = Field(default="", description="Story genre")
    prompt_context: Optional[str] = Field(default="", description="Free-text setup from the user")
    characters_used: list[str] = Field(default_factory=list, description="Character ids")
    owner_id: Optional[str] = Field(default=None, description="Id of the requesting user")

    @field_validator("characters_used", mode="before")
    @classmethod
    def _clean_ids(cls, value):
        if value is None:
            return []
        if not isinstance(value, list):
            # non-lists are left for pydantic to reject
            return value
        return [str(item).strip() for item in value]


# ============================================
# RESPONSE MODELS
# ============================================


class CharacterAnalyzeResponse(BaseModel):
    """AI analysis draft for a character."""

    analysis: str
    tagline: str


class GenerateStoryResponse(BaseModel):
    """Response after a story was written and saved."""

    success: bool = True
    title: str


class ErrorResponse(BaseModel):
    """Error body for the JSON API."""

    error: str


class CharacterListResponse(BaseModel):
    characters: list[Character]


class StoryListResponse(BaseModel):
    stories: list[Story]


class DeleteCharacterResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    generation_service: str
