"""
Application settings for Story Playground.

Credentials come from the secret manager; everything else has a default that
works for local development.
"""

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field

from .secrets import get_secret


# =============================================================================
# Generation settings
# =============================================================================

DEFAULT_OPENAI_MODEL = "gpt-4o"

ANALYSIS_TEMPERATURE = 0.95
ANALYSIS_MAX_TOKENS = 500
MAX_ANALYSIS_PHOTOS = 4  # photos beyond this are stored but not sent to the model

STORY_TEMPERATURE = 0.95
STORY_MAX_TOKENS = 2000

# =============================================================================
# Character constraints
# =============================================================================

MIN_PHOTOS = 3
MAX_PHOTOS = 6
MIN_TAGS = 1
MAX_TAGS = 6
MAX_DESCRIPTION_LENGTH = 200

PHOTO_BUCKET = "characters"

AVATAR_URL_TEMPLATE = "https://api.dicebear.com/7.x/avataaars-neutral/svg?seed={user_id}"

# =============================================================================
# Vocabularies offered by the forms
# =============================================================================

CHARACTER_TAGS = [
    "Charming", "Witty", "Bold", "Quiet", "Reckless", "Disciplined", "Loyal", "Cynical",
    "Sensitive", "Goofy", "Brooding", "Mysterious", "Magnetic", "Dreamer",
    "Stubborn", "Romantic", "Tragic", "Heroic", "Scheming", "Wild Card",
]

STORY_GENRES = [
    "Action", "Adventure", "Comedy", "Romance", "Sci-Fi", "Fantasy",
    "Drama", "Thriller", "Mystery", "Horror", "Coming-of-Age", "Heist",
]

STORY_FLAVORS = [
    "Romantic arc", "Funny banter", "Big action scene", "Sad ending",
    "Emotional moments", "Plot twist", "Slow burn tension", "Uplifting finale",
    "Nostalgic tone", "Betrayal twist",
]

REQUIRED_SECRETS = [
    "OPENAI_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_ROLE_KEY",
]

ACCESS_TOKEN_COOKIE = "sb-access-token"
REFRESH_TOKEN_COOKIE = "sb-refresh-token"
REFRESH_TOKEN_MAX_AGE = 60 * 60 * 24 * 30


class Settings(BaseModel):
    """Non-secret runtime settings."""

    openai_model: str = Field(default=DEFAULT_OPENAI_MODEL, description="Chat model for analysis and stories")
    site_url: str = Field(default="http://localhost:8000", description="Public base URL used in magic links")
    cookie_secure: bool = Field(default=False, description="Mark session cookies Secure")
    debug: bool = Field(default=False)

    @property
    def auth_callback_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/auth/callback"


def _flag(name: str, default: str = "false") -> bool:
    return (get_secret(name, default) or default).lower() == "true"


@lru_cache()
def get_settings() -> Settings:
    """Load settings once per process."""
    return Settings(
        openai_model=get_secret("OPENAI_MODEL", DEFAULT_OPENAI_MODEL) or DEFAULT_OPENAI_MODEL,
        site_url=get_secret("SITE_URL", "http://localhost:8000") or "http://localhost:8000",
        cookie_secure=_flag("COOKIE_SECURE"),
        debug=_flag("DEBUG"),
    )


def missing_secrets() -> list[str]:
    """Names of required secrets that are not configured."""
    return [name for name in REQUIRED_SECRETS if not get_secret(name)]


def avatar_url_for(user_id: Optional[str]) -> str:
    """Deterministic avatar URL seeded by the user id."""
    return AVATAR_URL_TEMPLATE.format(user_id=user_id or "")
