"""Configuration and secret management for Story Playground."""

from .secrets import (
    SecretManager,
    SecretBackend,
    get_secret,
    require_secret,
    get_secret_manager,
)
from .settings import Settings, get_settings

__all__ = [
    "SecretManager",
    "SecretBackend",
    "get_secret",
    "require_secret",
    "get_secret_manager",
    "Settings",
    "get_settings",
]
