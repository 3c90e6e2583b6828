"""
Table storage service.

Reads and writes profiles, characters and stories. The service is built
around whichever Supabase client the caller hands it; with a token-scoped
client every query is filtered by row-level security to the token's owner.
"""

from typing import Optional
from datetime import datetime, timezone

from schemas.records import Character, Profile, Story


CHARACTER_BIO_COLUMNS = "id, name, tagline, ai_analysis"


class StorageService:
    """Service for the app's table reads and writes."""

    def __init__(self, db_client):
        """
        Initialize storage service.

        Args:
            db_client: Supabase client instance
        """
        self.db = db_client

    # ============================================
    # PROFILES
    # ============================================

    async def upsert_profile(self, user_id: str, email: Optional[str], avatar_url: str) -> None:
        """Create the profile row or refresh its email and avatar."""
        self.db.table("profiles").upsert(
            {
                "id": user_id,
                "email": email,
                "avatar_url": avatar_url,
            },
            on_conflict="id",
        ).execute()

    async def get_profile(self, user_id: str) -> Optional[Profile]:
        result = self.db.table("profiles").select("*").eq("id", user_id).limit(1).execute()
        if not result.data:
            return None
        return Profile(**result.data[0])

    # ============================================
    # CHARACTERS
    # ============================================

    async def list_characters(self, owner_id: str) -> list[Character]:
        """List an owner's characters, newest first."""
        result = self.db.table("characters").select("*").eq(
            "owner_id", owner_id
        ).order("created_at", desc=True).execute()
        return [Character(**row) for row in result.data or []]

    async def get_character(self, character_id: str) -> Optional[Character]:
        result = self.db.table("characters").select("*").eq("id", character_id).limit(1).execute()
        if not result.data:
            return None
        return Character(**result.data[0])

    async def get_character_bios(self, character_ids: list[str]) -> list[dict]:
        """
        Fetch name, tagline and analysis for the given ids.

        Ids the client may not see are silently missing from the result.
        """
        result = self.db.table("characters").select(CHARACTER_BIO_COLUMNS).in_(
            "id", character_ids
        ).execute()
        return result.data or []

    async def list_all_characters(self) -> list[dict]:
        """Every character row visible to the client (diagnostics)."""
        result = self.db.table("characters").select("id, name, owner_id").execute()
        return result.data or []

    async def create_character(
        self,
        owner_id: str,
        name: str,
        photo_urls: list[str],
        tags: list[str],
        description: Optional[str],
        ai_analysis: str,
        tagline: str,
    ) -> Character:
        """Insert an accepted character and return the stored row."""
        result = self.db.table("characters").insert({
            "owner_id": owner_id,
            "name": name,
            "photo_urls": photo_urls,
            "tags": tags,
            "description": description or "",
            "ai_analysis": ai_analysis,
            "tagline": tagline,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }).execute()
        return Character(**result.data[0])

    async def delete_character(self, owner_id: str, character_id: str) -> None:
        """Delete one character by id. No soft delete."""
        self.db.table("characters").delete().eq("id", character_id).eq(
            "owner_id", owner_id
        ).execute()

    # ============================================
    # STORIES
    # ============================================

    async def list_stories(self, owner_id: str) -> list[Story]:
        """List an owner's stories, newest first."""
        result = self.db.table("stories").select("*").eq(
            "owner_id", owner_id
        ).order("created_at", desc=True).execute()
        return [Story(**row) for row in result.data or []]

    async def get_story(self, story_id: str) -> Optional[Story]:
        result = self.db.table("stories").select("*").eq("id", story_id).limit(1).execute()
        if not result.data:
            return None
        return Story(**result.data[0])

    async def create_story(
        self,
        owner_id: Optional[str],
        title: str,
        full_story: str,
        genre: str,
        prompt_context: Optional[str],
        characters_used: list[str],
    ) -> Story:
        """Insert a generated story. Cover and scene images start empty."""
        result = self.db.table("stories").insert({
            "owner_id": owner_id,
            "title": title,
            "full_story": full_story,
            "genre": genre,
            "prompt_context": prompt_context,
            "characters_used": characters_used,
            "cover_image_url": "",
            "scene_image_urls": [],
        }).execute()
        return Story(**result.data[0])
