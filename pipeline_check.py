#!/usr/bin/env python3
"""
End-to-end check for the Story Playground pipeline against live services.

Runs the complete flow:
1. Upload character photos to Supabase Storage
2. Draft the character analysis with OpenAI
3. Save the character
4. Write and save a story starring it
5. Read the story back

Uses the service-role client, so row-level security is bypassed. The owner
must be an existing auth user id.

Run with: python pipeline_check.py <owner_id> photo1.jpg photo2.jpg photo3.jpg
"""

import os
import sys
import asyncio
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))


SAMPLE_NAME = "Pipeline Pilot"
SAMPLE_TAGS = ["Witty", "Reckless", "Loyal"]
SAMPLE_DESCRIPTION = "Talks to houseplants. Has never once been on time."
SAMPLE_GENRE = "Heist"
SAMPLE_PROMPT = "A museum gala goes sideways when the wrong painting is stolen."


async def run_pipeline(owner_id: str, photo_paths: list[Path]) -> int:
    """Run the complete pipeline check."""
    print("=" * 70)
    print("Story Playground - Pipeline Check")
    print("=" * 70)
    print()

    from config.settings import MIN_PHOTOS, MAX_PHOTOS, missing_secrets

    missing = missing_secrets()
    if missing:
        print(f"ERROR: Missing environment variables: {', '.join(missing)}")
        return 1
    if not MIN_PHOTOS <= len(photo_paths) <= MAX_PHOTOS:
        print(f"ERROR: Pass between {MIN_PHOTOS} and {MAX_PHOTOS} photos")
        return 1

    print("Environment configured")
    print()

    from api.dependencies import get_database, get_generation_service
    from services.photo_storage import PhotoStorage, PhotoUpload, guess_content_type
    from services.prompts import build_prompt_context
    from services.storage import StorageService
    from services.story_generation import StoryGenerator

    db = get_database().get_client()
    generation = get_generation_service()
    storage = StorageService(db_client=db)
    photos = PhotoStorage(db)

    print("Services initialized")
    print()

    # =========================================
    # Step 1: Upload photos
    # =========================================
    print("Step 1: Uploading photos...")

    uploads = [
        PhotoUpload(
            filename=path.name,
            data=path.read_bytes(),
            content_type=guess_content_type(path.name),
        )
        for path in photo_paths
    ]
    photo_urls = photos.upload_photos(owner_id, uploads)
    for url in photo_urls:
        print(f"  {url}")
    print()

    # =========================================
    # Step 2: Draft the analysis
    # =========================================
    print("Step 2: Drafting character analysis...")
    print("  (This may take 5-15 seconds)")

    draft = generation.analyze_character(SAMPLE_NAME, photo_urls, SAMPLE_TAGS, SAMPLE_DESCRIPTION)
    if not draft.analysis:
        print("ERROR: Model returned no usable analysis")
        return 1

    print(f"  Tagline: {draft.tagline}")
    print(f"  Analysis: {draft.analysis[:200]}...")
    print()

    # =========================================
    # Step 3: Save the character
    # =========================================
    print("Step 3: Saving character...")

    character = await storage.create_character(
        owner_id=owner_id,
        name=SAMPLE_NAME,
        photo_urls=photo_urls,
        tags=SAMPLE_TAGS,
        description=SAMPLE_DESCRIPTION,
        ai_analysis=draft.analysis,
        tagline=draft.tagline,
    )
    print(f"  Created character: {character.name} (ID: {character.id})")
    print()

    # =========================================
    # Step 4: Write the story
    # =========================================
    print("Step 4: Writing story...")
    print("  (This may take 20-60 seconds)")

    generator = StoryGenerator(storage=storage, generation=generation)
    result = await generator.generate(
        genre=SAMPLE_GENRE,
        prompt_context=build_prompt_context(SAMPLE_PROMPT, ["Plot twist", "Funny banter"]),
        characters_used=[character.id],
        owner_id=owner_id,
    )
    print(f"  Story saved: {result.title} (ID: {result.story_id})")
    print()

    # =========================================
    # Step 5: Read it back
    # =========================================
    print("Step 5: Reading story back...")

    story = await storage.get_story(result.story_id)
    if story is None:
        print("ERROR: Story not found after insert")
        return 1

    print(f"  Paragraphs: {len(story.paragraphs)}")
    print("-" * 40)
    print(story.full_story[:600])
    if len(story.full_story) > 600:
        print("...")
    print()

    # =========================================
    # Cleanup (optional)
    # =========================================
    print("Step 6: Cleanup...")
    cleanup = input("  Delete test data? (y/N): ").strip().lower()
    if cleanup == 'y':
        db.table("stories").delete().eq("id", story.id).execute()
        await storage.delete_character(owner_id, character.id)
        print("  Test data deleted (uploaded photos are kept)")
    else:
        print(f"  Test data preserved (character_id: {character.id}, story_id: {story.id})")

    print()
    print("=" * 70)
    print("Pipeline check completed successfully!")
    print("=" * 70)

    return 0


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    sys.exit(asyncio.run(run_pipeline(sys.argv[1], [Path(p) for p in sys.argv[2:]])))
