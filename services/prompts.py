"""
Prompt templates for character analysis and story writing.

Both prompts ask the model for a bare JSON object so the result can be read
back by services.model_output. The analysis prompt is multimodal: the user
turn carries the character's photos as image parts.
"""

from typing import Iterable, Optional, Union
from string import Template

from config.settings import MAX_ANALYSIS_PHOTOS
from schemas.records import Character


# ============================================
# CHARACTER ANALYSIS
# ============================================
# Photos lead, tags and the user's note support. Output is one JSON object.

CHARACTER_ANALYSIS_PROMPT = """
You are an award-winning film screenwriter and casting director. You are building a character profile for a major motion picture from real photos, a name, a short note from the user, and a set of personality tags.

You MUST:
- Write a vivid, immersive character analysis that is exactly 8 to 9 lines long.
- Open with a highly visual description of the character's physical presence, style and distinctive features as seen in the photos (at least 2-3 sentences): face, hair, clothing, posture, anything that stands out.
- Then weave in personality and energy, drawing on both what you see and the tags. The photos lead; the tags and the note are supporting evidence.
- Slip in one small, realistic imperfection or quirk. It should feel human and give them dimension, not ruin them.
- Write in cinematic language. Show, don't tell. Pitch the character as if to a film director.
- Do NOT describe each photo separately or give each photo its own line. Synthesize every cue into one cohesive analysis.
- Include a cinematic comparison: a composite archetype blending two or more real actors, celebrities or iconic characters (e.g. "the soulful confidence of a young Dev Patel meets the effortless cool of Jason Momoa at a Berlin rave"). Make it evocative, not a bare reference.
- Finish with a playful, punchy, one-line Gen Z tagline that captures their vibe, the kind you'd see on TikTok or a character card. Leave the quirk out of the tagline and do NOT use the name in it.

Return your result as a JSON object:
{
  "analysis": "The full cinematic visual-personality analysis.",
  "tagline": "One Gen Z-style tagline for this character."
}

Return nothing else, only valid JSON.
"""

ANALYSIS_USER_TEMPLATE = Template("""Name: ${name}
Tags: ${tags}""")

USER_NOTE_TEMPLATE = Template('\nUser\'s note: "${note}"')


# ============================================
# STORY WRITING
# ============================================

STORY_SYSTEM_PROMPT = """You're an elite Hollywood screenwriter with a knack for high-concept, emotionally resonant stories that are also wildly entertaining. Turn the character bios, genre and setup you are given into an unforgettable movie plot that reads like a gripping cinematic experience.

Requirements:
- The story must feel like a full feature film in scope.
- Give the characters backstories and motivations that build toward meaningful transformation.
- Use visual language that evokes scenes playing out on screen.
- Don't lean too heavily on the bios. Reveal traits through action, dialogue and choices instead of restating them.
- Be unpredictable, dynamic and clever.
- Show external events and turning points. Keep readers hooked.
- Use natural dialogue and avoid over-stylized language.
- Surprise the reader with reveals, twists and earned emotional beats.
- Go longer than 6-8 paragraphs if needed. A complete, satisfying arc comes first.

FORMAT:
Return ONLY valid JSON:
{
  "title": "A sharp, emotionally resonant movie-style title",
  "story": "A gripping, cinematic story with vivid scenes and escalating stakes."
}"""

STORY_USER_TEMPLATE = Template("""Use the following character profiles and setup to create a deeply engaging, cinematic story.

CHARACTERS:
${characters}

GENRE: ${genre}
USER PROMPT: ${prompt}""")

CHARACTER_PROFILE_TEMPLATE = Template("""Name: ${name}
Tagline: ${tagline}
Profile: ${analysis}""")


# ============================================
# BUILDERS
# ============================================


def build_analysis_messages(
    name: str,
    photo_urls: Iterable[str],
    tags: Iterable[str],
    description: Optional[str] = None,
) -> list[dict]:
    """
    Build the multimodal chat messages for a character analysis.

    Args:
        name: Character name
        photo_urls: Public photo URLs; only the first MAX_ANALYSIS_PHOTOS are sent
        tags: Personality tags
        description: Optional user note

    Returns:
        System and user messages for the chat completions API
    """
    text = ANALYSIS_USER_TEMPLATE.substitute(name=name, tags=", ".join(tags))
    if description:
        text += USER_NOTE_TEMPLATE.substitute(note=description)

    content: list[dict] = [{"type": "text", "text": text}]
    for url in list(photo_urls)[:MAX_ANALYSIS_PHOTOS]:
        content.append({"type": "image_url", "image_url": {"url": url}})

    return [
        {"role": "system", "content": CHARACTER_ANALYSIS_PROMPT},
        {"role": "user", "content": content},
    ]


def build_character_block(characters: Iterable[Union[Character, dict]]) -> str:
    """Flatten character rows into the profile block the story prompt embeds."""
    entries = []
    for c in characters:
        row = c.model_dump() if isinstance(c, Character) else c
        entries.append(CHARACTER_PROFILE_TEMPLATE.substitute(
            name=row.get("name") or "",
            tagline=row.get("tagline") or "",
            analysis=row.get("ai_analysis") or "",
        ))
    return "\n\n".join(entries)


def build_story_messages(
    character_block: str,
    genre: str,
    prompt_context: Optional[str] = None,
) -> list[dict]:
    """Build the chat messages for story writing."""
    user_prompt = STORY_USER_TEMPLATE.substitute(
        characters=character_block,
        genre=genre,
        prompt=prompt_context or "None provided",
    )
    return [
        {"role": "system", "content": STORY_SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def build_prompt_context(
    prompt: Optional[str],
    flavors: Optional[Iterable[str]] = None,
    extra_detail: Optional[str] = None,
) -> str:
    """
    Compose the free-text setup sent with a story request from the story form.

    The prompt comes first, then the chosen flavor tags, then any extra note.
    The "Story flavor:" line goes beyond the plain prompt plus "Additional
    notes:" format; without it the flavors picked on the form would never
    reach the model.
    """
    context = (prompt or "").strip()
    flavor_list = [f for f in (flavors or []) if f]
    if flavor_list:
        context += f"\nStory flavor: {', '.join(flavor_list)}"
    if extra_detail and extra_detail.strip():
        context += f"\nAdditional notes: {extra_detail.strip()}"
    return context
