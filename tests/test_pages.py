"""
Tests for the server-rendered pages.
"""

import html
import json
import re

import pytest

from config.settings import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE
from conftest import character_row


@pytest.fixture
def seeded(supabase):
    supabase.tables["characters"] = [
        character_row("c1", "alice", "Ava"),
        character_row("c2", "alice", "Ben"),
        character_row("c3", "bob", "Cleo"),
    ]
    supabase.tables["stories"] = [
        {"id": "s1", "owner_id": "alice", "title": "Casino Royale-ish",
         "full_story": "First paragraph.\n\nSecond paragraph.", "genre": "Heist",
         "characters_used": ["c1", "gone"], "created_at": "2024-02-01T00:00:00+00:00"},
        {"id": "s2", "owner_id": "bob", "title": "Bob's Secret", "full_story": "b",
         "genre": "Drama", "characters_used": ["c3"]},
    ]
    return supabase


# ============================================
# LOGIN
# ============================================


def test_home_shows_login_form(client):
    response = client.get("/")
    assert response.status_code == 200
    assert 'action="/login"' in response.text


def test_home_shows_callback_error(client):
    response = client.get("/", params={"error_description": "Link expired"})
    assert "Link expired" in response.text


def test_login_sends_magic_link(client, auth):
    response = client.post("/login", data={"email": " ava@example.com "})

    assert response.status_code == 200
    assert auth.magic_links == ["ava@example.com"]
    assert "Check your email for the magic link!" in response.text


def test_login_requires_email(client, auth):
    response = client.post("/login", data={"email": ""})
    assert "Enter your email address." in response.text
    assert auth.magic_links == []


def test_callback_sets_cookies_and_profile(client, supabase):
    response = client.get(
        "/auth/callback",
        params={"token_hash": "good-hash", "type": "email"},
        follow_redirects=False,
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/playground"
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith(f"{ACCESS_TOKEN_COOKIE}=token-alice") for c in cookies)
    assert any(c.startswith(f"{REFRESH_TOKEN_COOKIE}=refresh-alice") for c in cookies)
    assert all("HttpOnly" in c for c in cookies)

    profile = supabase.tables["profiles"][0]
    assert profile["id"] == "alice"
    assert profile["avatar_url"].endswith("seed=alice")


def test_callback_with_bad_link(client):
    response = client.get(
        "/auth/callback", params={"token_hash": "stale"}, follow_redirects=False
    )
    assert response.status_code == 303
    assert response.headers["location"].startswith("/?error_description=")


def test_logout_clears_cookies(alice_client):
    response = alice_client.post("/logout", follow_redirects=False)
    assert response.status_code == 303
    cookies = response.headers.get_list("set-cookie")
    assert any(c.startswith(f'{ACCESS_TOKEN_COOKIE}=""') for c in cookies)


# ============================================
# PLAYGROUND
# ============================================


def test_playground_requires_login(client):
    response = client.get("/playground", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/"


def test_playground_lists_own_items(alice_client, seeded):
    response = alice_client.get("/playground")

    assert response.status_code == 200
    assert "Ava" in response.text and "Ben" in response.text
    assert "Cleo" not in response.text
    assert "Casino Royale-ish" in response.text
    assert "Bob&#39;s Secret" not in response.text and "Bob's Secret" not in response.text
    assert "alice@example.com" in response.text


def test_delete_confirm_page_touches_nothing(alice_client, seeded):
    response = alice_client.get("/characters/c1/delete")

    assert response.status_code == 200
    assert "Delete Ava?" in response.text
    assert seeded.ops("characters", "delete") == []


def test_cancelled_delete_makes_no_call(alice_client, seeded):
    response = alice_client.post(
        "/characters/c1/delete", data={"confirm": "no"}, follow_redirects=False
    )

    assert response.status_code == 303
    assert seeded.ops("characters", "delete") == []
    assert len(seeded.tables["characters"]) == 3


def test_confirmed_delete_makes_exactly_one_call(alice_client, seeded):
    response = alice_client.post(
        "/characters/c1/delete", data={"confirm": "yes"}, follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/playground"
    assert len(seeded.ops("characters", "delete")) == 1
    assert "c1" not in [c["id"] for c in seeded.tables["characters"]]


def test_delete_failure_shows_error(alice_client, seeded):
    seeded.fail("characters", "delete")

    response = alice_client.post("/characters/c1/delete", data={"confirm": "yes"})

    assert response.status_code == 200
    assert "Could not delete character. Try again." in response.text


# ============================================
# STORIES
# ============================================


def test_story_form_lists_characters(alice_client, seeded):
    response = alice_client.get("/story/new")
    assert response.status_code == 200
    assert 'value="c1"' in response.text
    assert 'value="c3"' not in response.text


def test_story_form_validation(alice_client, seeded, generation):
    response = alice_client.post("/story/new", data={"genre": "Heist"})

    assert "Select at least 1 character and choose a genre." in response.text
    assert generation.story_calls == []


def test_story_form_generates_and_redirects(alice_client, seeded, generation):
    response = alice_client.post(
        "/story/new",
        data={
            "characters": ["c1", "c2"],
            "genre": "Heist",
            "prompt": "They rob a casino",
            "flavors": ["Plot twist"],
            "extra_detail": "In Monaco",
        },
        follow_redirects=False,
    )

    assert response.status_code == 303
    story = seeded.tables["stories"][-1]
    assert response.headers["location"] == f"/story/{story['id']}"
    assert story["prompt_context"] == (
        "They rob a casino\nStory flavor: Plot twist\nAdditional notes: In Monaco"
    )
    assert generation.story_calls[0][2] == story["prompt_context"]


def test_story_form_generation_error(alice_client, seeded, generation):
    generation.fail_story_parse()

    response = alice_client.post("/story/new", data={"characters": ["c1"], "genre": "Heist"})

    assert "Error generating story. Try again." in response.text
    assert seeded.ops("stories", "insert") == []


def test_story_reader(alice_client, seeded):
    response = alice_client.get("/story/s1")

    assert response.status_code == 200
    assert "<p>First paragraph.</p>" in response.text
    assert "<p>Second paragraph.</p>" in response.text


def test_story_reader_hides_other_users_story(alice_client, seeded):
    response = alice_client.get("/story/s2")
    assert response.status_code == 404
    assert "Bob" not in response.text


def _delete_prompts(page: str) -> list[str]:
    """Confirmation messages of the playground delete forms, as the browser's JS sees them."""
    handlers = [html.unescape(h) for h in re.findall(r'onsubmit="([^"]*)"', page)]
    prompts = []
    for handler in handlers:
        call = re.fullmatch(r"return confirm\((.*)\);", handler)
        assert call is not None, handler
        prompts.append(json.loads(call.group(1)))
    return prompts


def test_delete_prompt_survives_quotes_in_names(alice_client, supabase):
    supabase.tables["characters"] = [
        character_row("c1", "alice", "D'Angelo"),
        character_row("c2", "alice", 'Dr. "Doom" </script>'),
    ]

    response = alice_client.get("/playground")

    assert sorted(_delete_prompts(response.text)) == sorted([
        "Delete D'Angelo? This cannot be undone.",
        'Delete Dr. "Doom" </script>? This cannot be undone.',
    ])
    assert "</script>?" not in response.text


# ============================================
# STORE ERRORS
# ============================================


def test_story_reader_store_error_is_404(alice_client, seeded):
    seeded.fail("stories", "select", "invalid input syntax for type uuid")

    response = alice_client.get("/story/not-a-uuid")

    assert response.status_code == 404
    assert "Story not found" in response.text


def test_delete_confirm_store_error_goes_back(alice_client, seeded):
    seeded.fail("characters", "select", "invalid input syntax for type uuid")

    response = alice_client.get("/characters/not-a-uuid/delete", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "/playground"
    assert seeded.ops("characters", "delete") == []


def test_playground_store_error_shows_message(alice_client, seeded):
    seeded.fail("stories", "select")

    response = alice_client.get("/playground")

    assert response.status_code == 200
    assert "Could not load your characters and stories. Try again." in response.text


def test_story_form_store_error_shows_message(alice_client, seeded):
    seeded.fail("characters", "select")

    response = alice_client.get("/story/new")

    assert response.status_code == 200
    assert "Could not load your characters and stories. Try again." in response.text
