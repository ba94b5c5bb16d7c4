import pytest

from bloombrain.companion import (
    HINTS_FALLBACK,
    HINTS_OFFLINE,
    MAX_MEDIA_BYTES,
    Companion,
)
from bloombrain.errors import ConfigurationError, ContentSafetyError, GenerationError, MediaRejected

from fakes import FakeClient


def test_story_hints_offline_and_failure():
    assert Companion(FakeClient(credentials=False)).story_hints("a cave") == HINTS_OFFLINE
    failing = Companion(FakeClient(error=GenerationError("timeout")))
    assert failing.story_hints("a cave") == HINTS_FALLBACK


def test_story_hints_are_trimmed_to_four():
    client = FakeClient(payload={"hints": ["Go in", " ", "Wave", "Sing", "Hide", "Run"]})
    assert Companion(client).story_hints("a cave") == ["Go in", "Wave", "Sing", "Hide"]


def test_story_hints_accept_bare_list_and_reject_garbage():
    assert Companion(FakeClient(payload=["Climb up"])).story_hints("tree") == ["Climb up"]
    assert Companion(FakeClient(payload={"hints": "nope"})).story_hints("tree") == HINTS_FALLBACK


@pytest.mark.parametrize(
    "error,expected",
    [
        (ConfigurationError("no key"), "magic key"),
        (ContentSafetyError("blocked"), "safely"),
        (GenerationError("500"), "hiccup"),
    ],
)
def test_quick_answer_failures_stay_in_character(error, expected):
    assert expected in Companion(FakeClient(error=error)).quick_answer("Why is the sky blue?")


def test_oversized_media_rejected_before_request():
    client = FakeClient()
    companion = Companion(client)

    with pytest.raises(MediaRejected) as excinfo:
        companion.analyze_snapshot(b"0" * (MAX_MEDIA_BYTES + 1), "image/png", "What is it?")
    assert "20MB" in excinfo.value.message
    with pytest.raises(MediaRejected):
        companion.analyze_snapshot(b"clip", "video/mp4", "What is it?")
    assert client.prompts == []


def test_snapshot_analysis_falls_back_gently():
    reply = Companion(FakeClient(error=GenerationError("down"))).analyze_snapshot(
        b"\x89PNG", "image/png", "What is it?"
    )
    assert "gears" in reply
    assert Companion(FakeClient(text="A ladybug!")).analyze_snapshot(b"\x89PNG", "image/png", "?") == "A ladybug!"
