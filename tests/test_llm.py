import pytest

from bloombrain.errors import ConfigurationError, ContentSafetyError, GenerationError
from bloombrain.llm import GenerativeClient, strip_code_fences

from fakes import fake_sdk


def test_strip_code_fences():
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"
    assert strip_code_fences('  {"plain": true} ') == '{"plain": true}'


def test_missing_key_raises_before_any_request():
    client = GenerativeClient(api_key=None)
    assert not client.has_credentials()
    with pytest.raises(ConfigurationError):
        client.complete_text("hello")


def test_complete_json_requests_schema_and_decodes():
    sdk = fake_sdk('```json\n{"hints": ["Open the door"]}\n```')
    client = GenerativeClient(model="m", client=sdk)

    result = client.complete_json("prompt", {"type": "object"}, system="be kind", name="hints")

    assert result == {"hints": ["Open the door"]}
    call = sdk.calls[0]
    assert call["model"] == "m"
    assert call["messages"][0] == {"role": "system", "content": "be kind"}
    assert call["response_format"]["json_schema"]["name"] == "hints"


def test_invalid_json_is_a_generation_error():
    client = GenerativeClient(client=fake_sdk("not json at all"))
    with pytest.raises(GenerationError):
        client.complete_json("prompt", {"type": "object"})


def test_content_filter_is_a_safety_error():
    client = GenerativeClient(client=fake_sdk("", finish_reason="content_filter"))
    with pytest.raises(ContentSafetyError):
        client.complete_text("prompt")


def test_empty_text_is_a_generation_error():
    client = GenerativeClient(client=fake_sdk("   "))
    with pytest.raises(GenerationError):
        client.complete_text("prompt")


def test_vision_sends_data_url():
    sdk = fake_sdk("A red ball!")
    client = GenerativeClient(client=sdk)

    assert client.complete_vision("What is this?", b"\x89PNG", "image/png") == "A red ball!"
    parts = sdk.calls[0]["messages"][-1]["content"]
    assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")
