"""Tests for the OpenAI adapter."""

import base64
import json
from unittest.mock import Mock

import httpx
import openai
import pytest

from recipe_clipper.ai_client import GenerationError, GenerativeClient, image_data_url

SCHEMA = {"type": "object", "properties": {"name": {"type": "string"}}, "required": ["name"]}
_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _completion(content):
    return Mock(choices=[Mock(message=Mock(content=content))])


@pytest.fixture
def openai_client():
    return Mock()


@pytest.fixture
def client(openai_client):
    return GenerativeClient(client=openai_client, model="test-model", timeout=5)


class TestImageDataUrl:
    def test_encodes_bytes(self):
        assert image_data_url(b"abc", "image/png") == "data:image/png;base64,YWJj"

    def test_default_mime(self):
        assert image_data_url(b"").startswith("data:image/jpeg;base64,")


class TestStructuredGeneration:
    def test_returns_decoded_object(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion(json.dumps({"name": "Soup"}))

        assert client.request_structured_generation("prompt", SCHEMA) == {"name": "Soup"}

    def test_sends_schema_and_options(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion('{"name": "x"}')

        client.request_structured_generation("Make soup", SCHEMA, schema_name="recipe", temperature=0.3)

        kwargs = openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["messages"] == [{"role": "user", "content": "Make soup"}]
        assert kwargs["response_format"]["json_schema"]["name"] == "recipe"
        assert kwargs["response_format"]["json_schema"]["schema"] is SCHEMA
        assert kwargs["temperature"] == 0.3
        assert kwargs["timeout"] == 5

    def test_temperature_omitted_by_default(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion('{"name": "x"}')
        client.request_structured_generation("p", SCHEMA)
        assert "temperature" not in openai_client.chat.completions.create.call_args.kwargs

    def test_image_sent_as_data_url(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion('{"name": "x"}')

        client.request_structured_generation("Read this", SCHEMA, image=(b"abc", "image/png"))

        content = openai_client.chat.completions.create.call_args.kwargs["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "Read this"}
        assert content[1]["image_url"]["url"] == "data:image/png;base64,YWJj"

    def test_missing_required_key(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion('{"other": 1}')

        with pytest.raises(GenerationError, match="missing required fields: name"):
            client.request_structured_generation("p", SCHEMA)

    def test_invalid_json(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion("not json")

        with pytest.raises(GenerationError, match="parse AI response"):
            client.request_structured_generation("p", SCHEMA)

    def test_non_object_payload(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion("[1, 2]")

        with pytest.raises(GenerationError, match="not a JSON object"):
            client.request_structured_generation("p", SCHEMA)

    def test_empty_content(self, client, openai_client):
        openai_client.chat.completions.create.return_value = _completion(None)

        with pytest.raises(GenerationError, match="Empty response"):
            client.request_structured_generation("p", SCHEMA)

    def test_no_choices(self, client, openai_client):
        openai_client.chat.completions.create.return_value = Mock(choices=[])

        with pytest.raises(GenerationError, match="Empty response"):
            client.request_structured_generation("p", SCHEMA)

    @pytest.mark.parametrize("error,message", [
        (openai.APITimeoutError(request=_REQUEST), "API timeout"),
        (openai.APIConnectionError(request=_REQUEST), "API connection error"),
        (
            openai.RateLimitError("slow down", response=httpx.Response(429, request=_REQUEST), body=None),
            "rate limit",
        ),
    ])
    def test_api_errors_become_generation_errors(self, client, openai_client, error, message):
        openai_client.chat.completions.create.side_effect = error

        with pytest.raises(GenerationError, match=message):
            client.request_structured_generation("p", SCHEMA)

    def test_single_attempt(self, client, openai_client):
        openai_client.chat.completions.create.side_effect = openai.APIConnectionError(request=_REQUEST)

        with pytest.raises(GenerationError):
            client.request_structured_generation("p", SCHEMA)
        assert openai_client.chat.completions.create.call_count == 1


class TestRequestImage:
    def test_returns_decoded_bytes(self, client, openai_client):
        openai_client.images.generate.return_value = Mock(data=[Mock(b64_json=base64.b64encode(b"png").decode())])

        assert client.request_image("A photo of soup") == b"png"
        assert openai_client.images.generate.call_args.kwargs["prompt"] == "A photo of soup"

    def test_api_error_returns_none(self, client, openai_client):
        openai_client.images.generate.side_effect = openai.APIConnectionError(request=_REQUEST)

        assert client.request_image("p") is None

    def test_empty_payload_returns_none(self, client, openai_client):
        openai_client.images.generate.return_value = Mock(data=[Mock(b64_json=None)])
        assert client.request_image("p") is None

        openai_client.images.generate.return_value = Mock(data=[])
        assert client.request_image("p") is None
