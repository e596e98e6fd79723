"""Thin adapter over the OpenAI SDK for structured JSON generation and photos."""

import base64
import json
import logging
import time
from typing import Any

import openai

from recipe_clipper import config

logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Raised when the generative service fails or returns an unusable payload."""
    pass


def image_data_url(image_data: bytes, mime_type: str = "image/jpeg") -> str:
    encoded = base64.b64encode(image_data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


class GenerativeClient:
    """Issues single, non-retried requests to the generative service."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = config.OPENAI_MODEL,
        image_model: str = config.OPENAI_IMAGE_MODEL,
        timeout: float = config.OPENAI_TIMEOUT,
        client: openai.OpenAI | None = None,
    ):
        self.model = model
        self.image_model = image_model
        self.timeout = timeout
        self.client = client or openai.OpenAI(
            api_key=api_key or config.OPENAI_API_KEY,
            timeout=timeout,
            max_retries=0,
        )

    def request_structured_generation(
        self,
        prompt: str,
        schema: dict[str, Any],
        *,
        schema_name: str = "response",
        image: tuple[bytes, str] | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        """Ask the model for a JSON object matching ``schema``.

        Args:
            prompt: Instruction text
            schema: JSON schema of the expected object; its ``required`` keys are checked
            schema_name: Name reported to the API for the schema
            image: Optional ``(bytes, mime_type)`` sent alongside the prompt
            temperature: Sampling temperature, or None for the model default

        Returns:
            The decoded JSON object

        Raises:
            GenerationError: On API failure, invalid JSON, or missing required keys
        """
        content: Any = prompt
        if image is not None:
            image_bytes, mime_type = image
            content = [
                {"type": "text", "text": prompt},
                {"type": "image_url", "image_url": {"url": image_data_url(image_bytes, mime_type)}},
            ]

        kwargs: dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        logger.info(
            "Calling OpenAI chat completion",
            extra={"model": self.model, "schema_name": schema_name, "with_image": image is not None},
        )
        t0 = time.monotonic()
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": content}],
                response_format={
                    "type": "json_schema",
                    "json_schema": {"name": schema_name, "schema": schema, "strict": False},
                },
                timeout=self.timeout,
                **kwargs,
            )
        except openai.RateLimitError as e:
            logger.exception("OpenAI rate limit hit", extra={"schema_name": schema_name})
            raise GenerationError(f"API rate limit exceeded: {e}") from e
        except openai.APITimeoutError as e:
            logger.exception("OpenAI request timed out", extra={"schema_name": schema_name})
            raise GenerationError(f"API timeout after {self.timeout:g} seconds: {e}") from e
        except openai.APIConnectionError as e:
            logger.exception("OpenAI connection error", extra={"schema_name": schema_name})
            raise GenerationError(f"API connection error: {e}") from e
        except openai.APIError as e:
            logger.exception("OpenAI API error", extra={"schema_name": schema_name})
            raise GenerationError(f"API error: {e}") from e

        elapsed = round(time.monotonic() - t0, 2)
        logger.info("OpenAI chat completion returned", extra={"schema_name": schema_name, "elapsed_s": elapsed})

        try:
            text = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise GenerationError("Empty response from the AI service") from e
        if not text:
            raise GenerationError("Empty response from the AI service")

        try:
            result = json.loads(text)
        except json.JSONDecodeError as e:
            logger.error("AI response is not valid JSON", extra={"content_preview": text[:200]})
            raise GenerationError(f"Failed to parse AI response as JSON: {e}") from e

        if not isinstance(result, dict):
            raise GenerationError("AI response is not a JSON object")

        missing = [key for key in schema.get("required", []) if key not in result]
        if missing:
            logger.error("AI response missing required keys", extra={"missing": missing, "schema_name": schema_name})
            raise GenerationError(f"AI response missing required fields: {', '.join(missing)}")

        return result

    def request_image(self, prompt: str) -> bytes | None:
        """Generate a photo for ``prompt``; returns None instead of raising on any failure."""
        try:
            response = self.client.images.generate(
                model=self.image_model,
                prompt=prompt,
                size="1024x1024",
                n=1,
                timeout=self.timeout,
            )
            b64 = response.data[0].b64_json
            if not b64:
                logger.warning("Image generation returned no data")
                return None
            return base64.b64decode(b64)
        except openai.APIError:
            logger.exception("Image generation failed")
            return None
        except (AttributeError, IndexError, TypeError, ValueError):
            logger.exception("Image generation returned an unexpected payload")
            return None
