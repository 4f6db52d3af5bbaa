"""
Metadata inference client for the OpenAI vision model.
"""

import json
import logging
import re
from typing import Optional

import httpx
import openai
from pydantic import ValidationError as PydanticValidationError

from models.metadata import RawMetadata
from services.prompts import METADATA_PROMPT
from utils.error_handlers import ExternalServiceError, InvalidResponseError

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


def parse_ai_response(response_text: str) -> RawMetadata:
    """
    Parse the model reply into RawMetadata.

    A fenced code block wins; otherwise the whole reply must be JSON.

    Raises:
        InvalidResponseError: If no JSON object with title, keywords and
            category can be extracted.
    """
    match = _FENCED_JSON.search(response_text or "")
    json_text = match.group(1) if match else (response_text or "").strip()

    try:
        parsed = json.loads(json_text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON from model response: {response_text!r}")
        raise InvalidResponseError(
            f"Invalid JSON response from model: {e}",
            details={"response": (response_text or "")[:500]}
        ) from e

    if not isinstance(parsed, dict):
        raise InvalidResponseError(
            "Invalid response from model: expected a JSON object",
            details={"response": (response_text or "")[:500]}
        )

    try:
        return RawMetadata.model_validate(parsed)
    except PydanticValidationError as e:
        missing = [".".join(str(p) for p in err["loc"]) for err in e.errors()]
        raise InvalidResponseError(
            f"Response missing required fields (title, keywords, category): {', '.join(missing)}",
            details={"fields": missing}
        ) from e


class MetadataService:
    """Sends one image URL plus the fixed prompt to the vision model"""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        max_tokens: int = 1000,
        temperature: Optional[float] = None,
        timeout_seconds: float = 30.0,
        client: Optional[openai.AsyncOpenAI] = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        # Retries are applied by the caller around the whole call
        self._client = client or openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            max_retries=0,
        )

    def _wrap(self, message: str, image_url: str, exc: Exception,
              upstream_status: Optional[int] = None) -> ExternalServiceError:
        return ExternalServiceError(
            message,
            upstream_status=upstream_status,
            details={
                "service": "openai",
                "image_url": image_url,
                "model": self.model,
                "status": upstream_status,
                "original_error": str(exc),
            },
        )

    async def generate_metadata(self, image_url: str) -> RawMetadata:
        """
        Ask the model for title, keywords and category of one image.

        Raises:
            ExternalServiceError: Transport or API failure (carries the
                upstream HTTP status when there is one)
            InvalidResponseError: The reply could not be parsed
        """
        request = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": METADATA_PROMPT},
                        {"type": "image_url", "image_url": {"url": image_url, "detail": "low"}},
                    ],
                }
            ],
            "max_completion_tokens": self.max_tokens,
        }
        if self.temperature is not None:
            request["temperature"] = self.temperature

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.APIStatusError as exc:
            raise self._wrap(
                f"Model API error ({exc.status_code}) while generating metadata",
                image_url, exc, upstream_status=exc.status_code
            ) from exc
        except (openai.APIConnectionError, httpx.TransportError) as exc:
            raise self._wrap(
                f"Network error while generating metadata: {exc}", image_url, exc
            ) from exc
        except openai.APIError as exc:
            raise self._wrap(
                f"Model API error while generating metadata: {exc}", image_url, exc
            ) from exc

        if not response.choices:
            raise InvalidResponseError("Model returned no choices", details={"image_url": image_url})
        content = response.choices[0].message.content
        if not content:
            raise InvalidResponseError("Model returned an empty response", details={"image_url": image_url})

        return parse_ai_response(content)

    async def validate_connection(self) -> bool:
        """Cheap call used by the readiness probe"""
        try:
            await self._client.models.list()
            return True
        except openai.OpenAIError as e:
            logger.error(f"OpenAI connection validation failed: {e}")
            return False
