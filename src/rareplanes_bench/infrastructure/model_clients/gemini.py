"""
Gemini (Google GenAI SDK) model client

Works against the Gemini API with an API key, or against Vertex AI with a GCP project.
"""

import base64
from collections.abc import Sequence

import httpx
from google import genai
from google.api_core import exceptions as google_exceptions
from google.genai import errors as genai_errors
from google.genai.types import GenerateContentConfig, HttpOptions, Part

from rareplanes_bench.domain.value_objects import ContentPart, TokenUsage
from rareplanes_bench.infrastructure.model_clients.base import ModelClient
from rareplanes_bench.infrastructure.model_clients.errors import (
    EmptyResponse,
    ProviderRejected,
    TransportFailure,
)

# Finish reasons that mean the answer was withheld
BLOCKED_FINISH_REASONS = ("SAFETY", "RECITATION", "OTHER")


def to_gemini_parts(parts: Sequence[ContentPart]) -> list[Part]:
    """Convert neutral parts into inline GenAI parts"""
    converted = []
    for part in parts:
        if part.kind == "image":
            converted.append(
                Part.from_bytes(data=base64.b64decode(part.data or ""), mime_type=part.media_type)
            )
        else:
            converted.append(Part.from_text(text=part.text or ""))
    return converted


class GeminiClient(ModelClient):
    """Model client using the Google GenAI SDK"""

    chars_per_token = 3.5

    def __init__(
        self,
        model_name: str,
        api_key: str | None = None,
        project_id: str | None = None,
        location: str = "global",
        timeout_seconds: int = 120,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ):
        """
        Args:
            model_name: Model name (e.g. gemini-2.5-flash)
            api_key: Gemini API key (Gemini API mode)
            project_id: GCP project ID (Vertex AI mode, used when api_key is not given)
            location: Vertex AI region
            timeout_seconds: Timeout in seconds
            max_tokens: Maximum number of output tokens
            temperature: Sampling temperature
        """
        super().__init__(model_name, max_tokens=max_tokens, temperature=temperature)
        if not api_key and not project_id:
            raise ValueError("GOOGLE_API_KEY or GCP_PROJECT_ID is not set")

        # Timeout is configured via HttpOptions (milliseconds)
        http_options = HttpOptions(timeout=timeout_seconds * 1000)
        if api_key:
            self.client = genai.Client(api_key=api_key, http_options=http_options)
        else:
            self.client = genai.Client(
                vertexai=True,
                project=project_id,
                location=location,
                http_options=http_options,
            )

    def _send(self, system_prompt: str, parts: Sequence[ContentPart]) -> tuple[str, TokenUsage | None]:
        config = GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
            top_p=0.8,
            top_k=10,
        )
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=to_gemini_parts(parts),
                config=config,
            )
        except (
            google_exceptions.DeadlineExceeded,
            google_exceptions.ServiceUnavailable,
            ConnectionError,
            TimeoutError,
            httpx.TransportError,
        ) as e:
            raise TransportFailure(str(e)) from e
        except genai_errors.APIError as e:
            raise ProviderRejected(f"API error ({e.code}): {e.message}", e.code) from e

        if not response.candidates:
            raise EmptyResponse("No candidates returned")
        finish_reason = response.candidates[0].finish_reason
        reason_name = getattr(finish_reason, "name", str(finish_reason))
        if reason_name in BLOCKED_FINISH_REASONS:
            raise ProviderRejected(f"Content blocked ({reason_name})")

        usage = None
        if response.usage_metadata:
            usage = TokenUsage(
                prompt_tokens=getattr(response.usage_metadata, "prompt_token_count", 0) or 0,
                completion_tokens=getattr(response.usage_metadata, "candidates_token_count", 0) or 0,
            )
        return response.text or "", usage
