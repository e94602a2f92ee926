"""
OpenAI-compatible model clients

Covers OpenAI, Groq, xAI and LM Studio (chat completions with a base URL)
and Azure OpenAI (deployment-scoped endpoint with the api-key header).
"""

from collections.abc import Sequence

import openai
from openai import AzureOpenAI, OpenAI

from rareplanes_bench.domain.value_objects import ContentPart, TokenUsage
from rareplanes_bench.infrastructure.model_clients.base import ModelClient
from rareplanes_bench.infrastructure.model_clients.errors import (
    EmptyResponse,
    ProviderRejected,
    TransportFailure,
)

AZURE_API_VERSION = "2024-10-21"


def to_openai_content(parts: Sequence[ContentPart]) -> list[dict]:
    """Convert neutral parts into chat-completions content blocks (images as data URLs)"""
    content = []
    for part in parts:
        if part.kind == "image":
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{part.media_type};base64,{part.data}"},
            })
        else:
            content.append({"type": "text", "text": part.text or ""})
    return content


class OpenAIClient(ModelClient):
    """Client for any endpoint speaking the OpenAI chat-completions protocol"""

    def __init__(
        self,
        model_name: str,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: int = 120,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ):
        """
        Args:
            model_name: Model name sent to the API (e.g. gpt-4o)
            api_key: API key (LM Studio accepts any placeholder)
            base_url: Provider endpoint (defaults to the OpenAI API)
            timeout_seconds: Request timeout in seconds
            max_tokens: Maximum number of completion tokens
            temperature: Sampling temperature
        """
        super().__init__(model_name, max_tokens=max_tokens, temperature=temperature)
        self.base_url = base_url
        # Retries are owned by the orchestrator's retry policy
        self.client = OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )

    def _build_messages(self, system_prompt: str, parts: Sequence[ContentPart]) -> list[dict]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": to_openai_content(parts)},
        ]

    def _send(self, system_prompt: str, parts: Sequence[ContentPart]) -> tuple[str, TokenUsage | None]:
        try:
            response = self.client.chat.completions.create(
                model=self.model_name,
                messages=self._build_messages(system_prompt, parts),
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        except (openai.APIConnectionError, openai.APITimeoutError) as e:
            raise TransportFailure(str(e)) from e
        except openai.APIStatusError as e:
            raise ProviderRejected(f"API error ({e.status_code}): {e.message}", e.status_code) from e

        if not response.choices:
            raise EmptyResponse()
        text = response.choices[0].message.content or ""

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens or 0,
                completion_tokens=response.usage.completion_tokens or 0,
            )
        return text, usage


class AzureOpenAIClient(OpenAIClient):
    """Azure OpenAI client (model name is the deployment name)"""

    def __init__(
        self,
        model_name: str,
        api_key: str,
        endpoint: str,
        api_version: str = AZURE_API_VERSION,
        timeout_seconds: int = 120,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ):
        ModelClient.__init__(self, model_name, max_tokens=max_tokens, temperature=temperature)
        if not endpoint:
            raise ValueError("AZURE_OPENAI_ENDPOINT is not set")
        self.base_url = endpoint
        self.client = AzureOpenAI(
            api_key=api_key,
            azure_endpoint=endpoint,
            api_version=api_version,
            timeout=timeout_seconds,
            max_retries=0,
        )
