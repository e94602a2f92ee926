"""
Anthropic Claude model client
"""

from collections.abc import Sequence

from anthropic import Anthropic, APIConnectionError, APIStatusError, APITimeoutError

from rareplanes_bench.domain.value_objects import ContentPart, TokenUsage
from rareplanes_bench.infrastructure.model_clients.base import ModelClient
from rareplanes_bench.infrastructure.model_clients.errors import ProviderRejected, TransportFailure


def to_claude_content(parts: Sequence[ContentPart]) -> list[dict]:
    """Convert neutral parts into Messages API content blocks (base64 image sources)"""
    content = []
    for part in parts:
        if part.kind == "image":
            content.append({
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": part.media_type,
                    "data": part.data,
                },
            })
        else:
            content.append({"type": "text", "text": part.text or ""})
    return content


class ClaudeClient(ModelClient):
    """Claude client using the Anthropic API"""

    def __init__(
        self,
        model_name: str,
        api_key: str,
        timeout_seconds: int = 120,
        max_tokens: int = 1000,
        temperature: float = 0.1,
    ):
        """
        Args:
            model_name: Model name (e.g. claude-sonnet-4-5-20250929)
            api_key: Anthropic API key
            timeout_seconds: Request timeout in seconds
            max_tokens: Maximum number of output tokens
            temperature: Sampling temperature
        """
        super().__init__(model_name, max_tokens=max_tokens, temperature=temperature)
        self.client = Anthropic(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def _send(self, system_prompt: str, parts: Sequence[ContentPart]) -> tuple[str, TokenUsage | None]:
        try:
            response = self.client.messages.create(
                model=self.model_name,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": to_claude_content(parts)}],
            )
        except (APIConnectionError, APITimeoutError) as e:
            raise TransportFailure(str(e)) from e
        except APIStatusError as e:
            raise ProviderRejected(f"API error ({e.status_code}): {e.message}", e.status_code) from e

        # The response is a list of blocks; only text blocks carry the answer
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )

        usage = None
        if response.usage:
            usage = TokenUsage(
                prompt_tokens=getattr(response.usage, "input_tokens", 0) or 0,
                completion_tokens=getattr(response.usage, "output_tokens", 0) or 0,
            )
        return text, usage
