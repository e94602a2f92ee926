"""
Model client base class and retry policy

Defines the abstract base class inherited by all provider clients,
the usage-estimation heuristic for providers that omit usage,
and the retry policy shared by the orchestrator.
"""

import logging
import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence

from rareplanes_bench.domain.value_objects import ContentPart, ProviderResponse, TokenUsage
from rareplanes_bench.infrastructure.model_clients.errors import (
    EmptyResponse,
    ProviderRejected,
    TransportFailure,
)

logger = logging.getLogger(__name__)

# Flat overhead added per image when usage has to be estimated
IMAGE_TOKEN_OVERHEAD = 100


def linear_backoff(attempt: int, base_delay: float = 1.0) -> float:
    """Delay in seconds after the given (1-based) failed attempt"""
    return attempt * base_delay


def call_with_retry(
    call: Callable[[], ProviderResponse],
    max_attempts: int = 3,
    backoff: Callable[[int], float] = linear_backoff,
) -> ProviderResponse:
    """
    Run a provider call until it yields non-empty content.

    Error and empty responses, and TransportFailure, consume the same attempt budget.

    Args:
        call: The provider call (no arguments)
        max_attempts: Total number of attempts
        backoff: Retry policy mapping the failed attempt number to a delay in seconds

    Returns:
        The first response with non-empty content

    Raises:
        ValueError: If max_attempts is less than 1
        TransportFailure: The last transport failure when the budget is exhausted
        ProviderRejected: If the last attempt carried a provider error
        EmptyResponse: If the last attempt carried no content
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1.")

    last_response: ProviderResponse | None = None
    last_exception: TransportFailure | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            response = call()
        except TransportFailure as e:
            last_exception, last_response = e, None
            logger.warning("Attempt %d/%d failed: %s", attempt, max_attempts, e)
        else:
            if response.content and response.content.strip() and not response.error:
                return response
            last_exception, last_response = None, response
            logger.warning(
                "Attempt %d/%d returned no content: %s",
                attempt, max_attempts, response.error or "empty response",
            )
        if attempt < max_attempts:
            time.sleep(backoff(attempt))

    if last_exception is not None:
        raise last_exception
    assert last_response is not None
    if last_response.error:
        raise ProviderRejected(last_response.error)
    raise EmptyResponse()


def estimate_usage(
    system_prompt: str,
    parts: Sequence[ContentPart],
    completion: str,
    chars_per_token: float = 4.0,
) -> TokenUsage:
    """
    Estimate token usage from text and image length

    Text tokens are ceil(len / chars_per_token); each image adds
    ceil(len(base64) / 4) + IMAGE_TOKEN_OVERHEAD.
    """
    text_chars = len(system_prompt) + sum(len(p.text or "") for p in parts if p.kind == "text")
    prompt_tokens = math.ceil(text_chars / chars_per_token)
    for part in parts:
        if part.kind == "image":
            prompt_tokens += math.ceil(len(part.data or "") / 4) + IMAGE_TOKEN_OVERHEAD
    return TokenUsage(
        prompt_tokens=prompt_tokens,
        completion_tokens=math.ceil(len(completion) / chars_per_token),
        estimated=True,
    )


class ModelClient(ABC):
    """Abstract base class for provider clients"""

    # Token density used when the provider omits usage
    chars_per_token: float = 4.0

    def __init__(self, model_name: str, max_tokens: int = 1000, temperature: float = 0.1):
        self.model_name = model_name
        self.max_tokens = max_tokens
        self.temperature = temperature

    @abstractmethod
    def _send(self, system_prompt: str, parts: Sequence[ContentPart]) -> tuple[str, TokenUsage | None]:
        """
        Send one request and return (text, usage).

        Implementations map SDK errors to TransportFailure / ProviderRejected.
        """

    def analyze_image(self, system_prompt: str, parts: Sequence[ContentPart]) -> ProviderResponse:
        """
        Send the prompt and content parts and retrieve the response

        Provider-reported errors and empty answers are returned in the error field.

        Raises:
            TransportFailure: On network-level failure
        """
        start_time = time.time()
        try:
            text, usage = self._send(system_prompt, parts)
        except (ProviderRejected, EmptyResponse) as e:
            duration_ms = int((time.time() - start_time) * 1000)
            logger.warning("%s call rejected: %s", self.model_name, e)
            return ProviderResponse(content="", duration_ms=duration_ms, error=str(e))
        duration_ms = int((time.time() - start_time) * 1000)

        text = (text or "").strip()
        if not text:
            return ProviderResponse(
                content="", duration_ms=duration_ms, error=str(EmptyResponse())
            )
        if usage is None:
            usage = estimate_usage(system_prompt, parts, text, self.chars_per_token)
        logger.debug("%s raw response: %s", self.model_name, text)
        return ProviderResponse(content=text, duration_ms=duration_ms, usage=usage)
