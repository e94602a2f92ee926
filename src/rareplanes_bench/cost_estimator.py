"""
Cost Estimator

Estimates the USD cost of a provider call from token counts and image size.

The figures are estimates built on a tile-based image token heuristic and
published per-1K-token list prices. They are not billing-accurate.
"""

import logging
import math

from rareplanes_bench.domain.constants import (
    DEFAULT_PRICING,
    IMAGE_TILE_PIXELS,
    PROVIDERS,
    TOKENS_PER_IMAGE_TILE,
    ModelSpec,
)

logger = logging.getLogger(__name__)

# Per-image token assumptions used for the pre-run estimate
ESTIMATE_PROMPT_TOKENS = 200
ESTIMATE_IMAGE_TOKENS = 170
ESTIMATE_RESPONSE_TOKENS = 100


def find_model(provider_id: str, model_id: str) -> ModelSpec | None:
    """Look up a model in the provider registry"""
    provider = PROVIDERS.get(provider_id)
    if provider is None:
        return None
    return next((m for m in provider.models if m.id == model_id), None)


def get_pricing(provider_id: str, model_id: str) -> dict[str, float] | None:
    """
    Per-1K-token pricing of a model

    Returns:
        {"input": float, "output": float}, or None when neither the model
        nor its provider declares a price
    """
    model = find_model(provider_id, model_id)
    if model is not None and model.cost_per_1k_input is not None and model.cost_per_1k_output is not None:
        return {"input": model.cost_per_1k_input, "output": model.cost_per_1k_output}
    provider = PROVIDERS.get(provider_id)
    if provider is not None and provider.default_pricing is not None:
        return dict(provider.default_pricing)
    return None


def image_tokens(width: int, height: int) -> int:
    """Tile-based image token estimate: ceil(w*h / 512^2) * 170"""
    return math.ceil((width * height) / IMAGE_TILE_PIXELS) * TOKENS_PER_IMAGE_TILE


def estimate_cost(
    provider_id: str,
    model_id: str,
    image_width: int,
    image_height: int,
    prompt_tokens: int,
    response_tokens: int,
) -> float:
    """
    Estimate the cost of one image analysis call

    Unknown provider/model pairs fall back to DEFAULT_PRICING.

    Args:
        provider_id: Provider id
        model_id: Model id
        image_width: Image width in pixels
        image_height: Image height in pixels
        prompt_tokens: Prompt tokens (text)
        response_tokens: Completion tokens

    Returns:
        Estimated cost in USD
    """
    pricing = get_pricing(provider_id, model_id)
    if pricing is None:
        logger.warning(
            "No pricing for %s/%s, using default pricing %s", provider_id, model_id, DEFAULT_PRICING
        )
        pricing = DEFAULT_PRICING

    input_tokens = prompt_tokens + image_tokens(image_width, image_height)
    input_cost = (input_tokens / 1000) * pricing["input"]
    output_cost = (response_tokens / 1000) * pricing["output"]
    return input_cost + output_cost


def estimate_run_cost(provider_id: str, model_id: str, sample_size: int) -> float:
    """
    Rough cost of a whole run before it starts

    Returns:
        Estimated cost in USD (0.0 when the model has no known pricing)
    """
    pricing = get_pricing(provider_id, model_id)
    if pricing is None:
        return 0.0
    input_tokens = ESTIMATE_PROMPT_TOKENS + ESTIMATE_IMAGE_TOKENS
    per_image = (input_tokens / 1000) * pricing["input"] + (ESTIMATE_RESPONSE_TOKENS / 1000) * pricing["output"]
    return per_image * sample_size
