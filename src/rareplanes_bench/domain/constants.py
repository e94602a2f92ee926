"""
Domain Constants

Centrally manages constants shared across the evaluation engine:
dataset classes, subsets, provider registry and pricing.
"""

from dataclasses import dataclass, field

# Aircraft classes of the dataset (YOLO class id -> name)
CLASS_NAMES: dict[int, str] = {
    0: "Large Civil Transport",
    1: "Medium Civil Transport",
    2: "Military Bomber",
    3: "Military Fighter",
    4: "Military Trainer",
    5: "Military Transport",
    6: "Small Civil Transport",
}

MIN_CLASS_ID = min(CLASS_NAMES)
MAX_CLASS_ID = max(CLASS_NAMES)

# Dataset partitions
SUBSETS = ("train", "valid", "test")

# Fallback pricing (USD / 1K tokens) for unknown provider/model pairs
DEFAULT_PRICING = {"input": 0.005, "output": 0.015}

# Tile-based image token heuristic
IMAGE_TILE_PIXELS = 512 * 512
TOKENS_PER_IMAGE_TILE = 170


@dataclass(frozen=True)
class ModelSpec:
    """A model offered by a provider"""
    id: str
    name: str
    supports_vision: bool = True
    max_tokens: int = 4096
    cost_per_1k_input: float | None = None
    cost_per_1k_output: float | None = None


@dataclass(frozen=True)
class ProviderSpec:
    """A provider binding (one tagged variant of the adapter)"""
    id: str
    name: str
    api_key_env: str
    base_url: str | None = None
    models: tuple[ModelSpec, ...] = field(default_factory=tuple)
    # Pricing applied to any model of the provider that is not listed (local servers)
    default_pricing: dict | None = None
    requires_credential: bool = True


PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(
        id="openai",
        name="OpenAI",
        api_key_env="OPENAI_API_KEY",
        base_url="https://api.openai.com/v1",
        models=(
            ModelSpec("gpt-4o", "GPT-4o", max_tokens=4096, cost_per_1k_input=0.0025, cost_per_1k_output=0.01),
            ModelSpec("gpt-4o-mini", "GPT-4o Mini", max_tokens=4096, cost_per_1k_input=0.00015, cost_per_1k_output=0.0006),
            ModelSpec("gpt-4.1", "GPT-4.1", max_tokens=8192, cost_per_1k_input=0.002, cost_per_1k_output=0.008),
            ModelSpec("gpt-4.1-mini", "GPT-4.1 Mini", max_tokens=8192, cost_per_1k_input=0.0004, cost_per_1k_output=0.0016),
        ),
    ),
    "anthropic": ProviderSpec(
        id="anthropic",
        name="Anthropic",
        api_key_env="ANTHROPIC_API_KEY",
        base_url="https://api.anthropic.com/v1",
        models=(
            ModelSpec("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5", cost_per_1k_input=0.003, cost_per_1k_output=0.015),
            ModelSpec("claude-haiku-4-5-20251001", "Claude Haiku 4.5", cost_per_1k_input=0.0008, cost_per_1k_output=0.004),
            ModelSpec("claude-opus-4-5-20251101", "Claude Opus 4.5", cost_per_1k_input=0.015, cost_per_1k_output=0.075),
        ),
    ),
    "google": ProviderSpec(
        id="google",
        name="Google Gemini",
        api_key_env="GOOGLE_API_KEY",
        base_url="https://generativelanguage.googleapis.com/v1beta",
        models=(
            ModelSpec("gemini-2.5-pro", "Gemini 2.5 Pro", max_tokens=8192, cost_per_1k_input=0.00125, cost_per_1k_output=0.01),
            ModelSpec("gemini-2.5-flash", "Gemini 2.5 Flash", max_tokens=8192, cost_per_1k_input=0.0003, cost_per_1k_output=0.0025),
            ModelSpec("gemini-2.0-flash", "Gemini 2.0 Flash", max_tokens=8192, cost_per_1k_input=0.0001, cost_per_1k_output=0.0004),
        ),
    ),
    "vertex": ProviderSpec(
        id="vertex",
        name="Google Vertex AI",
        api_key_env="GCP_PROJECT_ID",
        models=(
            ModelSpec("gemini-2.5-pro", "Gemini 2.5 Pro", max_tokens=8192, cost_per_1k_input=0.00125, cost_per_1k_output=0.01),
            ModelSpec("gemini-2.5-flash", "Gemini 2.5 Flash", max_tokens=8192, cost_per_1k_input=0.0003, cost_per_1k_output=0.0025),
        ),
    ),
    "groq": ProviderSpec(
        id="groq",
        name="Groq",
        api_key_env="GROQ_API_KEY",
        base_url="https://api.groq.com/openai/v1",
        models=(
            ModelSpec("meta-llama/llama-4-scout-17b-16e-instruct", "Llama 4 Scout", max_tokens=8192, cost_per_1k_input=0.00011, cost_per_1k_output=0.00034),
            ModelSpec("meta-llama/llama-4-maverick-17b-128e-instruct", "Llama 4 Maverick", max_tokens=8192, cost_per_1k_input=0.0002, cost_per_1k_output=0.0006),
        ),
    ),
    "xai": ProviderSpec(
        id="xai",
        name="xAI",
        api_key_env="XAI_API_KEY",
        base_url="https://api.x.ai/v1",
        models=(
            ModelSpec("grok-4", "Grok 4", max_tokens=8192, cost_per_1k_input=0.003, cost_per_1k_output=0.015),
            ModelSpec("grok-2-vision-1212", "Grok 2 Vision", max_tokens=8192, cost_per_1k_input=0.002, cost_per_1k_output=0.01),
        ),
    ),
    "azure": ProviderSpec(
        id="azure",
        name="Azure OpenAI",
        api_key_env="AZURE_OPENAI_API_KEY",
        models=(
            ModelSpec("gpt-4o", "GPT-4o (Azure)", max_tokens=4096, cost_per_1k_input=0.0025, cost_per_1k_output=0.01),
        ),
    ),
    "lmstudio": ProviderSpec(
        id="lmstudio",
        name="LM Studio",
        api_key_env="LMSTUDIO_API_KEY",
        base_url="http://localhost:1234/v1",
        default_pricing={"input": 0.0, "output": 0.0},
        requires_credential=False,
    ),
}
