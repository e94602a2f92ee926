"""
Domain Layer

Defines constants, entities, and value objects that form the core of the evaluation engine.
Has no dependencies on external libraries.
"""

from rareplanes_bench.domain.constants import (
    CLASS_NAMES,
    DEFAULT_PRICING,
    PROVIDERS,
    SUBSETS,
    ModelSpec,
    ProviderSpec,
)
from rareplanes_bench.domain.entities import (
    EvaluationConfig,
    EvaluationImage,
    EvaluationResult,
    ExemplarImage,
    ImageStatus,
    RunStatus,
)
from rareplanes_bench.domain.value_objects import (
    ContentPart,
    ImageScore,
    Prediction,
    ProviderResponse,
    TokenUsage,
)

__all__ = [
    # constants
    "CLASS_NAMES",
    "DEFAULT_PRICING",
    "PROVIDERS",
    "SUBSETS",
    "ModelSpec",
    "ProviderSpec",
    # entities
    "EvaluationConfig",
    "EvaluationImage",
    "EvaluationResult",
    "ExemplarImage",
    "ImageStatus",
    "RunStatus",
    # value objects
    "ContentPart",
    "ImageScore",
    "Prediction",
    "ProviderResponse",
    "TokenUsage",
]
