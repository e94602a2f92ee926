"""
Model client package

Provides a unified interface to each vision LLM provider.
"""

from rareplanes_bench.domain.value_objects import ProviderResponse
from rareplanes_bench.infrastructure.model_clients.base import (
    ModelClient,
    call_with_retry,
    linear_backoff,
)
from rareplanes_bench.infrastructure.model_clients.errors import (
    EmptyResponse,
    MissingCredential,
    ProviderError,
    ProviderRejected,
    TransportFailure,
    UnknownProvider,
)
from rareplanes_bench.infrastructure.model_clients.factory import ProviderAdapter

__all__ = [
    "ModelClient",
    "ProviderAdapter",
    "ProviderResponse",
    "call_with_retry",
    "linear_backoff",
    # errors
    "EmptyResponse",
    "MissingCredential",
    "ProviderError",
    "ProviderRejected",
    "TransportFailure",
    "UnknownProvider",
]
