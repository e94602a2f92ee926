"""
Provider Adapter

Resolves credentials, creates the client for a provider binding and exposes
a single call() contract shared by every provider.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping, Sequence

from rareplanes_bench.domain.constants import PROVIDERS, ProviderSpec
from rareplanes_bench.domain.entities import ExemplarImage
from rareplanes_bench.domain.value_objects import ProviderResponse
from rareplanes_bench.exemplar_store import ExemplarLibrary, KeyValueStore
from rareplanes_bench.harness_config import ProviderConfig
from rareplanes_bench.infrastructure.model_clients.base import ModelClient
from rareplanes_bench.infrastructure.model_clients.claude import ClaudeClient
from rareplanes_bench.infrastructure.model_clients.errors import MissingCredential, UnknownProvider
from rareplanes_bench.infrastructure.model_clients.gemini import GeminiClient
from rareplanes_bench.infrastructure.model_clients.openai_compatible import (
    AzureOpenAIClient,
    OpenAIClient,
)
from rareplanes_bench.prompt_builder import build_request_parts

logger = logging.getLogger(__name__)

LMSTUDIO_PLACEHOLDER_KEY = "lm-studio"


def _max_tokens(spec: ProviderSpec, model_id: str, config: ProviderConfig) -> int:
    """Configured output limit, capped by the model's own limit when the model is registered"""
    model = next((m for m in spec.models if m.id == model_id), None)
    if model is None:
        return config.max_tokens
    return min(config.max_tokens, model.max_tokens)


def _openai_binding(spec: ProviderSpec, model_id: str, credential: str, config: ProviderConfig) -> ModelClient:
    base_url = spec.base_url
    if spec.id == "lmstudio":
        base_url = os.environ.get("LMSTUDIO_BASE_URL", spec.base_url)
    return OpenAIClient(
        model_id,
        api_key=credential,
        base_url=base_url,
        timeout_seconds=config.timeout_seconds,
        max_tokens=_max_tokens(spec, model_id, config),
        temperature=config.temperature,
    )


def _azure_binding(spec: ProviderSpec, model_id: str, credential: str, config: ProviderConfig) -> ModelClient:
    return AzureOpenAIClient(
        model_id,
        api_key=credential,
        endpoint=os.environ.get("AZURE_OPENAI_ENDPOINT", ""),
        timeout_seconds=config.timeout_seconds,
        max_tokens=_max_tokens(spec, model_id, config),
        temperature=config.temperature,
    )


def _claude_binding(spec: ProviderSpec, model_id: str, credential: str, config: ProviderConfig) -> ModelClient:
    return ClaudeClient(
        model_id,
        api_key=credential,
        timeout_seconds=config.timeout_seconds,
        max_tokens=_max_tokens(spec, model_id, config),
        temperature=config.temperature,
    )


def _gemini_binding(spec: ProviderSpec, model_id: str, credential: str, config: ProviderConfig) -> ModelClient:
    return GeminiClient(
        model_id,
        api_key=credential,
        timeout_seconds=config.timeout_seconds,
        max_tokens=_max_tokens(spec, model_id, config),
        temperature=config.temperature,
    )


def _vertex_binding(spec: ProviderSpec, model_id: str, credential: str, config: ProviderConfig) -> ModelClient:
    return GeminiClient(
        model_id,
        project_id=credential,
        location=os.environ.get("GCP_LOCATION", "global"),
        timeout_seconds=config.timeout_seconds,
        max_tokens=_max_tokens(spec, model_id, config),
        temperature=config.temperature,
    )


ClientBuilder = Callable[[ProviderSpec, str, str, ProviderConfig], ModelClient]

# One tagged variant per supported provider
CLIENT_BUILDERS: dict[str, ClientBuilder] = {
    "openai": _openai_binding,
    "groq": _openai_binding,
    "xai": _openai_binding,
    "lmstudio": _openai_binding,
    "azure": _azure_binding,
    "anthropic": _claude_binding,
    "google": _gemini_binding,
    "vertex": _vertex_binding,
}


class ProviderAdapter:
    """Uniform call interface over every provider binding"""

    def __init__(
        self,
        credentials: Mapping[str, str] | None = None,
        store: KeyValueStore | None = None,
        library: ExemplarLibrary | None = None,
        config: ProviderConfig | None = None,
    ):
        """
        Args:
            credentials: Explicit credentials per provider id (highest priority)
            store: Key-value store consulted after the environment (key: the provider's env var name)
            library: Exemplar library supplying per-class tags
            config: Provider request configuration
        """
        self.credentials = dict(credentials or {})
        self.store = store
        self.library = library
        self.config = config or ProviderConfig()
        self._clients: dict[tuple[str, str], ModelClient] = {}

    def get_provider(self, provider_id: str) -> ProviderSpec:
        spec = PROVIDERS.get(provider_id)
        if spec is None or provider_id not in CLIENT_BUILDERS:
            raise UnknownProvider(provider_id)
        return spec

    def resolve_credential(self, provider_id: str) -> str:
        """
        Resolve the credential: explicit mapping > environment variable > key-value store

        Raises:
            UnknownProvider: If the provider is not registered
            MissingCredential: If no credential is found for a provider that needs one
        """
        spec = self.get_provider(provider_id)
        credential = (
            self.credentials.get(provider_id)
            or os.environ.get(spec.api_key_env)
            or (self.store.get(spec.api_key_env) if self.store is not None else None)
        )
        if credential:
            return credential
        if not spec.requires_credential:
            return LMSTUDIO_PLACEHOLDER_KEY
        raise MissingCredential(provider_id, spec.api_key_env)

    def check_credentials(self, provider_id: str) -> None:
        """Fail fast before a run starts"""
        self.resolve_credential(provider_id)

    def get_client(self, provider_id: str, model_id: str) -> ModelClient:
        """Create (or reuse) the client for a provider/model pair"""
        key = (provider_id, model_id)
        if key not in self._clients:
            spec = self.get_provider(provider_id)
            credential = self.resolve_credential(provider_id)
            self._clients[key] = CLIENT_BUILDERS[provider_id](spec, model_id, credential, self.config)
        return self._clients[key]

    def call(
        self,
        provider_id: str,
        model_id: str,
        system_prompt: str,
        image_base64: str,
        reference_examples: Sequence[ExemplarImage] | None = None,
    ) -> ProviderResponse:
        """
        Analyze one image

        Provider-reported errors are returned in the error field with the elapsed duration.

        Raises:
            UnknownProvider: If the provider is not registered
            MissingCredential: If no credential is configured
            TransportFailure: On network-level failure
        """
        client = self.get_client(provider_id, model_id)
        tags = self.library.tags_by_class() if self.library is not None else None
        parts = build_request_parts(image_base64, reference_examples, tags)
        logger.debug(
            "Calling %s/%s with %d parts (%d reference examples)",
            provider_id, model_id, len(parts), len(reference_examples or []),
        )
        return client.analyze_image(system_prompt, parts)
