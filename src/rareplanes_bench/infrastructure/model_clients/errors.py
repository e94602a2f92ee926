"""
Provider error taxonomy

Run-level errors (MissingCredential, UnknownProvider) abort before any image is processed.
Call-level errors (TransportFailure, ProviderRejected, EmptyResponse) are subject to the retry budget.
"""


class ProviderError(Exception):
    """Base class for all provider-layer errors"""


class MissingCredential(ProviderError):
    """No credential could be resolved for the selected provider"""

    def __init__(self, provider_id: str, env_var: str):
        self.provider_id = provider_id
        self.env_var = env_var
        super().__init__(f"{env_var} is not set (provider: {provider_id})")


class UnknownProvider(ProviderError):
    """The provider id is not part of the registry"""

    def __init__(self, provider_id: str):
        self.provider_id = provider_id
        super().__init__(f"Unknown provider: {provider_id}")


class TransportFailure(ProviderError):
    """Network-level failure (connection refused, timeout, DNS, ...)"""


class ProviderRejected(ProviderError):
    """The provider answered with an error payload"""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyResponse(ProviderError):
    """The provider answered successfully but with no text content"""

    def __init__(self, message: str = "Empty response from provider"):
        super().__init__(message)
