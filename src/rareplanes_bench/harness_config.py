"""
Benchmark Configuration

Manages loading from environment variables and default values.
"""

import os
from dataclasses import dataclass, field, asdict


def _env_bool(key: str, default: bool) -> bool:
    """Convert an environment variable to bool"""
    val = os.environ.get(key)
    if val is None:
        return default
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int) -> int:
    """Convert an environment variable to int"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to an integer.")


def _env_float(key: str, default: float) -> float:
    """Convert an environment variable to float"""
    val = os.environ.get(key)
    if val is None:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"The value '{val}' of environment variable '{key}' cannot be converted to a number.")


def _env_str(key: str, default: str) -> str:
    """Get an environment variable as a string"""
    return os.environ.get(key, default)


@dataclass
class DatasetConfig:
    """Dataset file server configuration"""
    base_url: str = "http://localhost:3001"
    timeout_seconds: int = 30
    page_size: int = 1000


@dataclass
class RetryConfig:
    """Per-image retry policy (linear backoff)"""
    max_attempts: int = 3
    backoff_seconds: float = 1.0


@dataclass
class ProviderConfig:
    """Provider request configuration"""
    timeout_seconds: int = 120
    max_tokens: int = 1000
    temperature: float = 0.1


@dataclass
class RunDefaults:
    """Defaults for new evaluation runs"""
    sample_size: int = 10
    subset: str = "train"
    api_delay_seconds: float = 0.0
    include_ontology: bool = True
    structured_output: bool = True
    zero_shot_by_example: bool = False


@dataclass
class StorageConfig:
    """Key-value store backing the exemplar library"""
    store_path: str = "~/.rareplanes_bench/store.json"


@dataclass
class BenchConfig:
    """Overall benchmark configuration"""
    dataset: DatasetConfig = field(default_factory=DatasetConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    run: RunDefaults = field(default_factory=RunDefaults)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {"bench_config": asdict(self)}

    @classmethod
    def from_dict(cls, data: dict) -> "BenchConfig":
        """Create from dictionary (handles presence/absence of bench_config key)"""
        config_data = data.get("bench_config", data)
        return cls(
            dataset=DatasetConfig(**config_data.get("dataset", {})),
            retry=RetryConfig(**config_data.get("retry", {})),
            provider=ProviderConfig(**config_data.get("provider", {})),
            run=RunDefaults(**config_data.get("run", {})),
            storage=StorageConfig(**config_data.get("storage", {})),
        )


def load_config() -> BenchConfig:
    """
    Load configuration from environment variables

    Uses default values when environment variables are not set.

    Returns:
        BenchConfig
    """
    dataset = DatasetConfig(
        base_url=_env_str("BENCH_DATASET_URL", "http://localhost:3001"),
        timeout_seconds=_env_int("BENCH_DATASET_TIMEOUT_SECONDS", 30),
        page_size=_env_int("BENCH_DATASET_PAGE_SIZE", 1000),
    )
    retry = RetryConfig(
        max_attempts=_env_int("BENCH_MAX_ATTEMPTS", 3),
        backoff_seconds=_env_float("BENCH_BACKOFF_SECONDS", 1.0),
    )
    provider = ProviderConfig(
        timeout_seconds=_env_int("BENCH_PROVIDER_TIMEOUT_SECONDS", 120),
        max_tokens=_env_int("BENCH_MAX_TOKENS", 1000),
        temperature=_env_float("BENCH_TEMPERATURE", 0.1),
    )
    run = RunDefaults(
        sample_size=_env_int("BENCH_SAMPLE_SIZE", 10),
        subset=_env_str("BENCH_SUBSET", "train"),
        api_delay_seconds=_env_float("BENCH_API_DELAY_SECONDS", 0.0),
        include_ontology=_env_bool("BENCH_INCLUDE_ONTOLOGY", True),
        structured_output=_env_bool("BENCH_STRUCTURED_OUTPUT", True),
        zero_shot_by_example=_env_bool("BENCH_ZERO_SHOT_BY_EXAMPLE", False),
    )
    storage = StorageConfig(
        store_path=_env_str("BENCH_STORE_PATH", "~/.rareplanes_bench/store.json"),
    )
    return BenchConfig(
        dataset=dataset,
        retry=retry,
        provider=provider,
        run=run,
        storage=storage,
    )
