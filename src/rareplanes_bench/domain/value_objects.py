"""
Domain Value Objects

Defines immutable data structures representing values such as normalized predictions,
accuracy scores, token usage, and provider responses.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Prediction:
    """Structured prediction extracted from a model response"""
    count: int = 0
    classes: list[int] = field(default_factory=list)
    count_confidence: float | None = None
    class_confidences: list[float] | None = None


@dataclass(frozen=True)
class ImageScore:
    """Per-image accuracy (both in [0, 1])"""
    count_accuracy: float
    class_accuracy: float

    def __post_init__(self):
        for name in ("count_accuracy", "class_accuracy"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1]")


@dataclass(frozen=True)
class TokenUsage:
    """Token usage reported (or estimated) for one provider call"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    estimated: bool = False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


@dataclass(frozen=True)
class ProviderResponse:
    """Uniform result of a provider call"""
    content: str
    duration_ms: int
    error: str | None = None
    usage: TokenUsage | None = None


@dataclass(frozen=True)
class ContentPart:
    """Provider-neutral request part: either text or a base64 image"""
    kind: str  # "text" / "image"
    text: str | None = None
    data: str | None = None
    media_type: str = "image/jpeg"

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(kind="text", text=text)

    @classmethod
    def from_image(cls, data: str, media_type: str = "image/jpeg") -> "ContentPart":
        return cls(kind="image", data=data, media_type=media_type)
