"""
Domain Entities

Defines the primary data structures used in an evaluation run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from rareplanes_bench.domain.constants import SUBSETS
from rareplanes_bench.domain.value_objects import ImageScore


class ImageStatus(str, Enum):
    """Lifecycle of a sampled image"""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
    FAILED = "failed"


class RunStatus(str, Enum):
    """Lifecycle of one model's run"""
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


@dataclass
class EvaluationImage:
    """One sampled dataset image under test"""
    id: str
    filename: str
    subset: str
    image_url: str
    actual_objects: int
    actual_classes: list[int]
    actual_class_names: list[str] = field(default_factory=list)

    # Prediction (absent until processed)
    predicted_objects: int | None = None
    predicted_classes: list[int] | None = None
    predicted_class_names: list[str] | None = None
    predicted_count_confidence: float | None = None
    predicted_class_confidences: list[float] | None = None

    # Provenance
    llm_response: str | None = None
    api_duration: int | None = None  # ms
    cost: float | None = None  # USD
    image_width: int | None = None
    image_height: int | None = None

    score: ImageScore | None = None
    status: ImageStatus = ImageStatus.PENDING

    def __post_init__(self):
        if self.actual_objects < 0:
            raise ValueError("actual_objects must be non-negative")
        if len(self.actual_classes) != self.actual_objects:
            raise ValueError(
                f"actual_classes has {len(self.actual_classes)} entries "
                f"but actual_objects is {self.actual_objects}"
            )
        self.status = ImageStatus(self.status)

    def clear_prediction(self) -> None:
        """Reset to the freshly sampled state (ground truth is kept)"""
        self.predicted_objects = None
        self.predicted_classes = None
        self.predicted_class_names = None
        self.predicted_count_confidence = None
        self.predicted_class_confidences = None
        self.llm_response = None
        self.api_duration = None
        self.cost = None
        self.score = None
        self.status = ImageStatus.PENDING


@dataclass(frozen=True)
class EvaluationConfig:
    """Immutable per-run settings"""
    sample_size: int
    subset: str
    provider: str
    model: str
    system_prompt: str
    include_ontology: bool = True
    zero_shot_by_example: bool = False
    structured_output: bool = True
    api_delay_seconds: float = 0.0

    def __post_init__(self):
        if self.sample_size < 1:
            raise ValueError("sample_size must be at least 1")
        if self.subset not in SUBSETS:
            raise ValueError(f"Unknown subset: {self.subset} (available: {list(SUBSETS)})")
        if self.api_delay_seconds < 0:
            raise ValueError("api_delay_seconds must be non-negative")


@dataclass
class EvaluationResult:
    """Aggregate over one model's run"""
    config: EvaluationConfig
    images: list[EvaluationImage]
    average_count_accuracy: float = 0.0
    average_class_accuracy: float = 0.0
    total_cost: float = 0.0
    start_time: datetime = field(default_factory=datetime.now)
    end_time: datetime | None = None
    duration: int = 0  # sum of per-image API durations (ms)

    @property
    def completed_images(self) -> list[EvaluationImage]:
        return [i for i in self.images if i.status == ImageStatus.COMPLETED and i.score is not None]

    def recompute_aggregates(self) -> None:
        """Recompute averages (completed images only), total cost and summed API duration"""
        completed = self.completed_images
        if completed:
            self.average_count_accuracy = sum(i.score.count_accuracy for i in completed) / len(completed)
            self.average_class_accuracy = sum(i.score.class_accuracy for i in completed) / len(completed)
        else:
            self.average_count_accuracy = 0.0
            self.average_class_accuracy = 0.0
        self.total_cost = sum(i.cost for i in self.images if i.cost is not None)
        self.duration = sum(i.api_duration for i in self.images if i.api_duration is not None)

    def clear_aggregates(self) -> None:
        self.average_count_accuracy = 0.0
        self.average_class_accuracy = 0.0
        self.total_cost = 0.0
        self.duration = 0
        self.end_time = None


@dataclass
class ExemplarImage:
    """Reference image for one ontology class (zero-shot-by-example)"""
    class_id: int
    class_name: str
    image_base64: str
    image_name: str | None = None
    uploaded_at: str | None = None
