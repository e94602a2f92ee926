"""
Evaluation Orchestrator

Runs one model over a sample of images, strictly one image at a time:
fetch -> encode -> provider call (with retry) -> normalize -> score -> cost.

Run states: idle -> running -> completed | stopped.
A single image failure marks that image and never aborts the run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from datetime import datetime
from functools import partial

from rareplanes_bench.cost_estimator import estimate_cost
from rareplanes_bench.domain.entities import (
    EvaluationConfig,
    EvaluationImage,
    EvaluationResult,
    ExemplarImage,
    ImageStatus,
    RunStatus,
)
from rareplanes_bench.exemplar_store import ExemplarLibrary
from rareplanes_bench.harness_config import RetryConfig
from rareplanes_bench.infrastructure.image_utils import encode_image, image_dimensions
from rareplanes_bench.infrastructure.model_clients.base import call_with_retry, linear_backoff
from rareplanes_bench.infrastructure.model_clients.factory import ProviderAdapter
from rareplanes_bench.ontology import class_names
from rareplanes_bench.prompt_builder import build_system_prompt
from rareplanes_bench.scoring.normalizer import normalize_response
from rareplanes_bench.scoring.scorer import score_image

logger = logging.getLogger(__name__)

ProgressCallback = Callable[["EvaluationOrchestrator", int, EvaluationImage], None]


class EvaluationOrchestrator:
    """Sequential evaluation of one model over one sample"""

    def __init__(
        self,
        config: EvaluationConfig,
        images: Sequence[EvaluationImage],
        adapter: ProviderAdapter,
        fetch_image: Callable[[str], bytes],
        library: ExemplarLibrary | None = None,
        retry: RetryConfig | None = None,
        on_progress: ProgressCallback | None = None,
    ):
        """
        Args:
            config: Run settings
            images: Sampled images (owned and mutated by this run)
            adapter: Provider adapter
            fetch_image: Downloads the bytes behind an image URL
            library: Exemplar library (zero-shot-by-example)
            retry: Retry policy settings
            on_progress: Called after each processed image
        """
        self.config = config
        self.adapter = adapter
        self.fetch_image = fetch_image
        self.library = library
        self.retry = retry or RetryConfig()
        self.on_progress = on_progress

        self.result = EvaluationResult(config=config, images=list(images))
        self.status = RunStatus.IDLE
        self.current_index = 0
        self._cancel = threading.Event()

    @property
    def images(self) -> list[EvaluationImage]:
        return self.result.images

    @property
    def progress(self) -> float:
        """Share of the sample handled so far (0..1)"""
        if not self.images:
            return 0.0
        return self.current_index / len(self.images)

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def _system_prompt(self) -> str:
        # Exemplar images replace the text ontology in the system prompt
        return build_system_prompt(
            self.config.system_prompt,
            self.config.include_ontology and not self.config.zero_shot_by_example,
            self.config.structured_output,
        )

    def _exemplars(self) -> list[ExemplarImage] | None:
        if not self.config.zero_shot_by_example or self.library is None:
            return None
        return self.library.list_exemplars()

    def _process_image(
        self,
        image: EvaluationImage,
        system_prompt: str,
        exemplars: list[ExemplarImage] | None,
    ) -> None:
        """Fetch, call, normalize, score and cost one image; raises on failure"""
        image.clear_prediction()
        image.status = ImageStatus.PROCESSING

        data = self.fetch_image(image.image_url)
        image_b64 = encode_image(data)
        image.image_width, image.image_height = image_dimensions(data)

        response = call_with_retry(
            lambda: self.adapter.call(
                self.config.provider,
                self.config.model,
                system_prompt,
                image_b64,
                exemplars,
            ),
            max_attempts=self.retry.max_attempts,
            backoff=partial(linear_backoff, base_delay=self.retry.backoff_seconds),
        )
        image.llm_response = response.content
        image.api_duration = response.duration_ms

        prediction = normalize_response(response.content)
        image.predicted_objects = prediction.count
        image.predicted_classes = list(prediction.classes)
        image.predicted_class_names = class_names(prediction.classes)
        image.predicted_count_confidence = prediction.count_confidence
        image.predicted_class_confidences = prediction.class_confidences

        image.score = score_image(
            image.actual_objects, image.actual_classes,
            prediction.count, prediction.classes,
        )

        usage = response.usage
        image.cost = estimate_cost(
            self.config.provider,
            self.config.model,
            image.image_width,
            image.image_height,
            usage.prompt_tokens if usage else 0,
            usage.completion_tokens if usage else 0,
        )
        image.status = ImageStatus.COMPLETED

    def _mark_failed(self, image: EvaluationImage, error: Exception, status: ImageStatus) -> None:
        image.status = status
        # Keep the captured response text when the failure happened after the call
        if not image.llm_response:
            image.llm_response = f"Error: {error}"

    def run(self) -> EvaluationResult:
        """
        Process every image in order

        Raises:
            RuntimeError: If the run is already in progress
            MissingCredential: If no credential is configured (before any image is touched)
            UnknownProvider: If the provider is not registered
        """
        if self.status == RunStatus.RUNNING:
            raise RuntimeError("Run is already in progress")

        self.adapter.check_credentials(self.config.provider)

        self._cancel.clear()
        self.status = RunStatus.RUNNING
        self.current_index = 0
        self.result.start_time = datetime.now()
        self.result.end_time = None

        system_prompt = self._system_prompt()
        exemplars = self._exemplars()
        total = len(self.images)
        logger.info(
            "Starting run: %s/%s, %d images", self.config.provider, self.config.model, total
        )

        for index, image in enumerate(self.images):
            if self._cancel.is_set():
                logger.info("Run stopped before image %d/%d", index + 1, total)
                break
            self.current_index = index

            try:
                self._process_image(image, system_prompt, exemplars)
                logger.info(
                    "[%d/%d] %s: count %.2f, class %.2f",
                    index + 1, total, image.id, image.score.count_accuracy, image.score.class_accuracy,
                )
            except Exception as e:
                logger.warning("[%d/%d] %s failed: %s", index + 1, total, image.id, e)
                self._mark_failed(image, e, ImageStatus.ERROR)

            self.current_index = index + 1
            if self.on_progress is not None:
                self.on_progress(self, index, image)

            if self.config.api_delay_seconds > 0 and index < total - 1 and not self._cancel.is_set():
                self._cancel.wait(self.config.api_delay_seconds)

        self.result.end_time = datetime.now()
        self.result.recompute_aggregates()
        self.status = RunStatus.STOPPED if self._cancel.is_set() else RunStatus.COMPLETED
        logger.info(
            "Run %s: count %.3f, class %.3f, cost $%.4f",
            self.status.value,
            self.result.average_count_accuracy,
            self.result.average_class_accuracy,
            self.result.total_cost,
        )
        return self.result

    def rerun(self, index: int) -> EvaluationImage:
        """
        Re-evaluate a single image; its siblings and the cancellation flag are untouched

        Raises:
            RuntimeError: If the run is in progress
            IndexError: If the index is out of range
        """
        if self.status == RunStatus.RUNNING:
            raise RuntimeError("Cannot rerun an image while the run is in progress")
        image = self.images[index]

        try:
            self._process_image(image, self._system_prompt(), self._exemplars())
        except Exception as e:
            logger.warning("Rerun of %s failed: %s", image.id, e)
            self._mark_failed(image, e, ImageStatus.FAILED)

        self.result.recompute_aggregates()
        return image

    def stop(self) -> None:
        """Cancel the loop and wipe every image back to pending"""
        self._cancel.set()
        for image in self.images:
            image.clear_prediction()
        self.status = RunStatus.STOPPED

    def reset(self) -> None:
        """stop() plus cleared aggregates and progress"""
        self.stop()
        self.result.clear_aggregates()
        self.current_index = 0
        self.status = RunStatus.IDLE
