"""
Scoring sub-package

Provides response normalization and accuracy scoring logic.
"""

from rareplanes_bench.domain.value_objects import ImageScore, Prediction
from rareplanes_bench.scoring.normalizer import normalize_response, strip_code_fence
from rareplanes_bench.scoring.scorer import class_accuracy, count_accuracy, score_image

__all__ = [
    # value objects (re-exported from domain)
    "ImageScore",
    "Prediction",
    # normalizer
    "normalize_response",
    "strip_code_fence",
    # scorer
    "class_accuracy",
    "count_accuracy",
    "score_image",
]
