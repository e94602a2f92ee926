"""
Accuracy scoring

Computes count accuracy and class-multiset accuracy for a single image.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from rareplanes_bench.domain.value_objects import ImageScore


def count_accuracy(actual: int, predicted: int) -> float:
    """
    Ratio-based count accuracy

    Args:
        actual: Ground-truth object count
        predicted: Predicted object count

    Returns:
        1.0 if both are zero, 0.0 if exactly one is zero,
        otherwise min(actual, predicted) / max(actual, predicted)
    """
    if actual == 0 and predicted == 0:
        return 1.0
    if actual == 0 or predicted == 0:
        return 0.0
    return min(actual, predicted) / max(actual, predicted)


def class_accuracy(actual: Sequence[int], predicted: Sequence[int]) -> float:
    """
    Class accuracy over two multisets of class ids

    Order is irrelevant, duplicates are meaningful. When the multisets differ in
    size, the matched share is multiplied by the size ratio so that count error and
    class-identity error stay separate dimensions.

    Args:
        actual: Ground-truth class id per object
        predicted: Predicted class id per object

    Returns:
        Accuracy in [0, 1]
    """
    if not actual and not predicted:
        return 1.0
    if not actual or not predicted:
        return 0.0

    if len(actual) == len(predicted) and sorted(actual) == sorted(predicted):
        return 1.0

    actual_counts = Counter(actual)
    predicted_counts = Counter(predicted)
    correct = sum(
        min(actual_counts[class_id], predicted_counts[class_id])
        for class_id in set(actual_counts) | set(predicted_counts)
    )

    min_total = min(len(actual), len(predicted))
    max_total = max(len(actual), len(predicted))

    if len(actual) == len(predicted):
        return correct / max_total

    return (correct / max_total) * (min_total / max_total)


def score_image(
    actual_count: int,
    actual_classes: Sequence[int],
    predicted_count: int,
    predicted_classes: Sequence[int],
) -> ImageScore:
    """Score one image on both dimensions"""
    return ImageScore(
        count_accuracy=count_accuracy(actual_count, predicted_count),
        class_accuracy=class_accuracy(actual_classes, predicted_classes),
    )
