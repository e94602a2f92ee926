"""
Sample generation

Builds the pending EvaluationImage list of a run from dataset records
or from a previously exported run.
"""

import logging
import random
from collections.abc import Sequence

from rareplanes_bench.domain.entities import EvaluationImage
from rareplanes_bench.ontology import class_names

logger = logging.getLogger(__name__)


def expand_class_instances(object_count: int, unique_classes: Sequence[int]) -> list[int]:
    """
    Expand unique class ids into one entry per object

    One class gets every object; several classes share objects equally,
    with the remainder going to the first classes.
    """
    if object_count <= 0 or not unique_classes:
        return []
    if len(unique_classes) == 1:
        return [unique_classes[0]] * object_count

    base_count, remainder = divmod(object_count, len(unique_classes))
    instances: list[int] = []
    for index, class_id in enumerate(unique_classes):
        instances.extend([class_id] * (base_count + (1 if index < remainder else 0)))
    return instances


def build_evaluation_image(record: dict, subset: str) -> EvaluationImage:
    """Ground-truth image from a dataset record"""
    object_count = int(record.get("objectCount") or 0)
    actual_classes = expand_class_instances(object_count, [int(c) for c in record.get("classes") or []])
    return EvaluationImage(
        id=str(record["id"]),
        filename=record["filename"],
        subset=record.get("subset", subset),
        image_url=record.get("imageUrl") or record.get("imagePath", ""),
        actual_objects=object_count,
        actual_classes=actual_classes,
        actual_class_names=class_names(actual_classes),
    )


def generate_random_sample(
    records: Sequence[dict],
    sample_size: int,
    subset: str,
    rng: random.Random | None = None,
) -> list[EvaluationImage]:
    """
    Draw a random sample of a subset

    Args:
        records: Dataset image records (each with a "subset" key)
        sample_size: Number of images to draw (fewer if the subset is smaller)
        subset: Dataset partition
        rng: Random generator (seed it for reproducible samples)

    Returns:
        Pending EvaluationImages
    """
    rng = rng or random.Random()
    candidates = [r for r in records if r.get("subset") == subset]
    rng.shuffle(candidates)

    sample: list[EvaluationImage] = []
    for record in candidates:
        if len(sample) >= sample_size:
            break
        if (record.get("objectCount") or 0) > 0 and not record.get("classes"):
            logger.warning("Skipping %s: %s objects without class ids", record.get("id"), record.get("objectCount"))
            continue
        sample.append(build_evaluation_image(record, subset))

    if len(sample) < sample_size:
        logger.warning("Only %d images available in subset '%s' (requested %d)", len(sample), subset, sample_size)
    return sample


def sample_from_run(images: Sequence[EvaluationImage]) -> list[EvaluationImage]:
    """Reuse the images of an earlier run as a fresh pending sample"""
    sample = []
    for image in images:
        fresh = EvaluationImage(
            id=image.id,
            filename=image.filename,
            subset=image.subset,
            image_url=image.image_url,
            actual_objects=image.actual_objects,
            actual_classes=list(image.actual_classes),
            actual_class_names=list(image.actual_class_names),
            image_width=image.image_width,
            image_height=image.image_height,
        )
        sample.append(fresh)
    return sample
