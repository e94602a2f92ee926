"""
Reporting

Markdown report for one run and a summary table across models.
"""

from collections.abc import Mapping

import pandas as pd

from rareplanes_bench.domain.entities import EvaluationResult, ImageStatus


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def generate_evaluation_report(result: EvaluationResult, model_name: str | None = None) -> str:
    """
    Render a run as markdown

    Args:
        result: The run (aggregates are expected to be current)
        model_name: Display name (defaults to provider/model from the config)

    Returns:
        Markdown text
    """
    config = result.config
    model_name = model_name or f"{config.provider}/{config.model}"
    duration = f"{round(result.duration / 1000)}s" if result.duration else "N/A"

    lines = [
        "# Evaluation Report",
        "",
        "## Configuration",
        f"- **Model**: {model_name}",
        f"- **Sample Size**: {config.sample_size}",
        f"- **Subset**: {config.subset}",
        f"- **Duration**: {duration}",
        "",
        "## Results",
        f"- **Average Count Accuracy**: {_pct(result.average_count_accuracy)}",
        f"- **Average Class Accuracy**: {_pct(result.average_class_accuracy)}",
        f"- **Total Cost**: ${result.total_cost:.4f}",
        f"- **Images Processed**: {len(result.images)}",
        f"- **Completed**: {len(result.completed_images)}",
        "",
        "## Image-by-Image Results",
    ]
    for image in result.images:
        predicted_names = ", ".join(image.predicted_class_names) if image.predicted_class_names else "N/A"
        lines += [
            "",
            f"### {image.filename}",
            f"- **Actual**: {image.actual_objects} objects, classes: [{', '.join(image.actual_class_names)}]",
            f"- **Predicted**: {image.predicted_objects or 0} objects, classes: [{predicted_names}]",
            f"- **Count Accuracy**: {_pct(image.score.count_accuracy) if image.score else 'N/A'}",
            f"- **Class Accuracy**: {_pct(image.score.class_accuracy) if image.score else 'N/A'}",
            f"- **Cost**: {f'${image.cost:.4f}' if image.cost is not None else 'N/A'}",
            f"- **API Duration**: {f'{image.api_duration}ms' if image.api_duration is not None else 'N/A'}",
            f"- **Status**: {image.status.value}",
        ]
    return "\n".join(lines) + "\n"


def summarize_results(results: Mapping[str, EvaluationResult]) -> pd.DataFrame:
    """
    One row per model

    Args:
        results: Runs keyed by model display name

    Returns:
        pd.DataFrame with accuracy (percent), cost, time and status counts
    """
    rows = []
    for model_name, result in results.items():
        statuses = [image.status for image in result.images]
        rows.append({
            "model_name": model_name,
            "provider": result.config.provider,
            "count_accuracy_pct": round(result.average_count_accuracy * 100, 1),
            "class_accuracy_pct": round(result.average_class_accuracy * 100, 1),
            "total_cost": round(result.total_cost, 4),
            "total_api_time_ms": result.duration,
            "images_processed": len(result.images),
            "completed": statuses.count(ImageStatus.COMPLETED),
            "errors": statuses.count(ImageStatus.ERROR) + statuses.count(ImageStatus.FAILED),
        })
    columns = [
        "model_name", "provider", "count_accuracy_pct", "class_accuracy_pct", "total_cost",
        "total_api_time_ms", "images_processed", "completed", "errors",
    ]
    return pd.DataFrame(rows, columns=columns)
