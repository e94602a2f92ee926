"""
Use Cases Layer

Aggregates business logic and provides use cases called from the runner.
"""

from rareplanes_bench.use_cases.evaluation import EvaluationOrchestrator
from rareplanes_bench.use_cases.report import (
    generate_evaluation_report,
    summarize_results,
)
from rareplanes_bench.use_cases.sampling import (
    build_evaluation_image,
    expand_class_instances,
    generate_random_sample,
    sample_from_run,
)

__all__ = [
    # evaluation
    "EvaluationOrchestrator",
    # report
    "generate_evaluation_report",
    "summarize_results",
    # sampling
    "build_evaluation_image",
    "expand_class_instances",
    "generate_random_sample",
    "sample_from_run",
]
