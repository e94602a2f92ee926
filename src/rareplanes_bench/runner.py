"""
rareplanes-bench CLI Runner

Evaluates vision LLMs on a random sample of the aircraft dataset.

Usage:
    python -m rareplanes_bench.runner --models openai:gpt-4o,anthropic:claude-haiku-4-5-20251001
    python -m rareplanes_bench.runner --models google:gemini-2.5-flash --sample-size 25 --subset test

Reuse the sample of an earlier run:
    python -m rareplanes_bench.runner --models openai:gpt-4o --sample-from results/evaluation-results-openai-gpt-4o-2026-01-01.csv

Re-score an exported run with the current scoring:
    python -m rareplanes_bench.runner --rescore results/evaluation-results-openai-gpt-4o-2026-01-01.csv
"""

from __future__ import annotations

import argparse
import random
import re
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from rareplanes_bench.cost_estimator import estimate_run_cost
from rareplanes_bench.domain.constants import SUBSETS
from rareplanes_bench.domain.entities import EvaluationConfig, EvaluationImage, EvaluationResult
from rareplanes_bench.exemplar_store import ExemplarLibrary, JsonFileStore
from rareplanes_bench.harness_config import BenchConfig, load_config
from rareplanes_bench.infrastructure.dataset_client import DatasetClient
from rareplanes_bench.infrastructure.model_clients.errors import ProviderError
from rareplanes_bench.infrastructure.model_clients.factory import ProviderAdapter
from rareplanes_bench.prompt_builder import DEFAULT_SYSTEM_PROMPT
from rareplanes_bench.run_serializer import RunFileError, load_run, parse_csv, write_run
from rareplanes_bench.use_cases.evaluation import EvaluationOrchestrator
from rareplanes_bench.use_cases.report import generate_evaluation_report, summarize_results
from rareplanes_bench.use_cases.sampling import generate_random_sample, sample_from_run


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="rareplanes-bench: Evaluate vision LLMs on aircraft counting and classification",
    )
    parser.add_argument(
        "--models",
        default=None,
        help="Comma-separated list of provider:model pairs (e.g. openai:gpt-4o,google:gemini-2.5-flash)",
    )
    parser.add_argument("--sample-size", type=int, default=None, help="Number of images (default: BENCH_SAMPLE_SIZE)")
    parser.add_argument("--subset", choices=SUBSETS, default=None, help="Dataset partition (default: BENCH_SUBSET)")
    parser.add_argument("--delay", type=float, default=None, help="Seconds to wait between API calls")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for the sample")
    parser.add_argument("--no-ontology", action="store_true", help="Do not append the ontology to the system prompt")
    parser.add_argument(
        "--zero-shot-by-example",
        action="store_true",
        help="Send stored exemplar images instead of the text ontology",
    )
    parser.add_argument(
        "--no-structured-output",
        action="store_true",
        help="Do not append the structured JSON output instructions",
    )
    parser.add_argument("--system-prompt-file", default=None, help="File holding the base system prompt")
    parser.add_argument("--sample-from", default=None, help="Reuse the images of an exported run CSV")
    parser.add_argument("--rescore", default=None, help="Re-score an exported run CSV and write a report")
    parser.add_argument(
        "--output-dir",
        default="results",
        help="Directory for output files (default: results)",
    )
    return parser.parse_args(argv)


def parse_model_specs(raw: str) -> list[tuple[str, str]]:
    """Split "provider:model,..." into (provider, model) pairs"""
    specs = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        provider, sep, model = item.partition(":")
        if not sep or not provider or not model:
            raise ValueError(f"Invalid model spec '{item}' (expected provider:model)")
        specs.append((provider.strip(), model.strip()))
    return specs


def _safe_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "-", name).strip("-")


def _write_outputs(result: EvaluationResult, model_name: str, output_dir: Path, date: str) -> tuple[Path, Path]:
    csv_path = write_run(result, output_dir / f"evaluation-results-{_safe_name(model_name)}-{date}.csv")
    report_path = output_dir / f"evaluation-report-{_safe_name(model_name)}-{date}.md"
    report_path.write_text(generate_evaluation_report(result, model_name), encoding="utf-8")
    return csv_path, report_path


def _open_library(config: BenchConfig) -> tuple[JsonFileStore, ExemplarLibrary]:
    store = JsonFileStore(config.storage.store_path)
    try:
        store.load()
    except ValueError as e:
        print(f"  WARNING: could not read {store.path}: {e}")
    return store, ExemplarLibrary(store)


def _load_sample(args: argparse.Namespace, config: BenchConfig, sample_size: int, subset: str) -> list[EvaluationImage]:
    if args.sample_from:
        imported = parse_csv(Path(args.sample_from), base_url=config.dataset.base_url)
        print(f"  Reusing {len(imported.images)} images from {args.sample_from}")
        return sample_from_run(imported.images)

    client = DatasetClient(config.dataset)
    records = client.load_all_images(subset)
    print(f"  Loaded {len(records)} records from subset '{subset}'")
    return generate_random_sample(records, sample_size, subset, random.Random(args.seed))


def rescore(path: str, output_dir: Path, date: str, config: BenchConfig) -> None:
    result = load_run(path, base_url=config.dataset.base_url)
    model_name = Path(path).stem
    csv_path, report_path = _write_outputs(result, f"rescored-{model_name}", output_dir, date)
    print(f"  Count accuracy: {result.average_count_accuracy * 100:.1f}%")
    print(f"  Class accuracy: {result.average_class_accuracy * 100:.1f}%")
    print(f"  Rescored CSV: {csv_path}")
    print(f"  Report:       {report_path}")


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    args = parse_args(argv)
    config = load_config()

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    date = datetime.now().strftime("%Y-%m-%d")

    if args.rescore:
        print(f"\n=== Re-scoring {args.rescore} ===\n")
        try:
            rescore(args.rescore, output_dir, date, config)
        except (RunFileError, OSError) as e:
            print(f"ERROR: {e}")
            sys.exit(1)
        return

    if not args.models:
        print("ERROR: --models is required (e.g. --models openai:gpt-4o)")
        sys.exit(2)
    try:
        models = parse_model_specs(args.models)
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(2)

    sample_size = args.sample_size or config.run.sample_size
    subset = args.subset or config.run.subset
    delay = args.delay if args.delay is not None else config.run.api_delay_seconds
    system_prompt = (
        Path(args.system_prompt_file).read_text(encoding="utf-8")
        if args.system_prompt_file
        else DEFAULT_SYSTEM_PROMPT
    )

    store, library = _open_library(config)
    adapter = ProviderAdapter(store=store, library=library, config=config.provider)
    dataset = DatasetClient(config.dataset)

    print("\n=== Loading sample ===\n")
    try:
        sample = _load_sample(args, config, sample_size, subset)
    except (ProviderError, RunFileError, OSError) as e:
        print(f"ERROR: could not load the sample: {e}")
        sys.exit(1)
    if not sample:
        print("ERROR: The sample is empty. Exiting.")
        sys.exit(1)
    print(f"  Images: {len(sample)}")
    print(f"  Models: {[f'{p}:{m}' for p, m in models]}")
    print()

    results: dict[str, EvaluationResult] = {}
    for provider, model in models:
        model_name = f"{provider}:{model}"
        eval_config = EvaluationConfig(
            sample_size=len(sample),
            subset=sample[0].subset if sample[0].subset in SUBSETS else subset,
            provider=provider,
            model=model,
            system_prompt=system_prompt,
            include_ontology=not args.no_ontology and config.run.include_ontology,
            zero_shot_by_example=args.zero_shot_by_example or config.run.zero_shot_by_example,
            structured_output=not args.no_structured_output and config.run.structured_output,
            api_delay_seconds=delay,
        )
        estimate = estimate_run_cost(provider, model, len(sample))
        print(f"=== {model_name} (estimated cost ${estimate:.4f}) ===\n")

        def report_progress(orchestrator, index, image):
            score = (
                f"count {image.score.count_accuracy:.2f} | class {image.score.class_accuracy:.2f}"
                if image.score else image.llm_response or ""
            )
            print(f"[{index + 1}/{len(orchestrator.images)}] {image.id} | {image.status.value} | {score}")

        orchestrator = EvaluationOrchestrator(
            eval_config,
            sample_from_run(sample),
            adapter,
            dataset.fetch_image_bytes,
            library=library,
            retry=config.retry,
            on_progress=report_progress,
        )
        try:
            result = orchestrator.run()
        except ProviderError as e:
            print(f"  ERROR: {e}. Skipping {model_name}.\n")
            continue

        results[model_name] = result
        csv_path, report_path = _write_outputs(result, model_name, output_dir, date)
        print(f"\n  Count accuracy: {result.average_count_accuracy * 100:.1f}%")
        print(f"  Class accuracy: {result.average_class_accuracy * 100:.1f}%")
        print(f"  Total cost:     ${result.total_cost:.4f}")
        print(f"  Results: {csv_path}")
        print(f"  Report:  {report_path}\n")

    if not results:
        print("ERROR: No model completed a run.")
        sys.exit(1)

    summary_df = summarize_results(results)
    summary_path = output_dir / f"summary-{date}.csv"
    summary_df.to_csv(summary_path, index=False)

    print("=== Summary ===\n")
    print(f"  {'Model':<50} {'Count %':>8} {'Class %':>8} {'Cost':>10}")
    print(f"  {'-'*50} {'-'*8} {'-'*8} {'-'*10}")
    for _, row in summary_df.iterrows():
        print(
            f"  {row['model_name']:<50} "
            f"{row['count_accuracy_pct']:>8.1f} "
            f"{row['class_accuracy_pct']:>8.1f} "
            f"{row['total_cost']:>10.4f}"
        )
    print(f"\n  Summary: {summary_path}\n")


if __name__ == "__main__":
    main()
