"""
Run Serializer

CSV export/import of evaluation runs.

- Every cell is double-quoted; multi-valued cells use ";" as the inner separator
- Scores are recomputed on export and again on import
- Rows that fail to parse are skipped individually
- Files without confidence columns get a best-effort confidence re-extraction
  from the stored raw response (legacy exports)
"""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from rareplanes_bench.domain.constants import SUBSETS
from rareplanes_bench.domain.entities import (
    EvaluationConfig,
    EvaluationImage,
    EvaluationResult,
    ImageStatus,
)
from rareplanes_bench.scoring.normalizer import strip_code_fence
from rareplanes_bench.scoring.scorer import score_image

logger = logging.getLogger(__name__)

COLUMNS = [
    "Image ID",
    "Filename",
    "Subset",
    "Actual Objects",
    "Actual Classes",
    "Actual Class Names",
    "Predicted Objects",
    "Predicted Classes",
    "Predicted Class Names",
    "Count Accuracy",
    "Class Accuracy",
    "Count Confidence",
    "Class Confidence",
    "Cost",
    "API Duration (ms)",
    "Image Width",
    "Image Height",
    "Status",
    "LLM Response",
]

OPTIONAL_COLUMNS = ("Count Confidence", "Class Confidence")
REQUIRED_COLUMNS = [c for c in COLUMNS if c not in OPTIONAL_COLUMNS]

SEPARATOR = ";"

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {v[1]: k for k, v in _ESCAPES.items()}
_ESCAPE_RE = re.compile(r"[\\\n\r\t]")
_UNESCAPE_RE = re.compile(r"\\([\\nrt])")


class RunFileError(ValueError):
    """The file as a whole cannot be read as a run"""


@dataclass
class ImportedRun:
    """Images read from a run file"""
    images: list[EvaluationImage] = field(default_factory=list)
    skipped_rows: int = 0


# ---- cell formatting ----

def escape_response(text: str) -> str:
    """Escape backslash and control characters so each row stays on one line"""
    return _ESCAPE_RE.sub(lambda m: _ESCAPES[m.group(0)], text)


def unescape_response(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda m: _UNESCAPES[m.group(1)], text)


def _percent(value: float | None) -> str:
    return "" if value is None else f"{value * 100:.1f}%"


def _join(values) -> str:
    return SEPARATOR.join(str(v) for v in values or [])


def _optional(value) -> str:
    return "" if value is None else str(value)


def _parse_fraction(cell: str) -> float | None:
    """Accept "66.7%" (percent) or a plain fraction such as "0.667" """
    cell = cell.strip()
    if not cell:
        return None
    if cell.endswith("%"):
        return float(cell[:-1]) / 100
    return float(cell)


def _parse_cost(cell: str) -> float | None:
    cell = cell.strip().lstrip("$")
    return float(cell) if cell else None


def _parse_int(cell: str) -> int | None:
    cell = cell.strip()
    return int(float(cell)) if cell else None


def _parse_int_list(cell: str) -> list[int]:
    return [int(v) for v in (p.strip() for p in cell.split(SEPARATOR)) if v]


def _parse_str_list(cell: str) -> list[str]:
    return [v.strip() for v in cell.split(SEPARATOR) if v.strip()]


# ---- export ----

def image_to_row(image: EvaluationImage) -> dict[str, str]:
    """One CSV row; the score is recomputed from the current fields"""
    score = None
    if image.status == ImageStatus.COMPLETED and image.predicted_classes is not None:
        score = score_image(
            image.actual_objects, image.actual_classes,
            image.predicted_objects or 0, image.predicted_classes,
        )
    class_confidences = image.predicted_class_confidences
    return {
        "Image ID": image.id,
        "Filename": image.filename,
        "Subset": image.subset,
        "Actual Objects": str(image.actual_objects),
        "Actual Classes": _join(image.actual_classes),
        "Actual Class Names": _join(image.actual_class_names),
        "Predicted Objects": _optional(image.predicted_objects),
        "Predicted Classes": _join(image.predicted_classes),
        "Predicted Class Names": _join(image.predicted_class_names),
        "Count Accuracy": _percent(score.count_accuracy if score else None),
        "Class Accuracy": _percent(score.class_accuracy if score else None),
        "Count Confidence": _percent(image.predicted_count_confidence),
        "Class Confidence": _join(_percent(c) for c in class_confidences) if class_confidences else "",
        "Cost": "" if image.cost is None else f"${image.cost:.4f}",
        "API Duration (ms)": _optional(image.api_duration),
        "Image Width": _optional(image.image_width),
        "Image Height": _optional(image.image_height),
        "Status": image.status.value,
        "LLM Response": escape_response(image.llm_response or ""),
    }


def export_csv(images: list[EvaluationImage]) -> str:
    """Serialize images to CSV text"""
    df = pd.DataFrame([image_to_row(i) for i in images], columns=COLUMNS, dtype=str)
    return df.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")


def write_run(result: EvaluationResult, path: str | Path) -> Path:
    """Write a run to a CSV file"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_csv(result.images), encoding="utf-8")
    logger.info("Wrote %d images to %s", len(result.images), path)
    return path


# ---- legacy confidence repair ----

def repair_legacy_json(text: str) -> str:
    """
    Lenient JSON repair for responses stored by older exports

    Older exports replaced commas with semicolons and could hold
    bare identifiers as keys or values.
    """
    cleaned = strip_code_fence(text).replace(";", ",")
    cleaned = re.sub(r'(?<!")\b([A-Za-z_]\w*)\s*:', r'"\1":', cleaned)
    cleaned = re.sub(
        r':\s*(?!true\b|false\b|null\b)([A-Za-z][A-Za-z ]*[A-Za-z])\s*([,}\]])',
        r': "\1"\2',
        cleaned,
    )
    return cleaned


def extract_legacy_confidences(text: str) -> tuple[float | None, list[float] | None]:
    """(countConfidence, per-object confidences) from a stored response; (None, None) on failure"""
    if not text:
        return None, None
    try:
        parsed = json.loads(repair_legacy_json(text))
    except ValueError:
        logger.debug("Could not recover confidences from stored response")
        return None, None
    if not isinstance(parsed, dict):
        return None, None

    count_confidence = parsed.get("countConfidence")
    if not isinstance(count_confidence, (int, float)) or isinstance(count_confidence, bool):
        count_confidence = None

    class_confidences = None
    if isinstance(parsed.get("objects"), list):
        class_confidences = [
            float(o["confidence"]) for o in parsed["objects"]
            if isinstance(o, dict)
            and isinstance(o.get("confidence"), (int, float))
            and not isinstance(o.get("confidence"), bool)
        ]
    return count_confidence, class_confidences


# ---- import ----

def row_to_image(
    row: dict[str, str],
    base_url: str,
    has_count_confidence: bool = True,
    has_class_confidence: bool = True,
) -> EvaluationImage:
    """
    Build an image from one CSV row

    A missing confidence column is recovered from the stored response;
    a present one is always used as is.

    Raises:
        ValueError / KeyError: If the row cannot be parsed
    """
    subset = row["Subset"].strip()
    filename = row["Filename"].strip()
    status = ImageStatus(row["Status"].strip() or ImageStatus.PENDING.value)
    llm_response = unescape_response(row["LLM Response"])

    actual_classes = _parse_int_list(row["Actual Classes"])
    predicted_objects = _parse_int(row["Predicted Objects"])
    predicted_classes = _parse_int_list(row["Predicted Classes"])

    legacy_count, legacy_classes = (
        extract_legacy_confidences(llm_response)
        if not (has_count_confidence and has_class_confidence)
        else (None, None)
    )
    if has_count_confidence:
        count_confidence = _parse_fraction(row.get("Count Confidence", ""))
    else:
        count_confidence = legacy_count
    if has_class_confidence:
        class_confidences = [
            c for c in (_parse_fraction(v) for v in row.get("Class Confidence", "").split(SEPARATOR))
            if c is not None
        ] or None
    else:
        class_confidences = legacy_classes

    image = EvaluationImage(
        id=re.sub(r"\.jpg$", "", row["Image ID"].strip(), flags=re.IGNORECASE),
        filename=filename,
        subset=subset,
        image_url=f"{base_url.rstrip('/')}/dataset/{subset}/images/{filename}",
        actual_objects=_parse_int(row["Actual Objects"]) or 0,
        actual_classes=actual_classes,
        actual_class_names=_parse_str_list(row["Actual Class Names"]),
        predicted_objects=predicted_objects,
        predicted_classes=predicted_classes if predicted_objects is not None or predicted_classes else None,
        predicted_class_names=_parse_str_list(row["Predicted Class Names"]) or None,
        predicted_count_confidence=count_confidence,
        predicted_class_confidences=class_confidences or None,
        llm_response=llm_response or None,
        api_duration=_parse_int(row["API Duration (ms)"]),
        cost=_parse_cost(row["Cost"]),
        image_width=_parse_int(row["Image Width"]),
        image_height=_parse_int(row["Image Height"]),
        status=status,
    )

    # Stored score columns are ignored; accuracy is recomputed from ground truth and prediction
    if status == ImageStatus.COMPLETED:
        image.predicted_classes = predicted_classes
        image.score = score_image(
            image.actual_objects, actual_classes, predicted_objects or 0, predicted_classes,
        )
    return image


def parse_csv(source, base_url: str = "http://localhost:3001") -> ImportedRun:
    """
    Parse a run file

    Args:
        source: CSV text, path or file-like object
        base_url: Dataset server URL used to rebuild image URLs

    Raises:
        RunFileError: If the file has no data rows or lacks a required column
    """
    if isinstance(source, str) and ("\n" in source or not source.strip()):
        source = io.StringIO(source)
    imported = ImportedRun()

    def skip_bad_line(fields: list[str]) -> None:
        imported.skipped_rows += 1
        logger.warning("Skipping malformed CSV line with %d fields", len(fields))
        return None

    try:
        df = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            engine="python",
            on_bad_lines=skip_bad_line,
        )
    except pd.errors.EmptyDataError as e:
        raise RunFileError("Invalid CSV format: insufficient data") from e
    except pd.errors.ParserError as e:
        raise RunFileError(f"Invalid CSV format: {e}") from e

    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise RunFileError(f"Invalid CSV format: missing required headers {missing}")
    if df.empty:
        raise RunFileError("Invalid CSV format: insufficient data")

    has_count_confidence = "Count Confidence" in df.columns
    has_class_confidence = "Class Confidence" in df.columns
    for line_no, row in enumerate(df.fillna("").to_dict(orient="records"), start=2):
        try:
            imported.images.append(
                row_to_image(row, base_url, has_count_confidence, has_class_confidence)
            )
        except (ValueError, KeyError, TypeError) as e:
            imported.skipped_rows += 1
            logger.warning("Skipping CSV row %d: %s", line_no, e)

    if imported.skipped_rows:
        logger.warning("Skipped %d of %d rows", imported.skipped_rows, len(df))
    return imported


def load_run(
    path: str | Path,
    provider: str = "unknown",
    model: str = "unknown",
    base_url: str = "http://localhost:3001",
) -> EvaluationResult:
    """Read a run file into an EvaluationResult with recomputed aggregates"""
    imported = parse_csv(Path(path), base_url=base_url)
    subset = imported.images[0].subset if imported.images else SUBSETS[0]
    config = EvaluationConfig(
        sample_size=max(1, len(imported.images)),
        subset=subset if subset in SUBSETS else SUBSETS[0],
        provider=provider,
        model=model,
        system_prompt="",
    )
    result = EvaluationResult(config=config, images=imported.images)
    result.recompute_aggregates()
    return result
