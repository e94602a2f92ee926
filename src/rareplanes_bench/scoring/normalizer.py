"""
Response normalizer

Turns a free-form model response into a structured Prediction.

Parse order (first success wins):
1. Strip a fenced code block marker
2. JSON parse, retrying on the first greedy {...} substring
3. Known shapes: {count, objects}, {count, aircraft}, {count, classes}
4. Duck-typed extraction from any parsed object
5. Regex heuristics on the raw text

Never raises. The floor is Prediction(count=0, classes=[]).
"""

from __future__ import annotations

import json
import logging
import math
import re

from rareplanes_bench.domain.constants import MAX_CLASS_ID, MIN_CLASS_ID
from rareplanes_bench.domain.value_objects import Prediction

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")
_COUNT_RE = re.compile(r"(?:count|aircraft|planes?)[\s:\"']*(\d+)", re.IGNORECASE)
_SMALL_INT_RE = re.compile(r"\b(\d{1,2})\b")


def strip_code_fence(text: str) -> str:
    """Remove a leading ```/```json marker and a trailing ``` marker"""
    text = text.strip()
    if text.startswith("```"):
        text = _FENCE_OPEN_RE.sub("", text)
        text = _FENCE_CLOSE_RE.sub("", text)
    return text


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _as_class_id(value) -> int | None:
    """Integral number within the class range, else None"""
    if not _is_number(value) or not math.isfinite(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    class_id = int(value)
    if MIN_CLASS_ID <= class_id <= MAX_CLASS_ID:
        return class_id
    return None


def _as_confidence(value) -> float | None:
    if _is_number(value) and 0.0 <= value <= 1.0:
        return float(value)
    return None


def _as_count(value) -> int:
    """Coerce a count-like value; anything unusable becomes 0"""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(0, int(number))


def _filter_classes(values) -> list[int]:
    return [c for c in (_as_class_id(v) for v in values) if c is not None]


def _from_objects(items: list) -> tuple[list[int], list[float]]:
    """
    Map objects[].class

    Confidences are kept for surviving objects only, so an out-of-range
    object drops its confidence too and the two lists stay aligned.
    """
    classes: list[int] = []
    confidences: list[float] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        class_id = _as_class_id(item.get("class"))
        if class_id is None:
            continue
        classes.append(class_id)
        confidence = _as_confidence(item.get("confidence"))
        if confidence is not None:
            confidences.append(confidence)
    return classes, confidences


def _from_mapping(parsed: dict) -> Prediction:
    count_confidence = _as_confidence(parsed.get("countConfidence"))
    has_count = parsed.get("count") is not None

    # (a) modern structured-output shape
    if has_count and isinstance(parsed.get("objects"), list):
        classes, confidences = _from_objects(parsed["objects"])
        return Prediction(
            count=_as_count(parsed["count"]),
            classes=classes,
            count_confidence=count_confidence,
            class_confidences=confidences or None,
        )

    # (b) legacy shape
    if has_count and isinstance(parsed.get("aircraft"), list):
        classes = _filter_classes(
            a.get("class_id") for a in parsed["aircraft"] if isinstance(a, dict)
        )
        return Prediction(
            count=_as_count(parsed["count"]),
            classes=classes,
            count_confidence=count_confidence,
        )

    # (c) minimal shape
    if has_count and isinstance(parsed.get("classes"), list):
        return Prediction(
            count=_as_count(parsed["count"]),
            classes=_filter_classes(parsed["classes"]),
            count_confidence=count_confidence,
        )

    # Duck-typed fallback
    logger.debug("No known response shape matched, using fallback extraction")
    if isinstance(parsed.get("classes"), list):
        raw_classes = parsed["classes"]
    elif isinstance(parsed.get("objects"), list):
        raw_classes = [o.get("class") for o in parsed["objects"] if isinstance(o, dict)]
    elif isinstance(parsed.get("aircraft"), list):
        raw_classes = [a.get("class_id") for a in parsed["aircraft"] if isinstance(a, dict)]
    else:
        raw_classes = []
    return Prediction(
        count=_as_count(parsed.get("count")),
        classes=_filter_classes(raw_classes),
        count_confidence=count_confidence,
    )


def _parse_json(text: str):
    """JSON value from the text or its first greedy {...} substring; None on failure"""
    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        pass
    match = _JSON_OBJECT_RE.search(text)
    if match:
        try:
            return json.loads(match.group(0))
        except (ValueError, RecursionError):
            pass
    return None


def _from_text(raw: str) -> Prediction:
    count_match = _COUNT_RE.search(raw)
    classes = _filter_classes(int(m) for m in _SMALL_INT_RE.findall(raw))
    return Prediction(
        count=int(count_match.group(1)) if count_match else 0,
        classes=classes,
    )


def normalize_response(raw: str | None) -> Prediction:
    """
    Extract a best-effort prediction from a model response

    Args:
        raw: Raw response text (may be empty, fenced, or surrounded by prose)

    Returns:
        Prediction; count 0 / empty classes when nothing usable is found
    """
    raw = raw or ""
    try:
        parsed = _parse_json(strip_code_fence(raw))
        if isinstance(parsed, dict):
            return _from_mapping(parsed)
        logger.debug("Response is not a JSON object, using text heuristics")
        return _from_text(raw)
    except Exception as e:  # pragma: no cover - last-resort floor
        logger.warning("Response normalization failed, returning empty prediction: %s", e)
        return Prediction()
