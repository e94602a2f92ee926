"""
Prompt Builder

Builds the system prompt and the provider-neutral request parts for one image.

Request part order:
1. Ontology text (one entry per class, with tags and exemplar availability)
2. Exemplar images with per-class labels (zero-shot-by-example only)
3. Instruction block describing the required JSON shape
4. The target image
"""

from collections.abc import Mapping, Sequence

from rareplanes_bench.domain.constants import CLASS_NAMES
from rareplanes_bench.domain.entities import ExemplarImage
from rareplanes_bench.domain.value_objects import ContentPart
from rareplanes_bench.ontology import AIRCRAFT_CLASSES, export_ontology_json


def _class_list() -> str:
    return "\n".join(f"{class_id}: {name}" for class_id, name in sorted(CLASS_NAMES.items()))


DEFAULT_SYSTEM_PROMPT = f"""You are an expert aircraft identification system. Analyze the provided image and identify all aircraft present.

For each aircraft you detect, provide:
1. The exact count of aircraft in the image
2. The specific type of each aircraft using these class IDs and names:
{_class_list()}

Respond in this exact JSON format:
{{
  "count": <number>,
  "aircraft": [
    {{
      "class_id": <number>,
      "confidence": <number between 0 and 1>
    }}
  ]
}}"""

STRUCTURED_OUTPUT_INSTRUCTIONS = f"""IMPORTANT: You must respond with a valid JSON object in the following format:
{{
  "objects": [
    {{
      "class": 0,
      "className": "{CLASS_NAMES[0]}",
      "confidence": 0.95
    }}
  ],
  "count": 1,
  "countConfidence": 0.92
}}

Where:
- "objects": array of detected aircraft with class (0-6), className, and confidence (0-1)
- "count": total number of aircraft detected
- "countConfidence": confidence score (0-1) for the overall count accuracy

Class IDs:
{_class_list()}"""

ANALYSIS_INSTRUCTION = (
    "Now analyze the following image and identify all aircraft present. "
    "Use the ontology descriptions and example images (where available) as reference. "
    "For classes without example images, use the text descriptions provided. "
    'Respond with a valid JSON object containing "count" (total aircraft detected), '
    '"aircraft" (array with class_id 0-6 for each aircraft), and optional "confidence" score.'
)


def build_system_prompt(base_prompt: str, include_ontology: bool, structured_output: bool) -> str:
    """
    Append the ontology hierarchy and/or structured-output instructions

    Args:
        base_prompt: User-supplied system prompt
        include_ontology: Append the ontology hierarchy JSON
        structured_output: Append the required JSON output format

    Returns:
        The enhanced system prompt
    """
    prompt = base_prompt
    if include_ontology:
        prompt += f"\n\nAircraft Classification Ontology:\n{export_ontology_json()}"
    if structured_output:
        prompt += f"\n\n{STRUCTURED_OUTPUT_INSTRUCTIONS}"
    return prompt


def build_ontology_text(
    exemplar_class_ids: Sequence[int] = (),
    tags: Mapping[int, Sequence[str]] | None = None,
) -> str:
    """Describe every class, marking which ones have an exemplar image"""
    tags = tags or {}
    lines = ["Aircraft Classification Ontology:", ""]
    for aircraft in AIRCRAFT_CLASSES:
        lines.append(f"Class {aircraft.id}: {aircraft.name}")
        lines.append(f"  Description: {aircraft.description}")
        if aircraft.characteristics:
            lines.append(f"  Characteristics: {', '.join(aircraft.characteristics)}")
        class_tags = tags.get(aircraft.id) or []
        if class_tags:
            lines.append(f"  Key Attributes: {', '.join(class_tags)}")
        if aircraft.id in exemplar_class_ids:
            lines.append("  [Example image provided below]")
        else:
            lines.append("  [Text description only - no example image]")
        lines.append("")
    return "\n".join(lines) + "\n"


def build_request_parts(
    image_base64: str,
    exemplars: Sequence[ExemplarImage] | None = None,
    tags: Mapping[int, Sequence[str]] | None = None,
) -> list[ContentPart]:
    """
    Build the user content for one image

    Args:
        image_base64: Target image (base64, no data-URL prefix)
        exemplars: Reference images; None or empty when zero-shot-by-example is off
        tags: Per-class tags shown as key attributes

    Returns:
        Provider-neutral content parts
    """
    exemplars = list(exemplars or [])
    parts = [ContentPart.from_text(build_ontology_text([e.class_id for e in exemplars], tags))]

    if exemplars:
        parts.append(ContentPart.from_text("\nExample Images for Reference:\n"))
        for exemplar in exemplars:
            parts.append(ContentPart.from_text(
                f"\nExample image for Class {exemplar.class_id} ({exemplar.class_name}):"
            ))
            parts.append(ContentPart.from_image(exemplar.image_base64))

    parts.append(ContentPart.from_text(f"\n\n{ANALYSIS_INSTRUCTION}"))
    parts.append(ContentPart.from_image(image_base64))
    return parts
