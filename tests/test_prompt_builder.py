"""
prompt_builder.py の単体テスト
"""

import json

from rareplanes_bench.domain.entities import ExemplarImage
from rareplanes_bench.domain.value_objects import ContentPart
from rareplanes_bench.prompt_builder import (
    ANALYSIS_INSTRUCTION,
    DEFAULT_SYSTEM_PROMPT,
    STRUCTURED_OUTPUT_INSTRUCTIONS,
    build_ontology_text,
    build_request_parts,
    build_system_prompt,
)


def _exemplar(class_id, name, data="RVhBTVBMRQ=="):
    return ExemplarImage(class_id=class_id, class_name=name, image_base64=data)


class TestDefaultSystemPrompt:
    """デフォルトのシステムプロンプトのテスト"""

    def test_lists_dataset_class_ids(self):
        assert "0: Large Civil Transport" in DEFAULT_SYSTEM_PROMPT
        assert "3: Military Fighter" in DEFAULT_SYSTEM_PROMPT
        assert "6: Small Civil Transport" in DEFAULT_SYSTEM_PROMPT


class TestBuildSystemPrompt:
    """build_system_prompt() のテスト"""

    def test_base_only(self):
        assert build_system_prompt("base", include_ontology=False, structured_output=False) == "base"

    def test_with_ontology(self):
        prompt = build_system_prompt("base", include_ontology=True, structured_output=False)
        assert prompt.startswith("base\n\nAircraft Classification Ontology:\n")
        payload = json.loads(prompt.split("Aircraft Classification Ontology:\n", 1)[1])
        assert payload["totalAircraft"] == 7

    def test_with_structured_output(self):
        prompt = build_system_prompt("base", include_ontology=False, structured_output=True)
        assert prompt == f"base\n\n{STRUCTURED_OUTPUT_INSTRUCTIONS}"
        assert '"countConfidence"' in prompt

    def test_ontology_before_output_format(self):
        prompt = build_system_prompt("base", include_ontology=True, structured_output=True)
        assert prompt.index("Aircraft Classification Ontology") < prompt.index("IMPORTANT")


class TestBuildOntologyText:
    """build_ontology_text() のテスト"""

    def test_every_class_without_exemplars(self):
        text = build_ontology_text()
        assert text.startswith("Aircraft Classification Ontology:\n\n")
        for class_id in range(7):
            assert f"Class {class_id}:" in text
        assert text.count("[Text description only - no example image]") == 7
        assert "Key Attributes" not in text

    def test_exemplar_and_tags_marked(self):
        text = build_ontology_text([3], tags={3: ["swept wings", "twin tail"], 0: []})
        entry = text.split("Class 3: Military Fighter\n", 1)[1].split("\n\n", 1)[0]
        assert "  Key Attributes: swept wings, twin tail" in entry
        assert "  [Example image provided below]" in entry
        assert text.count("[Example image provided below]") == 1


class TestBuildRequestParts:
    """build_request_parts() のテスト"""

    def test_without_exemplars(self):
        parts = build_request_parts("VEFSR0VU")
        assert len(parts) == 3
        assert parts[0].text.startswith("Aircraft Classification Ontology:")
        assert parts[1] == ContentPart.from_text(f"\n\n{ANALYSIS_INSTRUCTION}")
        assert parts[2] == ContentPart.from_image("VEFSR0VU")

    def test_with_exemplars_order(self):
        exemplars = [_exemplar(2, "Military Bomber", "QUFB"), _exemplar(5, "Military Transport", "QkJC")]
        parts = build_request_parts("VEFSR0VU", exemplars)

        kinds = [p.kind for p in parts]
        assert kinds == ["text", "text", "text", "image", "text", "image", "text", "image"]
        assert parts[1].text == "\nExample Images for Reference:\n"
        assert parts[2].text == "\nExample image for Class 2 (Military Bomber):"
        assert parts[3].data == "QUFB"
        assert parts[4].text == "\nExample image for Class 5 (Military Transport):"
        assert parts[5].data == "QkJC"
        # the target image is always last
        assert parts[-1].data == "VEFSR0VU"

    def test_exemplar_classes_flagged_in_ontology(self):
        parts = build_request_parts("VEFSR0VU", [_exemplar(2, "Military Bomber")])
        assert parts[0].text.count("[Example image provided below]") == 1

    def test_tags_forwarded(self):
        parts = build_request_parts("VEFSR0VU", tags={1: ["high wing"]})
        assert "Key Attributes: high wing" in parts[0].text
