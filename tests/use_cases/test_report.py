"""Tests for the markdown report and the cross-model summary"""

import pytest

from rareplanes_bench.domain.entities import (
    EvaluationConfig,
    EvaluationImage,
    EvaluationResult,
    ImageStatus,
)
from rareplanes_bench.domain.value_objects import ImageScore
from rareplanes_bench.use_cases.report import generate_evaluation_report, summarize_results


def _result(provider="openai", model="gpt-4o"):
    done = EvaluationImage(
        id="a", filename="a.jpg", subset="train", image_url="u",
        actual_objects=2, actual_classes=[0, 3], actual_class_names=["Large Civil Transport", "Military Fighter"],
        predicted_objects=2, predicted_classes=[0, 0], predicted_class_names=["Large Civil Transport"] * 2,
        cost=0.0035, api_duration=1500, score=ImageScore(1.0, 0.5), status=ImageStatus.COMPLETED,
    )
    errored = EvaluationImage(
        id="b", filename="b.jpg", subset="train", image_url="u",
        actual_objects=0, actual_classes=[], llm_response="Error: timeout", status=ImageStatus.ERROR,
    )
    config = EvaluationConfig(sample_size=2, subset="train", provider=provider, model=model, system_prompt="")
    result = EvaluationResult(config=config, images=[done, errored])
    result.recompute_aggregates()
    return result


class TestGenerateEvaluationReport:
    def test_headline_numbers(self):
        report = generate_evaluation_report(_result())
        assert report.startswith("# Evaluation Report\n")
        assert "- **Model**: openai/gpt-4o" in report
        assert "- **Duration**: 2s" in report
        assert "- **Average Count Accuracy**: 100.0%" in report
        assert "- **Average Class Accuracy**: 50.0%" in report
        assert "- **Total Cost**: $0.0035" in report
        assert "- **Images Processed**: 2" in report
        assert "- **Completed**: 1" in report

    def test_per_image_sections(self):
        report = generate_evaluation_report(_result(), model_name="GPT-4o")
        assert "- **Model**: GPT-4o" in report
        assert "### a.jpg" in report
        assert "- **Actual**: 2 objects, classes: [Large Civil Transport, Military Fighter]" in report
        assert "- **API Duration**: 1500ms" in report
        section_b = report.split("### b.jpg", 1)[1]
        assert "- **Predicted**: 0 objects, classes: [N/A]" in section_b
        assert "- **Count Accuracy**: N/A" in section_b
        assert "- **Status**: error" in section_b


class TestSummarizeResults:
    def test_one_row_per_model(self):
        df = summarize_results({
            "openai:gpt-4o": _result(),
            "google:gemini-2.5-flash": _result("google", "gemini-2.5-flash"),
        })
        assert list(df["model_name"]) == ["openai:gpt-4o", "google:gemini-2.5-flash"]
        row = df.iloc[0]
        assert row["provider"] == "openai"
        assert row["count_accuracy_pct"] == 100.0
        assert row["class_accuracy_pct"] == 50.0
        assert row["total_cost"] == pytest.approx(0.0035)
        assert row["completed"] == 1
        assert row["errors"] == 1

    def test_empty(self):
        df = summarize_results({})
        assert df.empty
        assert "class_accuracy_pct" in df.columns
