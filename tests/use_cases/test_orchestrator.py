"""
EvaluationOrchestrator のテスト

プロバイダーはモック、画像取得は PNG バイト列を返すスタブで置き換える。
"""

import io
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from rareplanes_bench.domain.entities import (
    EvaluationConfig,
    EvaluationImage,
    ExemplarImage,
    ImageStatus,
    RunStatus,
)
from rareplanes_bench.domain.value_objects import ProviderResponse, TokenUsage
from rareplanes_bench.exemplar_store import ExemplarLibrary, InMemoryStore
from rareplanes_bench.harness_config import RetryConfig
from rareplanes_bench.infrastructure.model_clients.errors import MissingCredential, TransportFailure
from rareplanes_bench.use_cases.evaluation import EvaluationOrchestrator

SLEEP = "rareplanes_bench.infrastructure.model_clients.base.time.sleep"


def _png(width=512, height=512) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height)).save(buffer, format="PNG")
    return buffer.getvalue()


def _image(image_id, classes):
    return EvaluationImage(
        id=image_id,
        filename=f"{image_id}.jpg",
        subset="train",
        image_url=f"http://localhost:3001/dataset/train/images/{image_id}.jpg",
        actual_objects=len(classes),
        actual_classes=list(classes),
    )


def _config(**overrides):
    fields = dict(
        sample_size=2,
        subset="train",
        provider="openai",
        model="gpt-4o",
        system_prompt="You count aircraft.",
    )
    fields.update(overrides)
    return EvaluationConfig(**fields)


def _response(content, usage=None, error=None):
    return ProviderResponse(
        content=content,
        duration_ms=250,
        error=error,
        usage=usage or TokenUsage(prompt_tokens=1000, completion_tokens=100),
    )


def _orchestrator(images, responses, **kwargs):
    adapter = MagicMock()
    adapter.call.side_effect = list(responses)
    fetch = MagicMock(return_value=_png())
    orchestrator = EvaluationOrchestrator(
        kwargs.pop("config", _config(sample_size=len(images))),
        images,
        adapter,
        fetch,
        retry=RetryConfig(max_attempts=3, backoff_seconds=1.0),
        **kwargs,
    )
    return orchestrator, adapter, fetch


class TestRun:
    """run() の正常系・異常系のテスト"""

    def test_scores_every_image(self):
        orchestrator, adapter, fetch = _orchestrator(
            [_image("a", [0, 3]), _image("b", [1])],
            [
                _response('{"count": 2, "objects": [{"class": 0}, {"class": 3}], "countConfidence": 0.9}'),
                _response('{"count": 2, "classes": [1, 1]}'),
            ],
        )

        result = orchestrator.run()

        assert orchestrator.status == RunStatus.COMPLETED
        assert orchestrator.progress == 1.0
        first, second = result.images
        assert first.status == ImageStatus.COMPLETED
        assert first.predicted_class_names == ["Large Civil Transport", "Military Fighter"]
        assert first.predicted_count_confidence == 0.9
        assert first.score.count_accuracy == 1.0
        assert first.score.class_accuracy == 1.0
        assert (first.image_width, first.image_height) == (512, 512)
        # (1000 + 170) / 1000 * 0.0025 + 100 / 1000 * 0.01
        assert first.cost == pytest.approx(0.003925)
        assert second.score.count_accuracy == 0.5
        assert second.score.class_accuracy == pytest.approx(0.25)

        assert result.average_count_accuracy == pytest.approx(0.75)
        assert result.average_class_accuracy == pytest.approx(0.625)
        assert result.total_cost == pytest.approx(0.00785)
        assert result.duration == 500
        assert result.end_time is not None
        assert fetch.call_count == 2

    def test_provider_call_arguments(self):
        orchestrator, adapter, _ = _orchestrator([_image("a", [])], [_response('{"count": 0}')])

        orchestrator.run()

        provider, model, system_prompt, image_b64, exemplars = adapter.call.call_args.args
        assert (provider, model) == ("openai", "gpt-4o")
        assert system_prompt.startswith("You count aircraft.")
        assert "Aircraft Classification Ontology" in system_prompt
        assert "IMPORTANT" in system_prompt
        assert image_b64.startswith("iVBOR")
        assert exemplars is None

    @patch(SLEEP)
    def test_retries_empty_answer(self, mock_sleep):
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [2])],
            [_response(""), _response('{"count": 1, "classes": [2]}')],
        )

        result = orchestrator.run()

        assert adapter.call.call_count == 2
        mock_sleep.assert_called_once_with(1.0)
        assert result.images[0].status == ImageStatus.COMPLETED

    @patch(SLEEP)
    def test_exhausted_retries_mark_error_and_continue(self, mock_sleep):
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [2]), _image("b", [4])],
            [
                TransportFailure("connection refused"),
                TransportFailure("connection refused"),
                TransportFailure("connection refused"),
                _response('{"count": 1, "classes": [4]}'),
            ],
        )

        result = orchestrator.run()

        failed, done = result.images
        assert failed.status == ImageStatus.ERROR
        assert failed.llm_response == "Error: connection refused"
        assert failed.score is None
        assert done.status == ImageStatus.COMPLETED
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]
        # averages cover completed images only
        assert result.average_count_accuracy == 1.0
        assert orchestrator.status == RunStatus.COMPLETED

    @patch(SLEEP)
    def test_provider_error_payload_is_error(self, mock_sleep):
        orchestrator, _, _ = _orchestrator(
            [_image("a", [0])],
            [_response("", error="API error (429): rate limited")] * 3,
        )

        result = orchestrator.run()

        assert result.images[0].status == ImageStatus.ERROR
        assert "rate limited" in result.images[0].llm_response

    def test_unparseable_answer_still_completes(self):
        orchestrator, _, _ = _orchestrator([_image("a", [0])], [_response("I cannot tell.")])

        result = orchestrator.run()

        image = result.images[0]
        assert image.status == ImageStatus.COMPLETED
        assert image.predicted_objects == 0
        assert image.score.count_accuracy == 0.0
        assert image.llm_response == "I cannot tell."

    def test_missing_credential_aborts_before_any_image(self):
        orchestrator, adapter, fetch = _orchestrator([_image("a", [0])], [])
        adapter.check_credentials.side_effect = MissingCredential("openai", "OPENAI_API_KEY")

        with pytest.raises(MissingCredential):
            orchestrator.run()

        fetch.assert_not_called()
        assert orchestrator.status == RunStatus.IDLE
        assert orchestrator.images[0].status == ImageStatus.PENDING

    def test_running_twice_is_rejected(self):
        orchestrator, _, _ = _orchestrator([_image("a", [0])], [])
        orchestrator.status = RunStatus.RUNNING
        with pytest.raises(RuntimeError, match="already in progress"):
            orchestrator.run()

    def test_progress_callback(self):
        seen = []
        orchestrator, _, _ = _orchestrator(
            [_image("a", []), _image("b", [])],
            [_response('{"count": 0}'), _response('{"count": 0}')],
            on_progress=lambda orch, index, image: seen.append((index, image.id, orch.current_index)),
        )

        orchestrator.run()

        assert seen == [(0, "a", 1), (1, "b", 2)]


class TestZeroShotByExample:
    """参照画像モードのテスト"""

    def test_exemplars_sent_and_ontology_json_omitted(self):
        library = ExemplarLibrary(InMemoryStore())
        library.save_exemplar(3, "RVhBTVBMRQ==")
        config = _config(sample_size=1, zero_shot_by_example=True)
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [3])], [_response('{"count": 1, "classes": [3]}')],
            config=config, library=library,
        )

        orchestrator.run()

        _, _, system_prompt, _, exemplars = adapter.call.call_args.args
        assert "Aircraft Classification Ontology" not in system_prompt
        assert [e.class_id for e in exemplars] == [3]
        assert isinstance(exemplars[0], ExemplarImage)


class TestStopAndReset:
    """stop() / reset() のテスト"""

    def test_stop_from_progress_callback(self):
        def stop_after_first(orch, index, image):
            orch.stop()

        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [0]), _image("b", [1]), _image("c", [2])],
            [_response('{"count": 1, "classes": [0]}')] * 3,
            on_progress=stop_after_first,
        )

        result = orchestrator.run()

        assert adapter.call.call_count == 1
        assert orchestrator.status == RunStatus.STOPPED
        assert orchestrator.cancelled
        assert all(i.status == ImageStatus.PENDING for i in result.images)
        assert all(i.predicted_classes is None for i in result.images)
        assert result.average_count_accuracy == 0.0

    def test_stop_interrupts_delay(self):
        config = _config(sample_size=2, api_delay_seconds=30.0)
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", []), _image("b", [])],
            [_response('{"count": 0}')] * 2,
            config=config,
            on_progress=lambda orch, index, image: orch.stop(),
        )

        orchestrator.run()

        assert adapter.call.call_count == 1

    def test_reset(self):
        orchestrator, _, _ = _orchestrator([_image("a", [0])], [_response('{"count": 1, "classes": [0]}')])
        orchestrator.run()
        assert orchestrator.result.total_cost > 0

        orchestrator.reset()

        assert orchestrator.status == RunStatus.IDLE
        assert orchestrator.current_index == 0
        assert orchestrator.progress == 0.0
        assert orchestrator.result.total_cost == 0.0
        assert orchestrator.images[0].status == ImageStatus.PENDING

    def test_run_after_stop_starts_over(self):
        orchestrator, _, _ = _orchestrator(
            [_image("a", [0])],
            [_response('{"count": 1, "classes": [0]}')] * 2,
        )
        orchestrator.stop()

        result = orchestrator.run()

        assert orchestrator.status == RunStatus.COMPLETED
        assert result.images[0].status == ImageStatus.COMPLETED


class TestRerun:
    """rerun() のテスト"""

    @patch(SLEEP)
    def test_rerun_replaces_one_image(self, mock_sleep):
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [0]), _image("b", [1])],
            [
                _response('{"count": 1, "classes": [5]}'),
                _response('{"count": 1, "classes": [1]}'),
                _response('{"count": 1, "classes": [0]}'),
            ],
        )
        orchestrator.run()
        assert orchestrator.result.average_class_accuracy == pytest.approx(0.5)

        image = orchestrator.rerun(0)

        assert image.predicted_classes == [0]
        assert orchestrator.images[1].predicted_classes == [1]
        assert orchestrator.result.average_class_accuracy == 1.0

    @patch(SLEEP)
    def test_failed_rerun_is_marked_failed(self, mock_sleep):
        orchestrator, adapter, _ = _orchestrator(
            [_image("a", [0])],
            [_response('{"count": 1, "classes": [0]}')] + [TransportFailure("timeout")] * 3,
        )
        orchestrator.run()

        image = orchestrator.rerun(0)

        assert image.status == ImageStatus.FAILED
        assert image.llm_response == "Error: timeout"
        assert orchestrator.result.average_count_accuracy == 0.0

    def test_rerun_out_of_range(self):
        orchestrator, _, _ = _orchestrator([_image("a", [0])], [])
        with pytest.raises(IndexError):
            orchestrator.rerun(5)

    def test_rerun_while_running_is_rejected(self):
        orchestrator, _, _ = _orchestrator([_image("a", [0])], [])
        orchestrator.status = RunStatus.RUNNING
        with pytest.raises(RuntimeError):
            orchestrator.rerun(0)
