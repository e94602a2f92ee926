"""Tests for response normalization"""

import json

import pytest

from rareplanes_bench.domain.value_objects import Prediction
from rareplanes_bench.scoring.normalizer import normalize_response, strip_code_fence


class TestStripCodeFence:
    def test_json_fence(self):
        assert strip_code_fence('```json\n{"count": 1}\n```') == '{"count": 1}'

    def test_plain_fence(self):
        assert strip_code_fence('```\n{"count": 1}\n```') == '{"count": 1}'

    def test_no_fence(self):
        assert strip_code_fence('  {"count": 1} ') == '{"count": 1}'


class TestKnownShapes:
    def test_fenced_objects_shape_drops_out_of_range_class(self):
        text = '```json\n{"count":2,"objects":[{"class":0,"confidence":0.9},{"class":9,"confidence":0.5}]}\n```'
        prediction = normalize_response(text)
        assert prediction.count == 2
        assert prediction.classes == [0]
        assert prediction.class_confidences == [0.9]

    def test_objects_shape_with_count_confidence(self):
        payload = {
            "objects": [
                {"class": 3, "className": "Military Fighter", "confidence": 0.8},
                {"class": 3, "className": "Military Fighter", "confidence": 0.7},
            ],
            "count": 2,
            "countConfidence": 0.92,
        }
        prediction = normalize_response(json.dumps(payload))
        assert prediction.classes == [3, 3]
        assert prediction.count_confidence == 0.92
        assert prediction.class_confidences == [0.8, 0.7]

    def test_legacy_aircraft_shape(self):
        text = '{"count": 3, "aircraft": [{"class_id": 1}, {"class_id": 1}, {"class_id": 5}]}'
        prediction = normalize_response(text)
        assert prediction.count == 3
        assert prediction.classes == [1, 1, 5]

    def test_minimal_classes_shape(self):
        prediction = normalize_response('{"count": 2, "classes": [4, 6]}')
        assert prediction == Prediction(count=2, classes=[4, 6])

    def test_objects_shape_wins_over_classes(self):
        text = '{"count": 1, "objects": [{"class": 2}], "classes": [5]}'
        assert normalize_response(text).classes == [2]

    def test_invalid_class_values_dropped(self):
        text = '{"count": 4, "classes": [1, -1, 7, 2.5, "3", true, 4.0]}'
        assert normalize_response(text).classes == [1, 4]

    def test_confidence_out_of_range_ignored(self):
        text = '{"count": 1, "countConfidence": 1.5, "objects": [{"class": 0, "confidence": 2}]}'
        prediction = normalize_response(text)
        assert prediction.count_confidence is None
        assert prediction.class_confidences is None


class TestFallbacks:
    def test_prose_around_json(self):
        text = 'Here is my analysis:\n{"count": 1, "classes": [0]}\nLet me know if you need more.'
        prediction = normalize_response(text)
        assert prediction.count == 1
        assert prediction.classes == [0]

    def test_duck_typed_without_count(self):
        prediction = normalize_response('{"objects": [{"class": 2}, {"class": 2}]}')
        assert prediction.count == 0
        assert prediction.classes == [2, 2]

    def test_duck_typed_aircraft_without_count(self):
        prediction = normalize_response('{"aircraft": [{"class_id": 6}]}')
        assert prediction.classes == [6]

    def test_string_count_is_coerced(self):
        assert normalize_response('{"count": "3", "classes": []}').count == 3

    def test_negative_count_floors_at_zero(self):
        assert normalize_response('{"count": -2, "classes": []}').count == 0

    def test_regex_heuristics_on_prose(self):
        prediction = normalize_response("I count 3 planes. They look like class 1, class 1 and class 5.")
        assert prediction.count == 3
        assert 1 in prediction.classes
        assert 5 in prediction.classes

    def test_regex_ignores_large_numbers(self):
        prediction = normalize_response("Aircraft: 2, parked near runway 27")
        assert prediction.count == 2
        assert 27 not in prediction.classes


class TestNeverRaises:
    @pytest.mark.parametrize("text", [
        "",
        None,
        "not json at all",
        "{",
        "{}",
        "[]",
        "[1, 2, 3]",
        '{"foo": "bar"}',
        '{"count": null, "objects": null}',
        '{"count": {"nested": 1}, "classes": "abc"}',
        '{"count": 1e999}',
        "```json\n```",
        "{" * 5000 + "}" * 5000,
    ])
    def test_always_returns_prediction(self, text):
        prediction = normalize_response(text)
        assert isinstance(prediction, Prediction)
        assert prediction.count >= 0
        assert all(0 <= c <= 6 for c in prediction.classes)

    def test_empty_input_floor(self):
        assert normalize_response("") == Prediction(count=0, classes=[])

    def test_json_without_known_keys_floor(self):
        assert normalize_response('{"foo": 1}') == Prediction(count=0, classes=[])
