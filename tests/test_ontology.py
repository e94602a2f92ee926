"""Tests for the aircraft class ontology"""

import json

from rareplanes_bench.ontology import (
    AIRCRAFT_CLASSES,
    build_hierarchy,
    class_name,
    class_names,
    export_ontology_json,
    get_aircraft_class,
)


class TestClasses:
    def test_seven_classes_in_id_order(self):
        assert [c.id for c in AIRCRAFT_CLASSES] == list(range(7))

    def test_categories(self):
        assert get_aircraft_class(0).category == "Civil Aircraft"
        assert get_aircraft_class(2).category == "Military Aircraft"
        assert get_aircraft_class(3).subcategory == "Combat Aircraft"

    def test_role_id_is_one_based(self):
        assert get_aircraft_class(0).role_id == 1
        assert get_aircraft_class(6).role_id == 7

    def test_unknown_class(self):
        assert get_aircraft_class(9) is None


class TestClassNames:
    def test_known(self):
        assert class_name(4) == "Military Trainer"

    def test_unknown(self):
        assert class_name(12) == "Unknown (12)"

    def test_preserves_order_and_duplicates(self):
        assert class_names([3, 0, 3]) == ["Military Fighter", "Large Civil Transport", "Military Fighter"]


class TestHierarchy:
    def test_totals(self):
        hierarchy = build_hierarchy()
        assert hierarchy["totalAircraft"] == 7
        assert hierarchy["totalCategories"] == 2

    def test_category_members_sorted_by_name(self):
        civil = build_hierarchy()["categories"]["Civil Aircraft"]["aircraft"]
        names = [a["name"] for a in civil]
        assert names == sorted(names)
        assert len(civil) == 3

    def test_military_members(self):
        military = build_hierarchy()["categories"]["Military Aircraft"]
        assert {a["id"] for a in military["aircraft"]} == {2, 3, 4, 5}
        assert military["description"].startswith("Military aircraft")

    def test_export_is_valid_json(self):
        text = export_ontology_json()
        assert "\n  " in text
        assert json.loads(text) == build_hierarchy()
