"""
Aircraft class ontology

Describes the seven dataset classes and groups them into a category hierarchy
used in prompts and in the exported ontology JSON.
"""

import json
from dataclasses import asdict, dataclass, field

from rareplanes_bench.domain.constants import CLASS_NAMES

CATEGORY_DESCRIPTIONS = {
    "Civil Aircraft": "Civilian aircraft used for commercial and utility operations, classified by FAA wingspan standards",
    "Military Aircraft": "Military aircraft used for various defense operations including combat, transport, and training missions",
}

_SUBCATEGORIES = {
    "Large Civil Transport": "Large Transport",
    "Medium Civil Transport": "Medium Transport",
    "Small Civil Transport": "Small Transport",
    "Military Bomber": "Bomber",
    "Military Fighter": "Combat Aircraft",
    "Military Trainer": "Training Aircraft",
    "Military Transport": "Transport Aircraft",
}

_DESCRIPTIONS = {
    "Large Civil Transport": "Large civil aircraft used for commercial transport operations",
    "Medium Civil Transport": "Medium-sized civil aircraft used for regional transport operations",
    "Small Civil Transport": "Small civil aircraft used for short-range transport and utility operations",
    "Military Bomber": "Military aircraft designed for bombing missions and strategic attacks",
    "Military Fighter": "Military aircraft designed for air-to-air and air-to-ground combat",
    "Military Trainer": "Military aircraft used for pilot training and instruction",
    "Military Transport": "Military aircraft used for cargo and personnel transport",
}

_CHARACTERISTICS = {
    "Large Civil Transport": ["Large size", "Civil registration", "Commercial transport", "Passenger/cargo capacity"],
    "Medium Civil Transport": ["Medium size", "Civil registration", "Regional transport", "Short to medium range"],
    "Small Civil Transport": ["Small size", "Civil registration", "Short range", "Utility operations"],
    "Military Bomber": ["Military registration", "Bomb carrying capability", "Long range", "Strategic missions"],
    "Military Fighter": ["Military registration", "Combat role", "High performance", "Weapons systems"],
    "Military Trainer": ["Military registration", "Training role", "Dual controls", "Instruction capability"],
    "Military Transport": ["Military registration", "Cargo capacity", "Personnel transport", "Tactical missions"],
}


@dataclass(frozen=True)
class AircraftClass:
    """One ontology class"""
    id: int
    name: str
    category: str
    subcategory: str
    description: str
    characteristics: list[str] = field(default_factory=list)

    @property
    def role_id(self) -> int:
        return self.id + 1


def _category_for(name: str) -> str:
    if "Civil" in name:
        return "Civil Aircraft"
    if "Military" in name:
        return "Military Aircraft"
    return "Unknown"


def _build_classes() -> list[AircraftClass]:
    return [
        AircraftClass(
            id=class_id,
            name=name,
            category=_category_for(name),
            subcategory=_SUBCATEGORIES.get(name, "Unknown"),
            description=_DESCRIPTIONS.get(name, "Aircraft type"),
            characteristics=list(_CHARACTERISTICS.get(name, ["Aircraft characteristics"])),
        )
        for class_id, name in sorted(CLASS_NAMES.items())
    ]


AIRCRAFT_CLASSES: list[AircraftClass] = _build_classes()


def class_name(class_id: int) -> str:
    """Display name of a class id; "Unknown (id)" for ids outside the ontology"""
    return CLASS_NAMES.get(class_id, f"Unknown ({class_id})")


def class_names(class_ids) -> list[str]:
    """Name per entry, preserving order and duplicates"""
    return [class_name(c) for c in class_ids]


def get_aircraft_class(class_id: int) -> AircraftClass | None:
    return next((c for c in AIRCRAFT_CLASSES if c.id == class_id), None)


def build_hierarchy() -> dict:
    """
    Group classes by category

    Returns:
        {"categories": {name: {"name", "description", "aircraft": [...]}},
         "totalAircraft": int, "totalCategories": int}
    """
    categories: dict[str, dict] = {}
    for aircraft in AIRCRAFT_CLASSES:
        category = categories.setdefault(aircraft.category, {
            "name": aircraft.category,
            "description": CATEGORY_DESCRIPTIONS.get(aircraft.category, "Aircraft category"),
            "aircraft": [],
        })
        entry = asdict(aircraft)
        entry["role_id"] = aircraft.role_id
        category["aircraft"].append(entry)

    for category in categories.values():
        category["aircraft"].sort(key=lambda a: a["name"])

    return {
        "categories": categories,
        "totalAircraft": len(AIRCRAFT_CLASSES),
        "totalCategories": len(categories),
    }


def export_ontology_json() -> str:
    """Hierarchy as indented JSON (embedded in system prompts)"""
    return json.dumps(build_hierarchy(), indent=2)
