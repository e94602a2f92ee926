"""
Exemplar image and class-tag library

Persists per-class reference images (zero-shot-by-example) and per-class tags
through an injected key-value store with an explicit load/save lifecycle.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path

from rareplanes_bench.domain.entities import ExemplarImage
from rareplanes_bench.domain.constants import CLASS_NAMES

logger = logging.getLogger(__name__)

EXEMPLAR_KEY = "ontology_example_images"
TAGS_KEY = "ontology_class_tags"


class KeyValueStore(ABC):
    """String key-value store"""

    @abstractmethod
    def get(self, key: str) -> str | None:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass


class InMemoryStore(KeyValueStore):
    """Process-local store (tests, one-shot CLI runs)"""

    def __init__(self, data: dict[str, str] | None = None):
        self._data = dict(data or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore(InMemoryStore):
    """
    Store backed by a single JSON file

    Changes stay in memory until save() is called.
    """

    def __init__(self, path: str | Path):
        super().__init__()
        self.path = Path(path).expanduser()

    def load(self) -> "JsonFileStore":
        """Read the backing file; a missing file means an empty store"""
        if not self.path.exists():
            self._data = {}
            return self
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.path} does not contain a JSON object")
        self._data = {str(k): str(v) for k, v in data.items()}
        return self

    def save(self) -> None:
        """Write the store atomically"""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(self._data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)


def _class_label(class_id: int) -> str:
    return CLASS_NAMES.get(class_id, f"Class {class_id}")


class ExemplarLibrary:
    """Per-class exemplar images and tags kept in a KeyValueStore"""

    def __init__(self, store: KeyValueStore | None = None):
        self.store = store or InMemoryStore()

    def _read_list(self, key: str) -> list[dict]:
        raw = self.store.get(key)
        if not raw:
            return []
        try:
            items = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Stored %s is not valid JSON, ignoring it: %s", key, e)
            return []
        if not isinstance(items, list):
            logger.warning("Stored %s is not a list, ignoring it", key)
            return []
        return [item for item in items if isinstance(item, dict)]

    def _write_list(self, key: str, items: list[dict]) -> None:
        self.store.set(key, json.dumps(items))

    # ---- exemplar images ----

    def save_exemplar(self, class_id: int, image_base64: str, image_name: str | None = None) -> ExemplarImage:
        """Save (or replace) the exemplar of a class"""
        exemplar = ExemplarImage(
            class_id=class_id,
            class_name=_class_label(class_id),
            image_base64=image_base64,
            image_name=image_name or f"example_{class_id}.jpg",
            uploaded_at=datetime.now().isoformat(),
        )
        items = [i for i in self._read_list(EXEMPLAR_KEY) if i.get("classId") != class_id]
        items.append({
            "classId": exemplar.class_id,
            "className": exemplar.class_name,
            "imageBase64": exemplar.image_base64,
            "imageName": exemplar.image_name,
            "uploadedAt": exemplar.uploaded_at,
        })
        self._write_list(EXEMPLAR_KEY, items)
        return exemplar

    def list_exemplars(self) -> list[ExemplarImage]:
        exemplars = []
        for item in self._read_list(EXEMPLAR_KEY):
            try:
                exemplars.append(ExemplarImage(
                    class_id=int(item["classId"]),
                    class_name=item.get("className") or _class_label(int(item["classId"])),
                    image_base64=item["imageBase64"],
                    image_name=item.get("imageName"),
                    uploaded_at=item.get("uploadedAt"),
                ))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed exemplar entry: %s", e)
        return exemplars

    def get_exemplar(self, class_id: int) -> ExemplarImage | None:
        return next((e for e in self.list_exemplars() if e.class_id == class_id), None)

    def exemplars_by_class(self) -> dict[int, ExemplarImage]:
        return {e.class_id: e for e in self.list_exemplars()}

    def delete_exemplar(self, class_id: int) -> None:
        items = [i for i in self._read_list(EXEMPLAR_KEY) if i.get("classId") != class_id]
        self._write_list(EXEMPLAR_KEY, items)

    def clear_exemplars(self) -> None:
        self.store.delete(EXEMPLAR_KEY)

    # ---- class tags ----

    def save_tags(self, class_id: int, tags: list[str]) -> list[str]:
        """Save the tags of a class; blank tags are dropped"""
        cleaned = [t.strip() for t in tags if t and t.strip()]
        items = [i for i in self._read_list(TAGS_KEY) if i.get("classId") != class_id]
        items.append({
            "classId": class_id,
            "className": _class_label(class_id),
            "tags": cleaned,
            "updatedAt": datetime.now().isoformat(),
        })
        self._write_list(TAGS_KEY, items)
        return cleaned

    def get_tags(self, class_id: int) -> list[str]:
        for item in self._read_list(TAGS_KEY):
            if item.get("classId") == class_id:
                return [str(t) for t in item.get("tags") or []]
        return []

    def tags_by_class(self, class_ids=None) -> dict[int, list[str]]:
        """Tags per class id (every requested id is present, possibly empty)"""
        if class_ids is None:
            class_ids = sorted(CLASS_NAMES)
        return {class_id: self.get_tags(class_id) for class_id in class_ids}

    def delete_tags(self, class_id: int) -> None:
        items = [i for i in self._read_list(TAGS_KEY) if i.get("classId") != class_id]
        self._write_list(TAGS_KEY, items)

    def clear_tags(self) -> None:
        self.store.delete(TAGS_KEY)
