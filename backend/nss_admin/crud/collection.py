"""Repository over one content collection stored as a JSON list."""
from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from ..errors import NotFoundError
from ..storage.base import KeyValueStore
from ..utils.ids import generate_id

logger = logging.getLogger("nss_admin.crud")

Record = dict[str, Any]


class CollectionRepository:
    def __init__(self, store: KeyValueStore, key: str, *, label: str = "Item") -> None:
        self.store = store
        self.key = key
        self.label = label

    def _load(self) -> list[Record]:
        items = self.store.read(self.key, [])
        if not isinstance(items, list):
            logger.error("Collection %s is not a list; treating as empty", self.key)
            return []
        return [item for item in items if isinstance(item, dict)]

    def _save(self, items: list[Record]) -> None:
        self.store.write(self.key, items)

    def _index_of(self, items: list[Record], item_id: str) -> int:
        for index, item in enumerate(items):
            if item.get("id") == item_id:
                return index
        raise NotFoundError(f"{self.label} not found", details={"id": item_id})

    def list_all(self) -> list[Record]:
        return self._load()

    def count(self) -> int:
        return len(self._load())

    def get(self, item_id: str) -> Record:
        items = self._load()
        return items[self._index_of(items, item_id)]

    def create(self, payload: BaseModel, **extra: Any) -> Record:
        items = self._load()
        record: Record = payload.model_dump(mode="json", by_alias=True)
        record.update(extra)
        record["id"] = generate_id({str(item.get("id")) for item in items})
        items.append(record)
        self._save(items)
        return record

    def update(self, item_id: str, changes: BaseModel | Record, **extra: Any) -> Record:
        """Shallow-merge ``changes`` into the stored record; unset fields are kept."""
        if isinstance(changes, BaseModel):
            changes = changes.model_dump(mode="json", by_alias=True, exclude_unset=True)
        items = self._load()
        index = self._index_of(items, item_id)
        merged = {**items[index], **changes, **extra, "id": item_id}
        items[index] = merged
        self._save(items)
        return merged

    def delete(self, item_id: str) -> Record:
        items = self._load()
        removed = items.pop(self._index_of(items, item_id))
        self._save(items)
        return removed
