"""
Record stores backing the scheduling board.

``InMemoryRecordStore`` keeps collections in dictionaries and notifies
subscribers synchronously. ``JsonFileRecordStore`` adds a JSON file behind it
so the CLI keeps its state between invocations.
"""

import copy
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)

Snapshot = Dict[str, Dict[str, Any]]
ChangeCallback = Callable[[Snapshot], None]


class InMemoryRecordStore:
    """
    Dictionary-backed key/value record store.

    Each collection maps generated ids to records. Subscribers receive a deep
    copy of the whole collection right after subscribing and after every
    change to it.
    """

    def __init__(self, initial_data: Optional[Mapping[str, Mapping[str, Any]]] = None):
        """
        Initialize the store.

        Args:
            initial_data: Optional mapping of collection name -> {id: record}
        """
        self._collections: Dict[str, Snapshot] = {}
        self._subscribers: Dict[str, List[ChangeCallback]] = {}

        for collection, records in (initial_data or {}).items():
            self._collections[collection] = {
                str(record_id): copy.deepcopy(record)
                for record_id, record in (records or {}).items()
            }

    def create_record(self, collection: str, data: Mapping[str, Any]) -> str:
        """Store ``data`` under a freshly generated id and return the id."""
        record_id = uuid.uuid4().hex
        self._collections.setdefault(collection, {})[record_id] = copy.deepcopy(dict(data))
        logger.debug("Created %s/%s", collection, record_id)
        self._changed(collection)
        return record_id

    def update_field(self, collection: str, record_id: str, field_path: str, value: Any) -> None:
        """
        Set a (possibly nested) field of a record.

        ``field_path`` segments are separated by ``/``. Setting ``None``
        removes the field. Updating a record that does not exist does nothing.
        """
        record = self._collections.get(collection, {}).get(record_id)
        if record is None:
            logger.debug("Ignoring update of missing record %s/%s", collection, record_id)
            return

        segments = [segment for segment in field_path.split("/") if segment]
        if not segments:
            raise ValueError("field_path must name at least one field")

        *parents, leaf = segments
        target = record
        for segment in parents:
            child = target.get(segment)
            if not isinstance(child, dict):
                if value is None:
                    return
                child = target[segment] = {}
            target = child

        if value is None:
            target.pop(leaf, None)
        else:
            target[leaf] = copy.deepcopy(value)

        logger.debug("Updated %s/%s/%s", collection, record_id, field_path)
        self._changed(collection)

    def delete_record(self, collection: str, record_id: str) -> None:
        """Remove a record. Deleting a missing record does nothing."""
        if self._collections.get(collection, {}).pop(record_id, None) is None:
            return
        logger.debug("Deleted %s/%s", collection, record_id)
        self._changed(collection)

    def subscribe(self, collection: str, on_change: ChangeCallback) -> Callable[[], None]:
        """
        Register ``on_change`` for a collection.

        Returns:
            A callable that removes the subscription
        """
        callbacks = self._subscribers.setdefault(collection, [])
        callbacks.append(on_change)
        on_change(self.snapshot(collection))

        def unsubscribe() -> None:
            if on_change in callbacks:
                callbacks.remove(on_change)

        return unsubscribe

    def snapshot(self, collection: str) -> Snapshot:
        return copy.deepcopy(self._collections.get(collection, {}))

    def dump(self) -> Dict[str, Snapshot]:
        """All collections, for serialisation."""
        return copy.deepcopy(self._collections)

    def _changed(self, collection: str) -> None:
        for callback in list(self._subscribers.get(collection, [])):
            callback(self.snapshot(collection))


class JsonFileRecordStore(InMemoryRecordStore):
    """
    In-memory store persisted to a JSON file after every write.

    The file holds ``{collection: {id: record}}``. A missing file is treated
    as an empty store.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        super().__init__(initial_data=self._load())

    def _load(self) -> Dict[str, Snapshot]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValueError(f"Data file {self.path} must contain a mapping at the root level.")

        return data

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.dump(), f, indent=2, ensure_ascii=False)

    def _changed(self, collection: str) -> None:
        self._save()
        super()._changed(collection)
