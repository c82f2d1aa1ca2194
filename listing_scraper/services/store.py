import asyncio
import json
import logging
import os
import tempfile
import uuid
from pathlib import Path
from typing import TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from listing_scraper.exceptions.custom import NotFoundError, StorageError
from listing_scraper.mappers.property_matcher import find_match
from listing_scraper.schemas.history import HistoryEntry, HistoryType
from listing_scraper.schemas.property import PropertyRecord

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

PROPERTIES_FILE = "properties.json"
HISTORY_FILE = "history.json"
HISTORY_LIMIT = 50


class PropertyStore:
    """System of record for scraped properties and the scrape history.

    Both collections are JSON arrays, most recent first. Every mutation is a
    full read-modify-write swapped into place with os.replace, serialised by
    an asyncio.Lock. Writers in other processes are not coordinated.
    """

    def __init__(self, data_dir: Path, history_limit: int = HISTORY_LIMIT):
        self._properties_path = Path(data_dir) / PROPERTIES_FILE
        self._history_path = Path(data_dir) / HISTORY_FILE
        self._history_limit = history_limit
        self._lock = asyncio.Lock()

    # --- properties ---

    async def list_properties(self) -> list[PropertyRecord]:
        return await self._read(self._properties_path, PropertyRecord)

    async def get(self, record_id: str) -> PropertyRecord:
        for record in await self.list_properties():
            if record.id == record_id:
                return record
        raise NotFoundError(record_id)

    async def merge(self, records: list[PropertyRecord]) -> list[PropertyRecord]:
        """Upsert records by listing identity; matches keep the stored id.

        Returns the records as stored, in input order. A record whose id is
        already stored replaces that record. Otherwise a stored record is
        matched at most once per call, so several listings scraped from the
        same page never collapse into each other.
        """
        if not records:
            return []

        async with self._lock:
            collection = await self._read(self._properties_path, PropertyRecord)
            touched: set[str] = set()
            stored: list[PropertyRecord] = []
            inserted = updated = 0

            for record in records:
                index = _index_of(collection, record.id)
                if index is None:
                    index = find_match(record, collection, skip_ids=touched)
                if index is None:
                    collection.insert(0, record)
                    inserted += 1
                else:
                    record = record.model_copy(update={"id": collection[index].id})
                    collection[index] = record
                    updated += 1
                touched.add(record.id)
                stored.append(record)

            await self._write(self._properties_path, collection)

        logger.info("Merged %d properties (%d new, %d updated)", len(records), inserted, updated)
        return stored

    async def update(self, record: PropertyRecord) -> PropertyRecord:
        async with self._lock:
            collection = await self._read(self._properties_path, PropertyRecord)
            index = _index_of(collection, record.id)
            if index is None:
                raise NotFoundError(record.id)
            collection[index] = record
            await self._write(self._properties_path, collection)
        return record

    async def delete(self, record_id: str) -> None:
        """Remove a record. Deleting an unknown id is a no-op."""
        async with self._lock:
            collection = await self._read(self._properties_path, PropertyRecord)
            remaining = [r for r in collection if r.id != record_id]
            if len(remaining) == len(collection):
                logger.warning("Delete of unknown property %s ignored", record_id)
                return
            await self._write(self._properties_path, remaining)

    async def clear(self) -> None:
        async with self._lock:
            await self._write(self._properties_path, [])

    # --- history ---

    async def list_history(self) -> list[HistoryEntry]:
        return await self._read(self._history_path, HistoryEntry)

    async def append_history(
        self, entry_type: HistoryType, details: str, property_count: int
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=f"hist-{uuid.uuid4().hex[:12]}",
            type=entry_type,
            details=details,
            propertyCount=property_count,
        )
        async with self._lock:
            history = await self._read(self._history_path, HistoryEntry)
            history.insert(0, entry)
            await self._write(self._history_path, history[: self._history_limit])
        return entry

    async def clear_history(self) -> None:
        async with self._lock:
            await self._write(self._history_path, [])

    # --- file I/O ---

    @staticmethod
    async def _read(path: Path, model: type[T]) -> list[T]:
        try:
            raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise StorageError(f"Could not read data from {path}: {exc}") from exc

        try:
            return TypeAdapter(list[model]).validate_json(raw)
        except PydanticValidationError as exc:
            logger.error("Corrupt data file %s: %s", path, exc)
            raise StorageError(f"Could not parse data in {path}") from exc

    @staticmethod
    async def _write(path: Path, items: list[BaseModel]) -> None:
        payload = json.dumps(
            [item.model_dump(mode="json") for item in items],
            indent=2,
            ensure_ascii=False,
        )
        try:
            await asyncio.to_thread(_replace_file, path, payload)
        except OSError as exc:
            raise StorageError(f"Could not save data to {path}: {exc}") from exc


def _index_of(collection: list[PropertyRecord], record_id: str) -> int | None:
    return next((i for i, r in enumerate(collection) if r.id == record_id), None)


def _replace_file(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(payload)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise
