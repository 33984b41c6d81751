"""JSON document store for sample records."""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple
from uuid import uuid4

import pandas as pd

from aquascore.core.storage import StorageAdapter
from aquascore.schemas.sample import SampleRecord, SampleValidationError
from aquascore.services.base import BaseService


class SampleStoreError(Exception):
    """Base class for sample store failures."""


class SampleNotFoundError(SampleStoreError, KeyError):
    """Raised when no record carries the requested id."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Sample not found"


class DuplicateSampleError(SampleStoreError):
    """Raised when inserting a ``sample_id`` that is already stored."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SampleStore(BaseService):
    """
    Keep sample records in a single JSON document on a :class:`StorageAdapter`.

    The whole document is loaded on construction and rewritten after every
    change. One writer per document is assumed.
    """

    def __init__(
        self,
        uri: str,
        *,
        storage: StorageAdapter | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        super().__init__(storage, logger)
        self.uri = uri
        self.clock = clock
        self._records: Dict[str, SampleRecord] = {}
        self._load()

    def _load(self) -> None:
        if not self.storage.exists(self.uri):
            return
        raw = self.storage.read_bytes(self.uri)
        try:
            doc = json.loads(raw.decode("utf-8")) if raw.strip() else {}
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise SampleStoreError(f"Sample store {self.uri} is not valid JSON: {exc}") from exc
        if not isinstance(doc, dict) or not isinstance(doc.get("samples", []), list):
            raise SampleStoreError(
                f"Sample store {self.uri} must hold an object with a 'samples' list"
            )
        for item in doc.get("samples", []):
            record = SampleRecord.from_dict(item)
            self._records[record.id or uuid4().hex] = record
        self.logger.debug("Loaded %d samples from %s", len(self._records), self.uri)

    def _commit(self, records: Dict[str, SampleRecord]) -> None:
        # write first; memory only changes once the document is on storage
        doc = {"samples": [r.to_dict() for r in records.values()]}
        self.storage.write_bytes(self.uri, json.dumps(doc, indent=2).encode("utf-8"))
        self._records = records

    def _stamp(self) -> str:
        return self.clock().isoformat()

    def __len__(self) -> int:
        return len(self._records)

    def _by_sample_id(
        self, sample_id: str, records: Mapping[str, SampleRecord] | None = None
    ) -> SampleRecord | None:
        for record in (self._records if records is None else records).values():
            if record.sample_id == sample_id:
                return record
        return None

    def _add(self, records: Dict[str, SampleRecord], record: SampleRecord) -> SampleRecord:
        if self._by_sample_id(record.sample_id, records) is not None:
            raise DuplicateSampleError(f"Sample '{record.sample_id}' already exists")
        stored = copy.deepcopy(record)
        stored.id = uuid4().hex
        stored.created_at = stored.updated_at = self._stamp()
        records[stored.id] = stored
        return copy.deepcopy(stored)

    def insert(self, record: SampleRecord) -> SampleRecord:
        """Store *record* under a fresh id and return the stored copy."""
        records = dict(self._records)
        stored = self._add(records, record)
        self._commit(records)
        self.logger.info("Stored sample %s (%s)", stored.sample_id, stored.id)
        return stored

    def insert_many(
        self, records: Iterable[SampleRecord | Mapping[str, Any]]
    ) -> Tuple[List[SampleRecord], List[Tuple[int, str]]]:
        """
        Insert every valid record; failures do not stop the batch.

        Returns:
            ``(inserted, errors)`` where ``errors`` holds ``(position, message)``
            for each rejected record (positions start at 0).
        """
        inserted: List[SampleRecord] = []
        errors: List[Tuple[int, str]] = []
        pending = dict(self._records)
        for pos, item in enumerate(records):
            try:
                record = item if isinstance(item, SampleRecord) else SampleRecord.from_dict(item)
                inserted.append(self._add(pending, record))
            except (SampleValidationError, DuplicateSampleError) as exc:
                errors.append((pos, str(exc)))
        if inserted:
            self._commit(pending)
        self.logger.info("Inserted %d samples, rejected %d", len(inserted), len(errors))
        return inserted, errors

    def get(self, record_id: str) -> SampleRecord:
        try:
            return copy.deepcopy(self._records[record_id])
        except KeyError as exc:
            raise SampleNotFoundError(f"Sample '{record_id}' not found") from exc

    def find(
        self,
        *,
        category: str | None = None,
        state: str | None = None,
        district: str | None = None,
        sample_id: str | None = None,
    ) -> List[SampleRecord]:
        """Return matching records, newest first."""
        wanted = {
            "category": category,
            "state": state,
            "district": district,
            "sample_id": sample_id,
        }
        out = [
            copy.deepcopy(r)
            for r in self._records.values()
            if all(v is None or getattr(r, k) == v for k, v in wanted.items())
        ]
        out.sort(key=lambda r: r.created_at or "", reverse=True)
        return out

    def all(self) -> List[SampleRecord]:
        return self.find()

    def replace(self, record: SampleRecord) -> SampleRecord:
        """Overwrite the stored record with the same id."""
        if record.id not in self._records:
            raise SampleNotFoundError(f"Sample '{record.id}' not found")
        clash = self._by_sample_id(record.sample_id)
        if clash is not None and clash.id != record.id:
            raise DuplicateSampleError(f"Sample '{record.sample_id}' already exists")
        stored = copy.deepcopy(record)
        stored.created_at = self._records[record.id].created_at
        stored.updated_at = self._stamp()
        self._commit({**self._records, stored.id: stored})
        self.logger.info("Updated sample %s (%s)", stored.sample_id, stored.id)
        return copy.deepcopy(stored)

    def delete(self, record_id: str) -> SampleRecord:
        try:
            record = self._records[record_id]
        except KeyError as exc:
            raise SampleNotFoundError(f"Sample '{record_id}' not found") from exc
        self._commit({k: v for k, v in self._records.items() if k != record_id})
        self.logger.info("Deleted sample %s (%s)", record.sample_id, record_id)
        return record

    def to_frame(self) -> pd.DataFrame:
        """Flatten records into one row per sample.

        Metal and water-quality values become ``metal_<name>`` and
        ``wq_<name>`` columns; indices become ``hpi``, ``mi`` and ``cd``.
        """
        rows = []
        for r in self.all():
            row = {
                "id": r.id,
                "sample_id": r.sample_id,
                "state": r.state,
                "district": r.district,
                "block": r.block,
                "village": r.village,
                "latitude": r.latitude,
                "longitude": r.longitude,
                "hpi": r.indices.get("hpi", 0.0),
                "mi": r.indices.get("mi", 0.0),
                "cd": r.indices.get("cd", 0.0),
                "category": r.category,
                "sampling_date": r.sampling_date,
                "well_type": r.well_type,
                "created_at": r.created_at,
                "updated_at": r.updated_at,
            }
            row.update({f"metal_{k}": v for k, v in r.metals.items()})
            row.update({f"wq_{k}": v for k, v in r.water_quality.items()})
            rows.append(row)
        return pd.DataFrame.from_records(rows)
