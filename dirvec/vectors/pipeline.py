"""
Batch embedding and upsert pipeline.

Records are processed in bounded batches, strictly one after another. Each
batch validates its records, embeds the survivors in a single provider call
and writes them with one bulk upsert keyed on a unique field. A batch that
fails is reported and skipped; later batches still run, and batches already
written stay written.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from pymongo import UpdateOne
from pymongo.collection import Collection
from pymongo.errors import BulkWriteError, PyMongoError
from tqdm import tqdm

from ..core.events import EventSink, LoggingEventSink
from ..core.exceptions import (
    ConfigurationError,
    EmbeddingProviderError,
    StoreWriteError,
    ValidationError,
)
from ..core.types import EMBEDDING_FIELD, Record
from ..utils.logger import get_logger
from .embedding_client import EmbeddingClient
from .projector import TextProjector

logger = get_logger("dirvec.vectors.pipeline")

DEFAULT_BATCH_SIZE = 1000


@dataclass
class UpsertSummary:
    """Counts accumulated over one upsert run."""
    upserted: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    batches: int = 0
    failed_batches: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, int]:
        return {"upserted": self.upserted, "updated": self.updated}


def check_batch_size(batch_size: Any) -> int:
    """Reject batch sizes that are not integers >= 1."""
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ConfigurationError(
            f"Invalid batch size: {batch_size!r} (must be an integer >= 1)",
            {"batch_size": batch_size},
        )
    return batch_size


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class BatchUpsertPipeline:
    """Embed records and upsert them into the collection batch by batch."""

    def __init__(
        self,
        collection: Collection,
        embedding_client: EmbeddingClient,
        projector: TextProjector | None = None,
        sink: EventSink | None = None,
        embedding_field: str = EMBEDDING_FIELD,
        show_progress: bool = False,
    ):
        self.collection = collection
        self.embeddings = embedding_client
        self.projector = projector or TextProjector()
        self.sink = sink or LoggingEventSink(logger)
        self.embedding_field = embedding_field
        self.show_progress = show_progress

    def validate(self, record: Record, unique_key_field: str) -> str:
        """
        Return the embeddable text for a record.

        Raises:
            ValidationError: If the unique key is missing or blank, or the
                record projects to empty text.
        """
        if _is_blank(record.get(unique_key_field)):
            raise ValidationError(
                f'Record is missing unique key "{unique_key_field}"',
                {"name": record.get("name")},
            )

        text = self.projector.project(record)
        if not text.strip():
            raise ValidationError(
                "Record produced no text to embed",
                {unique_key_field: record.get(unique_key_field)},
            )
        return text

    def build_operation(
        self, record: Record, unique_key_field: str, embedding: list[float]
    ) -> UpdateOne:
        """Build the upsert replacing all record fields plus the embedding."""
        document = {key: value for key, value in record.items() if key != "_id"}
        document[self.embedding_field] = embedding
        return UpdateOne(
            {unique_key_field: record[unique_key_field]},
            {"$set": document},
            upsert=True,
        )

    def upsert_all(
        self,
        records: Sequence[Record],
        unique_key_field: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> UpsertSummary:
        """
        Embed and upsert every record, batch by batch.

        Args:
            records: Records in the order they should be processed
            unique_key_field: Field identifying a record in the store
            batch_size: Maximum records per embedding call and bulk write

        Returns:
            UpsertSummary with inserted/updated counts across all batches

        Raises:
            ConfigurationError: If batch_size is not an integer >= 1
        """
        batch_size = check_batch_size(batch_size)
        summary = UpsertSummary()

        records = list(records or [])
        if not records:
            self.sink.emit("pipeline.empty", logging.INFO)
            return summary

        self.sink.emit(
            "pipeline.started",
            logging.INFO,
            records=len(records),
            batch_size=batch_size,
            unique_key=unique_key_field,
        )

        starts = range(0, len(records), batch_size)
        for batch_index, start in enumerate(
            tqdm(starts, desc="Upserting batches", disable=not self.show_progress)
        ):
            batch = records[start : start + batch_size]
            summary.batches += 1
            self._process_batch(batch, batch_index, start, unique_key_field, summary)

        self.sink.emit(
            "pipeline.completed",
            logging.INFO,
            upserted=summary.upserted,
            updated=summary.updated,
            skipped=summary.skipped,
            failed=summary.failed,
            failed_batches=summary.failed_batches,
        )
        return summary

    def upsert_one(self, record: Record, unique_key_field: str) -> UpsertSummary:
        """Embed and upsert a single record."""
        return self.upsert_all([record], unique_key_field, batch_size=1)

    def _process_batch(
        self,
        batch: list[Record],
        batch_index: int,
        offset: int,
        unique_key_field: str,
        summary: UpsertSummary,
    ) -> None:
        valid: list[Record] = []
        texts: list[str] = []
        for position, record in enumerate(batch, start=offset):
            try:
                texts.append(self.validate(record, unique_key_field))
            except ValidationError as e:
                summary.skipped += 1
                self.sink.emit(
                    "record.skipped",
                    logging.WARNING,
                    batch=batch_index,
                    position=position,
                    reason=e.message,
                    record=e.context,
                )
                continue
            valid.append(record)

        if not valid:
            self.sink.emit("batch.empty", logging.INFO, batch=batch_index)
            return

        keys = [record[unique_key_field] for record in valid]

        try:
            embeddings = self.embeddings.embed_many(texts)
            operations = [
                self.build_operation(record, unique_key_field, embedding)
                for record, embedding in zip(valid, embeddings)
            ]
            result = self._write(operations, batch_index)
        except (EmbeddingProviderError, StoreWriteError) as e:
            committed = 0
            if isinstance(e, StoreWriteError):
                summary.upserted += e.upserted
                summary.updated += e.matched
                committed = e.upserted + e.matched
            summary.failed += len(valid) - committed
            summary.failed_batches.append(batch_index)
            self.sink.emit(
                "batch.failed",
                logging.ERROR,
                batch=batch_index,
                error_type=type(e).__name__,
                error=str(e),
                keys=keys,
            )
            return

        summary.upserted += result.upserted_count
        summary.updated += result.matched_count
        self.sink.emit(
            "batch.completed",
            logging.INFO,
            batch=batch_index,
            upserted=result.upserted_count,
            updated=result.matched_count,
        )

    def _write(self, operations: list[UpdateOne], batch_index: int):
        try:
            return self.collection.bulk_write(operations)
        except BulkWriteError as e:
            details = e.details or {}
            raise StoreWriteError(
                f"Bulk write failed: {len(details.get('writeErrors', []))} write errors",
                {"batch": batch_index},
                upserted=details.get("nUpserted", 0),
                matched=details.get("nMatched", 0),
            ) from e
        except PyMongoError as e:
            raise StoreWriteError(
                f"Bulk write failed: {e}", {"batch": batch_index}
            ) from e
