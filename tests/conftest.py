"""Pytest configuration and fixtures."""

import hashlib
import math
from types import SimpleNamespace

import pytest
from pymongo.errors import BulkWriteError, OperationFailure

from dirvec.vectors.embedding_client import EmbeddingClient

TEST_DIMENSIONS = 8


@pytest.fixture(scope="session", autouse=True)
def setup_logging():
    """Set up logging for tests."""
    from dirvec.utils.logger import setup_logging
    setup_logging(log_level="WARNING")


def text_vector(text: str, dimensions: int = TEST_DIMENSIONS) -> list[float]:
    """Deterministic pseudo-embedding derived from the text's hash."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    return [(digest[i] - 127.5) / 127.5 for i in range(dimensions)]


def cosine(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class RecordingSink:
    """Event sink that keeps every event for assertions."""

    def __init__(self):
        self.events = []

    def emit(self, event, level=20, **fields):
        self.events.append((event, level, fields))

    def names(self):
        return [event for event, _, _ in self.events]

    def of(self, name):
        return [fields for event, _, fields in self.events if event == name]


class FakeEmbeddings:
    """Stands in for ``openai.OpenAI().embeddings``."""

    def __init__(self, dimensions=TEST_DIMENSIONS, vectors=None):
        self.dimensions = dimensions
        self.vectors = vectors or {}
        self.calls = []
        self.errors = []
        self.shuffle = False
        self.drop_last = False

    def create(self, model, input):
        self.calls.append({"model": model, "input": input})
        if self.errors:
            raise self.errors.pop(0)

        texts = [input] if isinstance(input, str) else list(input)
        data = [
            SimpleNamespace(
                index=i,
                embedding=self.vectors.get(text) or text_vector(text, self.dimensions),
            )
            for i, text in enumerate(texts)
        ]
        if self.drop_last:
            data = data[:-1]
        if self.shuffle:
            data = list(reversed(data))
        return SimpleNamespace(data=data, model=model)


class FakeOpenAI:
    def __init__(self, dimensions=TEST_DIMENSIONS):
        self.embeddings = FakeEmbeddings(dimensions)
        self.closed = False

    def close(self):
        self.closed = True


class FakeCollection:
    """
    In-memory collection covering the calls the pipeline makes.

    Supports upsert bulk writes, search index listing and creation, and a
    brute-force $vectorSearch with cosine scores.
    """

    def __init__(self, name="documents"):
        self.name = name
        self.documents = []
        self.search_indexes = []
        self.bulk_calls = []
        self.create_calls = []
        self.write_errors = {}
        self.list_error = None
        self.create_error = None
        self.aggregate_error = None
        self.aggregate_calls = []
        self._next_id = 1

    # Writes ------------------------------------------------------------------

    def _find(self, filter_):
        for doc in self.documents:
            if all(doc.get(key) == value for key, value in filter_.items()):
                return doc
        return None

    def bulk_write(self, operations, ordered=True):
        error = self.write_errors.pop(len(self.bulk_calls), None)
        self.bulk_calls.append(list(operations))
        if error is not None:
            raise error

        upserted = matched = modified = 0
        for op in operations:
            filter_, update = op._filter, op._doc
            doc = self._find(filter_)
            if doc is None:
                doc = {"_id": self._next_id, **filter_}
                self._next_id += 1
                doc.update(update["$set"])
                self.documents.append(doc)
                upserted += 1
            else:
                matched += 1
                before = dict(doc)
                doc.update(update["$set"])
                if doc != before:
                    modified += 1
        return SimpleNamespace(
            upserted_count=upserted, matched_count=matched, modified_count=modified
        )

    # Search indexes ----------------------------------------------------------

    def list_search_indexes(self, name=None):
        if self.list_error is not None:
            raise self.list_error
        return [index for index in self.search_indexes if name is None or index["name"] == name]

    def create_search_index(self, model):
        document = model.document
        self.create_calls.append(document)
        if self.create_error is not None:
            raise self.create_error
        if any(index["name"] == document["name"] for index in self.search_indexes):
            raise OperationFailure(
                f"Index already exists with name {document['name']}",
                code=68,
                details={"codeName": "IndexAlreadyExists"},
            )
        self.search_indexes.append(document)
        return document["name"]

    # Queries -----------------------------------------------------------------

    def aggregate(self, pipeline):
        self.aggregate_calls.append(pipeline)
        if self.aggregate_error is not None:
            raise self.aggregate_error

        search = pipeline[0]["$vectorSearch"]
        if not any(index["name"] == search["index"] for index in self.search_indexes):
            raise OperationFailure(f"index not found: {search['index']}", code=8)

        path = search["path"]
        scored = [
            (cosine(search["queryVector"], doc[path]), doc)
            for doc in self.documents
            if path in doc
        ][: search["numCandidates"]]
        scored.sort(key=lambda item: item[0], reverse=True)

        projection = pipeline[1]["$project"] if len(pipeline) > 1 else {}
        include = [key for key, value in projection.items() if value == 1]
        results = []
        for score, doc in scored[: search["limit"]]:
            if include:
                out = {"_id": doc["_id"], **{key: doc[key] for key in include if key in doc}}
            else:
                out = {key: value for key, value in doc.items() if projection.get(key) != 0}
            if "score" in projection:
                out["score"] = score
            results.append(out)
        return iter(results)


def bulk_write_error(upserted=0, matched=0):
    return BulkWriteError(
        {
            "writeErrors": [{"index": 0, "code": 11000, "errmsg": "duplicate key"}],
            "nUpserted": upserted,
            "nMatched": matched,
        }
    )


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def openai_client():
    return FakeOpenAI()


@pytest.fixture
def embedding_client(openai_client):
    return EmbeddingClient(
        client=openai_client,
        dimensions=TEST_DIMENSIONS,
        max_retries=1,
        retry_delay=0.0,
    )


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def sample_users():
    """Records as the directory source maps them."""
    return [
        {
            "name": "Ana Silva",
            "email": "ana@x.com",
            "status": "Ativo",
            "isAdmin": False,
            "lastLoginTime": "2024-05-01T12:00:00.000Z",
            "idunico_horacius": "H-001",
        },
        {
            "name": "Bruno Costa",
            "email": "bruno@x.com",
            "status": "Bloqueado",
            "isAdmin": True,
            "lastLoginTime": "1970-01-01T00:00:00.000Z",
            "idunico_horacius": None,
        },
    ]
