"""
Process-wide collaborators, built once and passed into each component.

Usage:
    with AppContext.from_config(get_config()) as ctx:
        ctx.provisioner().ensure_index(ctx.index_name)
        ctx.pipeline().upsert_all(records, "email")
"""

from __future__ import annotations

from dataclasses import dataclass, field

import openai

from .core.events import EventSink, LoggingEventSink
from .core.exceptions import MissingConfigError
from .storage.mongo import MongoStore
from .utils.config import AppConfig
from .utils.logger import get_logger
from .vectors.embedding_client import EmbeddingClient
from .vectors.index_provisioner import IndexProvisioner
from .vectors.pipeline import BatchUpsertPipeline
from .vectors.projector import TextProjector
from .vectors.searcher import SimilaritySearcher

logger = get_logger("dirvec.context")


@dataclass
class AppContext:
    """Store session, embedding client and event sink for one run."""
    config: AppConfig
    store: MongoStore
    embeddings: EmbeddingClient
    sink: EventSink = field(default_factory=LoggingEventSink)

    @classmethod
    def from_config(cls, config: AppConfig, sink: EventSink | None = None) -> "AppContext":
        if not config.env.openai_api_key:
            raise MissingConfigError("OpenAI API key is not configured (OPENAI_API_KEY)")

        settings = config.settings
        store = MongoStore(
            uri=settings.mongo.uri,
            database=settings.mongo.database,
            collection=settings.mongo.collection,
            server_selection_timeout_ms=settings.mongo.server_selection_timeout_ms,
        )
        client = openai.OpenAI(
            api_key=config.env.openai_api_key,
            timeout=settings.embedding.timeout,
            max_retries=0,
        )
        embeddings = EmbeddingClient(
            client=client,
            model=settings.embedding.model,
            dimensions=settings.embedding.dimensions,
            max_retries=settings.embedding.max_retries,
            retry_delay=settings.embedding.retry_delay,
        )
        return cls(config=config, store=store, embeddings=embeddings, sink=sink or LoggingEventSink())

    @property
    def index_name(self) -> str:
        return self.config.settings.mongo.vector_index_name

    def projector(self) -> TextProjector:
        pipeline = self.config.settings.pipeline
        return TextProjector(pipeline.projector_fields, pipeline.projector_separator)

    def provisioner(self) -> IndexProvisioner:
        return IndexProvisioner(self.store.collection, sink=self.sink)

    def ensure_index(self):
        embedding = self.config.settings.embedding
        return self.provisioner().ensure_index(
            self.index_name,
            dimensions=embedding.dimensions,
            metric=embedding.similarity,
        )

    def pipeline(self, show_progress: bool = False) -> BatchUpsertPipeline:
        return BatchUpsertPipeline(
            self.store.collection,
            self.embeddings,
            projector=self.projector(),
            sink=self.sink,
            show_progress=show_progress,
        )

    def searcher(self) -> SimilaritySearcher:
        return SimilaritySearcher(
            self.store.collection,
            self.embeddings,
            self.index_name,
            sink=self.sink,
        )

    def close(self) -> None:
        self.store.close()
        self.embeddings.client.close()
        logger.debug("Application context closed")

    def __enter__(self) -> "AppContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
