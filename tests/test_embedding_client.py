"""Tests for the OpenAI embedding client wrapper."""

import httpx
import openai
import pytest

from dirvec.core.exceptions import EmbeddingProviderError
from dirvec.vectors.embedding_client import EmbeddingClient

from conftest import TEST_DIMENSIONS, text_vector


def connection_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    return openai.APIConnectionError(request=request)


def bad_request_error():
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    response = httpx.Response(400, request=request)
    return openai.BadRequestError("invalid input", response=response, body=None)


class TestEmbedMany:
    """Tests for batch embedding."""

    def test_empty_input_makes_no_call(self, embedding_client, openai_client):
        """Test embed_many([]) returns [] without calling the provider."""
        assert embedding_client.embed_many([]) == []
        assert openai_client.embeddings.calls == []

    def test_alignment(self, embedding_client):
        """Test one embedding per text, in input order."""
        texts = ["Ana Silva. ana@x.com", "Bruno Costa. bruno@x.com", "Carla"]
        embeddings = embedding_client.embed_many(texts)
        assert len(embeddings) == len(texts)
        assert embeddings == [text_vector(text) for text in texts]

    def test_reorders_by_response_index(self, embedding_client, openai_client):
        """Test out-of-order provider items are put back in input order."""
        openai_client.embeddings.shuffle = True
        texts = ["first", "second", "third"]
        assert embedding_client.embed_many(texts) == [text_vector(t) for t in texts]

    def test_sends_model_and_batch(self, embedding_client, openai_client):
        """Test the request carries the model and all texts at once."""
        embedding_client.embed_many(["a", "b"])
        call = openai_client.embeddings.calls[0]
        assert call["model"] == "text-embedding-ada-002"
        assert call["input"] == ["a", "b"]

    def test_count_mismatch_raises(self, embedding_client, openai_client):
        """Test a short response fails the whole call."""
        openai_client.embeddings.drop_last = True
        with pytest.raises(EmbeddingProviderError, match="count mismatch"):
            embedding_client.embed_many(["a", "b"])

    def test_dimension_mismatch_raises(self, openai_client):
        """Test vectors of the wrong length are rejected."""
        client = EmbeddingClient(client=openai_client, dimensions=TEST_DIMENSIONS + 1)
        with pytest.raises(EmbeddingProviderError, match="Unexpected embedding length"):
            client.embed_many(["a"])

    def test_provider_error_wrapped(self, embedding_client, openai_client):
        """Test non-retryable provider errors surface as EmbeddingProviderError."""
        openai_client.embeddings.errors.append(bad_request_error())
        with pytest.raises(EmbeddingProviderError) as exc_info:
            embedding_client.embed_many(["a", "b"])
        assert exc_info.value.context["batch_size"] == 2
        assert isinstance(exc_info.value.__cause__, openai.BadRequestError)
        assert len(openai_client.embeddings.calls) == 1

    def test_retries_whole_request(self, embedding_client, openai_client):
        """Test a connection error retries the full batch, then succeeds."""
        openai_client.embeddings.errors.append(connection_error())
        embeddings = embedding_client.embed_many(["a", "b"])
        assert len(embeddings) == 2
        calls = openai_client.embeddings.calls
        assert len(calls) == 2
        assert calls[0]["input"] == calls[1]["input"] == ["a", "b"]

    def test_gives_up_after_retries(self, embedding_client, openai_client):
        """Test persistent connection errors become EmbeddingProviderError."""
        openai_client.embeddings.errors.extend([connection_error(), connection_error()])
        with pytest.raises(EmbeddingProviderError):
            embedding_client.embed_many(["a"])
        assert len(openai_client.embeddings.calls) == 2


class TestEmbedOne:
    """Tests for single-text embedding."""

    def test_embed_one(self, embedding_client, openai_client):
        """Test a single text is embedded and sent as a plain string."""
        assert embedding_client.embed_one("Radiante") == text_vector("Radiante")
        assert openai_client.embeddings.calls[0]["input"] == "Radiante"
