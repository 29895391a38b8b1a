"""Tests for vector index provisioning."""

import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from dirvec.core.exceptions import ConfigurationError
from dirvec.vectors.index_provisioner import (
    IndexProvisioner,
    IndexStatus,
    is_already_exists,
    vector_index_definition,
)


@pytest.fixture
def provisioner(collection, sink):
    return IndexProvisioner(collection, sink=sink)


class TestEnsureIndex:
    """Tests for IndexProvisioner.ensure_index."""

    def test_creates_missing_index(self, provisioner, collection, sink):
        """Test a missing index is created with the vector definition."""
        status = provisioner.ensure_index("vector_index", dimensions=1536, metric="cosine")

        assert status is IndexStatus.CREATED
        assert len(collection.create_calls) == 1
        created = collection.create_calls[0]
        assert created["name"] == "vector_index"
        assert created["type"] == "vectorSearch"
        assert created["definition"] == {
            "fields": [
                {
                    "type": "vector",
                    "path": "embedding",
                    "numDimensions": 1536,
                    "similarity": "cosine",
                }
            ]
        }
        assert "index.created" in sink.names()

    def test_second_call_is_noop(self, provisioner, collection, sink):
        """Test calling twice leaves exactly one index and creates once."""
        assert provisioner.ensure_index("vector_index") is IndexStatus.CREATED
        assert provisioner.ensure_index("vector_index") is IndexStatus.EXISTS

        assert len(collection.search_indexes) == 1
        assert len(collection.create_calls) == 1
        assert sink.names()[-1] == "index.exists"

    def test_other_index_names_do_not_count(self, provisioner, collection):
        """Test an index with a different name does not satisfy the check."""
        collection.search_indexes.append({"name": "other_index"})
        assert provisioner.ensure_index("vector_index") is IndexStatus.CREATED

    def test_listing_failure_treated_as_absent(self, provisioner, collection, sink):
        """Test a failed listing falls through to a create attempt."""
        collection.list_error = OperationFailure("listSearchIndexes not allowed", code=13)

        assert provisioner.ensure_index("vector_index") is IndexStatus.CREATED
        failed = sink.of("index.list_failed")
        assert failed and failed[0]["code"] == 13

    def test_missing_collection_reported_separately(self, provisioner, collection, sink):
        """Test namespace-not-found is reported as a missing collection."""
        collection.list_error = OperationFailure("ns does not exist", code=26)

        assert provisioner.ensure_index("vector_index") is IndexStatus.CREATED
        assert "index.collection_missing" in sink.names()
        assert "index.list_failed" not in sink.names()

    def test_transient_listing_error_flagged(self, provisioner, collection, sink):
        """Test network errors during listing are marked transient."""
        collection.list_error = AutoReconnect("connection reset")

        provisioner.ensure_index("vector_index")
        assert sink.of("index.list_failed")[0]["transient"] is True

    def test_already_exists_on_create_is_success(self, provisioner, collection, sink):
        """Test losing a creation race is absorbed as success."""
        collection.search_indexes.append({"name": "vector_index"})
        collection.list_error = AutoReconnect("flaky")

        status = provisioner.ensure_index("vector_index")

        assert status is IndexStatus.ALREADY_EXISTS
        assert len(collection.search_indexes) == 1
        assert "index.already_exists" in sink.names()
        assert "index.create_failed" not in sink.names()

    def test_other_create_failure_is_not_fatal(self, provisioner, collection, sink):
        """Test other creation errors are reported, not raised."""
        collection.create_error = OperationFailure("Atlas search not enabled", code=115)

        status = provisioner.ensure_index("vector_index")

        assert status is IndexStatus.FAILED
        failed = sink.of("index.create_failed")
        assert failed and "Atlas search not enabled" in failed[0]["error"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"name": ""},
            {"name": "vector_index", "dimensions": 0},
            {"name": "vector_index", "metric": "manhattan"},
        ],
    )
    def test_invalid_arguments(self, provisioner, collection, kwargs):
        """Test bad arguments raise ConfigurationError before any store call."""
        with pytest.raises(ConfigurationError):
            provisioner.ensure_index(**kwargs)
        assert collection.create_calls == []


class TestHelpers:
    """Tests for module helpers."""

    def test_is_already_exists(self):
        """Test detection of the various "already exists" failures."""
        assert is_already_exists(OperationFailure("x", code=68))
        assert is_already_exists(
            OperationFailure("x", code=None, details={"codeName": "IndexAlreadyExists"})
        )
        assert is_already_exists(OperationFailure("Duplicate Index: vector_index", code=1))
        assert not is_already_exists(OperationFailure("unauthorized", code=13))

    def test_definition_uses_field_path(self):
        """Test the definition binds the given field path."""
        definition = vector_index_definition("profile.embedding", 8, "dotProduct")
        assert definition["fields"][0]["path"] == "profile.embedding"
        assert definition["fields"][0]["numDimensions"] == 8
        assert definition["fields"][0]["similarity"] == "dotProduct"
