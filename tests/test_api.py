"""HTTP-level tests for the REST API against the in-memory store."""

import pytest
from fastapi.testclient import TestClient

from shelf.api import create_api
from shelf.config import Config, EmbeddingConfig, SearchConfig
from shelf.core.services import create_services
from shelf.storage.memory import InMemoryCatalogStore
from tests.helpers import ExplodingEmbedding, FlakyEmbedding, KeywordEmbedding, make_book

VOCAB = ["hobbit", "tolkien", "dune", "herbert"]


def _client(embedding=None, books=None, **search):
    config = Config(
        store="memory",
        embedding=EmbeddingConfig(dimensions=4),
        search=SearchConfig(**search),
    )
    svc = create_services(
        config,
        store=InMemoryCatalogStore(books or []),
        embedding=embedding or KeywordEmbedding(VOCAB),
    )
    return TestClient(create_api(svc)), svc


@pytest.fixture
def client():
    c, _ = _client(books=[
        make_book(1, "The Hobbit", "Tolkien", 310),
        make_book(2, "Dune", "Herbert", 412),
    ])
    return c


# ── CRUD ─────────────────────────────────────────────────────


class TestBooks:
    def test_list(self, client):
        resp = client.get("/books")
        assert resp.status_code == 200
        assert [b["title"] for b in resp.json()] == ["The Hobbit", "Dune"]

    def test_vector_never_exposed(self, client):
        client.post("/books/generate-embeddings")
        book = client.get("/books/1").json()
        assert "embedding" not in book
        assert book["has_embedding"] is True

    def test_get_missing(self, client):
        resp = client.get("/books/99")
        assert resp.status_code == 404
        assert resp.json()["detail"] == "Book 99 not found"

    def test_create(self, client):
        resp = client.post("/books", json={"title": "Emma", "author": "Austen", "pages": 474})
        assert resp.status_code == 201
        assert resp.json()["id"] == 3
        assert resp.json()["has_embedding"] is False

    @pytest.mark.parametrize("body", [
        {"title": "", "author": "Austen", "pages": 474},
        {"title": "Emma", "author": "Austen", "pages": 0},
        {"title": "x" * 201, "author": "Austen", "pages": 474},
        {"title": "Emma", "pages": 474},
    ])
    def test_create_invalid(self, client, body):
        assert client.post("/books", json=body).status_code == 422

    def test_update(self, client):
        resp = client.put("/books/2", json={"title": "Dune Messiah", "author": "Herbert", "pages": 256})
        assert resp.status_code == 204
        assert client.get("/books/2").json()["title"] == "Dune Messiah"

    def test_update_summary_kept_then_cleared(self, client):
        body = {"title": "Dune", "author": "Herbert", "pages": 412}
        client.put("/books/2", json={**body, "summary": "Spice."})
        client.put("/books/2", json=body)
        assert client.get("/books/2").json()["summary"] == "Spice."

        assert client.put("/books/2", json={**body, "summary": ""}).status_code == 204
        assert client.get("/books/2").json()["summary"] is None

    def test_update_missing(self, client):
        resp = client.put("/books/99", json={"title": "x", "author": "y", "pages": 1})
        assert resp.status_code == 404

    def test_delete(self, client):
        assert client.delete("/books/1").status_code == 204
        assert client.get("/books/1").status_code == 404
        assert client.delete("/books/1").status_code == 404


# ── Search and backfill ──────────────────────────────────────


class TestSearch:
    def test_search_after_backfill(self, client):
        report = client.post("/books/generate-embeddings")
        assert report.status_code == 200
        assert report.json() == {"attempted": 2, "succeeded": 2, "failed": 0, "failed_ids": []}

        resp = client.get("/books/search", params={"q": "Hobbit"})
        assert resp.status_code == 200
        assert [b["title"] for b in resp.json()] == ["The Hobbit", "Dune"]

    def test_limit(self, client):
        client.post("/books/generate-embeddings")
        resp = client.get("/books/search", params={"q": "Dune", "limit": 1})
        assert [b["title"] for b in resp.json()] == ["Dune"]

    def test_empty_catalog(self):
        c, _ = _client()
        resp = c.get("/books/search", params={"q": "anything"})
        assert resp.status_code == 200
        assert resp.json() == []

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_blank_query_is_bad_request(self, params):
        embedding = KeywordEmbedding(VOCAB)
        c, _ = _client(embedding=embedding)
        resp = c.get("/books/search", params=params)
        assert resp.status_code == 400
        assert embedding.calls == []

    def test_negative_limit_rejected(self, client):
        assert client.get("/books/search", params={"q": "x", "limit": -1}).status_code == 422

    def test_provider_failure_is_server_error(self):
        c, _ = _client(embedding=ExplodingEmbedding(dims=4), books=[make_book(1, "Dune")])
        resp = c.get("/books/search", params={"q": "Dune"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to search books"

    def test_wrong_dimension_query_vector_is_server_error(self):
        c, _ = _client(
            embedding=KeywordEmbedding(VOCAB[:3]),
            books=[make_book(1, "The Hobbit", "Tolkien", embedding="[1.0,1.0,0.0,0.0]")],
        )
        resp = c.get("/books/search", params={"q": "Hobbit"})
        assert resp.status_code == 500
        assert resp.json()["detail"] == "Failed to search books"

    def test_backfill_reports_partial_failure(self):
        c, svc = _client(
            embedding=FlakyEmbedding(VOCAB, fail_on=["Dune"]),
            books=[make_book(1, "The Hobbit", "Tolkien"), make_book(2, "Dune", "Herbert")],
        )
        resp = c.post("/books/generate-embeddings")
        assert resp.status_code == 200
        assert resp.json() == {"attempted": 2, "succeeded": 1, "failed": 1, "failed_ids": [2]}
        assert svc.store.get(2).embedding is None

    def test_edit_invalidates_when_enabled(self):
        c, svc = _client(books=[make_book(1, "The Hobbit", "Tolkien", 310)], invalidate_on_edit=True)
        c.post("/books/generate-embeddings")
        c.put("/books/1", json={"title": "Dune", "author": "Herbert", "pages": 412})
        assert svc.store.get(1).embedding is None

        c.post("/books/generate-embeddings")
        assert [b["id"] for b in c.get("/books/search", params={"q": "herbert"}).json()] == [1]


# ── Status / docs ────────────────────────────────────────────


def test_status(client):
    client.post("/books/generate-embeddings")
    client.post("/books", json={"title": "Emma", "author": "Austen", "pages": 474})
    body = client.get("/status").json()
    assert body["status"] == "ok"
    assert body["store"] == "memory"
    assert body["books"] == {"total": 3, "embedded": 2, "pending": 1}
    assert body["embedding"]["backend"] == "huggingface"
    assert body["models"]["embedding"]["backend"] == "huggingface"


def test_swagger_served(client):
    assert client.get("/swagger").status_code == 200
