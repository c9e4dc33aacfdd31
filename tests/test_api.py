"""Tests for the FastAPI server."""

import base64

import pytest
from fastapi.testclient import TestClient

from quote_rag.api.main import app, get_assembler
from quote_rag.errors import ModelOutputError, NotFoundError, TransportError
from quote_rag.pipeline.assembler import QuoteAssembler

from fakes import FakeRenderer, RoutingClient, make_catalog

PRODUCTS = [
    {"id": 7, "name": "Крышка 200х200", "price": 50},
    {"id": 8, "name": "Короб 200х200", "price": 900},
    {"id": 9, "name": "Гайка М10", "price": 2},
]


class FailingAssembler:
    def __init__(self, error):
        self.error = error

    def assemble(self, query):
        raise self.error


@pytest.fixture
def api():
    yield TestClient(app)
    app.dependency_overrides.clear()


def use(assembler):
    app.dependency_overrides[get_assembler] = lambda: assembler


class TestQuoteEndpoint:
    """POST /quote."""

    def test_returns_items_and_document(self, api, tmp_path):
        client = RoutingClient(
            keywords='{"keywords": ["крышка"]}',
            plan="- Крышка 200х200, 2",
            selection='{"found_items": [{"id": 7, "quantity": 2}]}',
        )
        use(QuoteAssembler(make_catalog(tmp_path, PRODUCTS, client), client,
                           FakeRenderer(), log_dir=tmp_path / "logs"))

        response = api.post("/quote", json={"query": "крышка 200 мм"})

        assert response.status_code == 200
        body = response.json()
        assert body["items"] == [
            {"name": "Крышка 200х200", "quantity": 2, "price": 50, "subtotal": 100}
        ]
        assert body["total_cost"] == 100
        assert base64.b64decode(body["document"]) == b"DOCX"

    @pytest.mark.parametrize("error, status", [
        (NotFoundError("nothing"), 404),
        (ModelOutputError("bad json"), 502),
        (TransportError("down", status_code=500), 503),
    ])
    def test_error_mapping(self, api, error, status):
        use(FailingAssembler(error))
        response = api.post("/quote", json={"query": "крышка"})
        assert response.status_code == status

    def test_empty_query_rejected(self, api):
        use(FailingAssembler(NotFoundError("unused")))
        assert api.post("/quote", json={"query": ""}).status_code == 422


class TestCatalogSearch:
    """GET /catalog/search."""

    def test_preview(self, api, tmp_path):
        client = RoutingClient(keywords='{"keywords": ["200х200"]}')
        use(QuoteAssembler(make_catalog(tmp_path, PRODUCTS, client), client, FakeRenderer()))

        response = api.get("/catalog/search", params={"q": "200х200", "top_k": 5})

        assert response.status_code == 200
        body = response.json()
        assert body["keywords"] == ["200х200"]
        assert [r["id"] for r in body["results"]] == [8, 7]  # shorter name first


def test_health(api):
    assert api.get("/").json()["status"] == "ok"
