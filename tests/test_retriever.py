"""Tests for keyword retrieval."""

import httpx
import pytest

from quote_rag.config import OllamaConfig
from quote_rag.errors import TransportError
from quote_rag.llm import OllamaClient
from quote_rag.pipeline.retriever import RelevanceRetriever, tokenize

from fakes import FakeClient, make_catalog

PRODUCTS = [
    {"id": 1, "name": "Короб перфорированный 200х200", "price": 900},
    {"id": 2, "name": "Крышка 200х200", "price": 50},
    {"id": 3, "name": "Крышка для короба перфорированного 200х200 усиленная", "price": 80},
    {"id": 4, "name": "Гайка М10", "price": 2},
    {"id": 5, "name": "Винт М10х30", "price": 3},
    {"id": 6, "name": "Лоток 100х100", "price": 400},
]


class TestTokenize:
    """Fallback tokenizer."""

    def test_lowercases_and_splits_punctuation(self):
        assert tokenize('Лоток (100х100), М10/гайка "Винт"') == [
            "лоток", "100х100", "м10", "гайка", "винт",
        ]

    def test_hyphen_and_brackets(self):
        assert tokenize("кабель-канал [белый]") == ["кабель", "канал", "белый"]

    def test_empty(self):
        assert tokenize("  ,. ") == []


class TestRank:
    """Scoring, ordering and limits."""

    def test_zero_score_products_dropped(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        names = [p.name for p in retriever.rank(["гайка"], 10)]
        assert names == ["Гайка М10"]

    def test_higher_score_first(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        result = retriever.rank(["крышка", "перфорирован"], 10)
        assert result[0].id == 3  # matches both keywords

    def test_ties_prefer_shorter_names(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        result = retriever.rank(["крышка"], 10)
        assert [p.id for p in result] == [2, 3]

    def test_never_more_than_top_k(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        result = retriever.rank(["200х200"], 2)
        assert len(result) == 2

    def test_every_result_contains_a_keyword(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        keywords = ["м10", "лоток"]
        for product in retriever.rank(keywords, 50):
            assert any(k in product.name.lower() for k in keywords)

    def test_no_keywords_returns_empty(self, tmp_path):
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), FakeClient())
        assert retriever.rank([], 10) == []


class TestRetrieve:
    """LLM keywords with tokenizer fallback."""

    def test_uses_llm_keywords(self, tmp_path):
        client = FakeClient(['```json\n{"keywords": ["Гайка", " м10 "]}\n```'])
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS, client), client)

        result = retriever.retrieve("нужно 10 гаек М10 пожалуйста", 50)

        assert client.calls == 1
        assert "нужно 10 гаек М10 пожалуйста" in client.prompts[0]
        assert [p.id for p in result] == [4, 5]

    def test_bare_array_accepted(self, tmp_path):
        client = FakeClient(['["лоток"]'])
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS, client), client)
        assert retriever.keywords("лоток 100") == ["лоток"]

    def test_falls_back_on_transport_error(self, tmp_path):
        client = FakeClient([TransportError("down")])
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS, client), client)

        result = retriever.retrieve("Крышка 200 мм", 50)

        assert 2 in [p.id for p in result]

    def test_falls_back_on_html_from_provider(self, tmp_path):
        def login_page(request):
            return httpx.Response(
                200, text="<html>proxy login</html>", headers={"content-type": "text/html"}
            )

        client = OllamaClient(
            OllamaConfig(),
            http_client=httpx.Client(transport=httpx.MockTransport(login_page)),
        )
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS), client)

        result = retriever.retrieve("Крышка 200 мм", 50)

        assert [p.id for p in result][:2] == [2, 3]

    def test_falls_back_on_invalid_json(self, tmp_path):
        client = FakeClient(["Ключевые слова: крышка"])
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS, client), client)
        assert retriever.keywords("Крышка, 200") == ["крышка", "200"]

    def test_no_matches_is_empty_not_error(self, tmp_path):
        client = FakeClient(['{"keywords": ["трансформатор"]}'])
        retriever = RelevanceRetriever(make_catalog(tmp_path, PRODUCTS, client), client)
        assert retriever.retrieve("трансформатор", 50) == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
