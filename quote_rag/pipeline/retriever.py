"""Keyword retrieval over the catalog.

The model distills the request into normalized keywords (typos fixed,
quantities and filler dropped). Products are scored by how many keywords
appear in their name. If the model call fails we fall back to a plain
tokenizer rather than failing the request.
"""

import logging
from dataclasses import dataclass

from pydantic import TypeAdapter

from ..catalog import CatalogStore
from ..errors import QuoteError
from ..llm.parsing import parse_model_json
from ..llm.provider import ChatClient
from ..llm.schemas import KeywordResponse, Product

logger = logging.getLogger(__name__)

# A bare array of keywords is accepted as well as {"keywords": [...]}
_KEYWORDS = TypeAdapter(KeywordResponse | list[str])

_SEPARATORS = str.maketrans({c: " " for c in ",.()/\\[]-\""})


def tokenize(text: str) -> list[str]:
    """Lowercase text and split it on whitespace and common punctuation."""
    return text.lower().translate(_SEPARATORS).split()


@dataclass
class ScoredCandidate:
    """A product and its keyword hit count."""
    product: Product
    score: int


class RelevanceRetriever:
    """Ranks catalog products against a free-text request."""

    KEYWORDS_PROMPT = """<role>
Ты анализируешь запрос клиента для поиска товаров на складе. Извлеки из него только важные, уникальные ключевые слова.
</role>

<rules>
- Оставляй существительные, прилагательные и технические обозначения (артикулы, размеры)
- Игнорируй количество ("10 штук", "12 метров"), единицы измерения ("мм"), предлоги, союзы и разговорные фразы ("мне нужно", "пожалуйста")
- Исправляй явные опечатки ("крыжка" -> "крышка")
- Все слова в нижнем регистре
- Ответ: только JSON-объект с полем "keywords", без текста до или после
</rules>

<example>
Запрос: "Лоток перфорированый 100х100, 12 метров, и 10 гаек М10"
Ответ: {{"keywords": ["лоток", "перфорированный", "100х100", "гайка", "м10"]}}
</example>

<user_query>
{query}
</user_query>"""

    def __init__(self, catalog: CatalogStore, client: ChatClient):
        self.catalog = catalog
        self.client = client

    def _keywords_from_llm(self, query: str) -> list[str]:
        response = self.client.chat(self.KEYWORDS_PROMPT.format(query=query))
        parsed = parse_model_json(response, _KEYWORDS)
        keywords = parsed.keywords if isinstance(parsed, KeywordResponse) else parsed
        return [k.strip().lower() for k in keywords if k.strip()]

    def keywords(self, query: str) -> list[str]:
        """Keywords for a query: LLM extraction, tokenizer on failure."""
        logger.info("Extracting keywords via LLM...")
        try:
            keywords = self._keywords_from_llm(query)
        except QuoteError as e:
            logger.warning(f"LLM keyword extraction failed, falling back to tokenizer: {e}")
            return tokenize(query)

        logger.info(f"LLM keywords: {keywords}")
        return keywords

    def rank(self, keywords: list[str], top_k: int) -> list[Product]:
        """Score every product by keyword hits and return the best top_k."""
        if not keywords or top_k <= 0:
            return []

        candidates = []
        for product in self.catalog.products:
            name = product.name.lower()
            score = sum(1 for keyword in keywords if keyword in name)
            if score > 0:
                candidates.append(ScoredCandidate(product=product, score=score))

        # Higher score first; among equals, shorter (more specific) names first
        candidates.sort(key=lambda c: (-c.score, len(c.product.name)))
        return [c.product for c in candidates[:top_k]]

    def retrieve(self, query: str, top_k: int) -> list[Product]:
        """Return up to top_k products relevant to the query.

        Args:
            query: Customer request
            top_k: Maximum number of products

        Returns:
            Products ordered by relevance; empty if nothing matches
        """
        products = self.rank(self.keywords(query), top_k)
        logger.info(f"Found {len(products)} candidate products for: {query[:50]}")
        return products

