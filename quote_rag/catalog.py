"""Product catalog: lazy, single-flight load from cache or raw price list.

The raw price list is unstructured text, so the first load asks the LLM to
turn it into records. That call is slow and costly; it runs at most once per
process even when several requests arrive before the catalog is ready.
Once products are published, reads take no lock.
"""

import json
import logging
import threading
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from . import config
from .errors import CatalogError, PersistenceError
from .llm.parsing import parse_model_json
from .llm.provider import ChatClient
from .llm.schemas import ParsedProduct, Product

logger = logging.getLogger(__name__)

_PRODUCT_LIST = TypeAdapter(list[Product])
_PARSED_LIST = TypeAdapter(list[ParsedProduct])


class CatalogStore:
    """Owns the product list and its id index."""

    PARSE_PROMPT = """<role>
Ты — сверхточный ассистент по извлечению данных. Преобразуй неупорядоченный прайс-лист в строгий JSON-массив.
</role>

<rules>
- Каждая строка текста — отдельный товар
- Каждый элемент массива — объект с полями "name" (строка) и "price" (целое число)
- Цену извлекай как число, убирая "руб." и прочие символы
- Название товара — всё, что находится до цены
- Строки без цены пропускай
- Никакого текста до или после JSON, только валидный JSON-массив
</rules>

<price_list>
{raw_text}
</price_list>"""

    def __init__(
        self,
        client: ChatClient,
        source_path: Path | None = None,
        cache_path: Path | None = None,
    ):
        """Initialize store. Nothing is read until load_cache/ensure_loaded.

        Args:
            client: LLM client used to parse the raw price list
            source_path: Raw price list. Defaults to config.MATERIALS_PATH.
            cache_path: Parsed catalog cache. Defaults to config.PRODUCTS_CACHE_PATH.
        """
        self.client = client
        self.source_path = source_path or config.MATERIALS_PATH
        self.cache_path = cache_path or config.PRODUCTS_CACHE_PATH
        self._products: tuple[Product, ...] = ()
        self._index: dict[int, Product] = {}
        self._load_lock = threading.Lock()

    @property
    def products(self) -> tuple[Product, ...]:
        return self._products

    @property
    def is_loaded(self) -> bool:
        return bool(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def lookup(self, product_id: int) -> Product | None:
        """Return the product with this id, or None."""
        return self._index.get(product_id)

    def _publish(self, products: list[Product]) -> None:
        # Index first: a non-empty product list is the "ready" signal.
        self._index = {p.id: p for p in products}
        self._products = tuple(products)

    def load_cache(self) -> bool:
        """Adopt the cached catalog if it exists and parses.

        Returns:
            True if products were loaded from the cache
        """
        try:
            raw = self.cache_path.read_bytes()
        except OSError:
            logger.info(
                f"Cache {self.cache_path.name} not found. "
                f"Catalog will be parsed from {self.source_path.name} on first request."
            )
            return False

        try:
            products = _PRODUCT_LIST.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Cache {self.cache_path} is corrupt, ignoring it: {e}")
            return False

        if not products:
            logger.warning(f"Cache {self.cache_path} is empty, ignoring it")
            return False

        self._publish(products)
        logger.info(f"Loaded {len(products)} products from cache {self.cache_path}")
        return True

    def ensure_loaded(self) -> None:
        """Make sure the catalog is in memory, parsing the raw source if needed.

        Raises:
            CatalogError: Raw source missing/unreadable or parse gave no products
            ModelOutputError: Model output is not a valid product array
            PersistenceError: Cache could not be written
            TransportError, AuthError: LLM call failed
        """
        if self._products:
            return

        with self._load_lock:
            if self._products:
                return
            if self.load_cache():
                return
            self._build_from_source()

    def rebuild(self) -> None:
        """Re-parse the raw source even if a catalog is already loaded."""
        with self._load_lock:
            self._build_from_source()

    def _build_from_source(self) -> None:
        logger.info(f"Catalog not loaded, parsing {self.source_path}...")
        try:
            raw_text = self.source_path.read_text(encoding="utf-8")
        except OSError as e:
            raise CatalogError(f"Could not read {self.source_path}: {e}") from e

        if not raw_text.strip():
            raise CatalogError(f"{self.source_path} is empty")

        response = self.client.chat(self.PARSE_PROMPT.format(raw_text=raw_text))
        parsed = parse_model_json(response, _PARSED_LIST)

        if not parsed:
            raise CatalogError("Catalog parse produced no products")

        products = [
            Product(id=i, name=p.name, price=p.price)
            for i, p in enumerate(parsed, 1)
        ]
        self._write_cache(products)
        self._publish(products)
        logger.info(f"Parsed {len(products)} products and saved them to {self.cache_path}")

    def _write_cache(self, products: list[Product]) -> None:
        payload = json.dumps(
            [p.model_dump() for p in products], indent=2, ensure_ascii=False
        )
        try:
            self.cache_path.parent.mkdir(parents=True, exist_ok=True)
            self.cache_path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Could not save cache to {self.cache_path}: {e}") from e
