"""Quote assembly: customer request in, priced DOCX out.

Flow:
1. Loading     - make sure the catalog is in memory
2. Retrieving  - keyword retrieval of up to 50 candidate products
3. Planning    - the model lists every component the goal needs (free text)
4. Structuring - the model maps the plan onto {id, quantity} JSON
5. Reconciling - ids are checked against the catalog and priced
6. Done        - quote log is written and the document rendered

Any error aborts the run and carries the stage it happened in.
"""

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .. import config
from ..catalog import CatalogStore
from ..config import load_config
from ..errors import ModelOutputError, NotFoundError, PersistenceError, QuoteError
from ..llm.parsing import parse_model_json
from ..llm.provider import ChatClient, create_client
from ..llm.schemas import LineItem, Product, Quote, SelectedItem, SelectionResponse
from ..render import DocxRenderer, Renderer
from .quote_log import save_quote_log
from .retriever import RelevanceRetriever

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    LOADING = "loading"
    RETRIEVING = "retrieving"
    PLANNING = "planning"
    STRUCTURING = "structuring"
    RECONCILING = "reconciling"
    DONE = "done"


@dataclass(frozen=True)
class AssemblyResult:
    """Quote, the engineering plan behind it, and the rendered document."""
    quote: Quote
    plan: str
    document: bytes


@contextmanager
def _stage(stage: Stage):
    """Tag pipeline errors with the stage they escaped from."""
    logger.info(f"Stage: {stage.value}")
    try:
        yield
    except QuoteError as e:
        if e.stage is None:
            e.stage = stage.value
        raise


class QuoteAssembler:
    """Drives the two-stage plan -> JSON generation protocol."""

    PLANNING_PROMPT = """<role>
Ты — главный инженер по комплектации заказов. Твоя репутация зависит от того, насколько полно и правильно ты соберёшь заказ для клиента.
</role>

<task>
Проанализируй цель клиента и, используя только список релевантных товаров со склада, составь исчерпывающий список всего, что ему потребуется.
- Если цель — конкретная деталь ("Крышка 200 мм"), список состоит только из этой детали.
- Если цель — монтаж или сборка ("комплект для монтажа короба 200х200"), включи ВСЕ нужные для этого компоненты из списка: сам короб, крышку, винты, гайки. Ты отвечаешь за полноту комплекта.
</task>

<rules>
- Ответ — только маркированный список в формате "- Название, Количество"
- Никаких заголовков, комментариев или пустых строк
</rules>

<products>
{products_json}
</products>

<user_query>
{query}
</user_query>"""

    STRUCTURING_PROMPT = """<role>
Ты — ассистент по обработке данных. На основе плана комплектации и JSON-списка товаров сформируй итоговый JSON.
</role>

<rules>
- Строго следуй плану: включай только позиции, упомянутые в плане
- Для каждой позиции найди в списке товар, максимально точно соответствующий описанию, и возьми его id
- Ответ — только валидный JSON-объект, без лишнего текста и комментариев
</rules>

<output_format>
{{
  "found_items": [
    {{"id": 15, "quantity": 10}}
  ]
}}
</output_format>

<plan>
{plan}
</plan>

<products>
{products_json}
</products>"""

    def __init__(
        self,
        catalog: CatalogStore,
        client: ChatClient,
        renderer: Renderer,
        retriever: RelevanceRetriever | None = None,
        top_k: int = config.DEFAULT_TOP_K,
        log_dir: Path | None = None,
    ):
        """Initialize assembler.

        Args:
            catalog: Product catalog
            client: LLM client for planning and structuring
            renderer: Turns the priced items into a document
            retriever: Candidate retrieval. Built from catalog/client if None.
            top_k: Number of candidates shown to the model
            log_dir: Where quote logs go. Defaults to config.LOG_DIR.
        """
        self.catalog = catalog
        self.client = client
        self.renderer = renderer
        self.retriever = retriever or RelevanceRetriever(catalog, client)
        self.top_k = top_k
        self.log_dir = log_dir

    def _plan(self, query: str, products_json: str) -> str:
        prompt = self.PLANNING_PROMPT.format(products_json=products_json, query=query)
        plan = self.client.chat(prompt)
        logger.info(f"Engineering plan:\n---\n{plan}\n---")
        return plan

    def _select(self, plan: str, products_json: str) -> list[SelectedItem]:
        prompt = self.STRUCTURING_PROMPT.format(plan=plan, products_json=products_json)
        response = self.client.chat(prompt)
        try:
            selection = parse_model_json(response, SelectionResponse)
        except ModelOutputError as e:
            raise ModelOutputError(
                "Model returned invalid structured data", raw_text=response
            ) from e
        return selection.found_items

    def _reconcile(self, query: str, selected: list[SelectedItem]) -> Quote:
        items = []
        for item in selected:
            product = self.catalog.lookup(item.id)
            if product is None:
                logger.warning(f"Model returned unknown product id {item.id}, skipping")
                continue
            items.append(LineItem(name=product.name, quantity=item.quantity, unit_price=product.price))

        if not items:
            logger.warning(f"No catalog items left after reconciliation for: {query[:50]}")
        return Quote(query=query, items=tuple(items))

    def build_quote(self, query: str) -> tuple[Quote, str]:
        """Run every stage up to reconciliation.

        Returns:
            (quote, engineering plan)
        """
        with _stage(Stage.LOADING):
            self.catalog.ensure_loaded()

        with _stage(Stage.RETRIEVING):
            candidates = self.retriever.retrieve(query, self.top_k)
            if not candidates:
                raise NotFoundError(
                    f"No relevant products found for '{query}'. Try rephrasing the request."
                )
        products_json = _products_json(candidates)

        with _stage(Stage.PLANNING):
            plan = self._plan(query, products_json)

        with _stage(Stage.STRUCTURING):
            selected = self._select(plan, products_json)

        with _stage(Stage.RECONCILING):
            quote = self._reconcile(query, selected)

        logger.info(f"Quote: {len(quote.items)} items, total {quote.total_cost}")
        return quote, plan

    def assemble(self, query: str) -> AssemblyResult:
        """Build a quote, log it and render the document.

        Args:
            query: Customer request, e.g. "комплект для монтажа короба 200х200"

        Returns:
            AssemblyResult with the quote and the rendered DOCX bytes

        Raises:
            QuoteError: Any stage failure; ``stage`` says which
        """
        quote, plan = self.build_quote(query)

        with _stage(Stage.DONE):
            try:
                save_quote_log(quote, self.log_dir)
            except PersistenceError as e:
                logger.warning(f"Could not save quote log: {e}")

            document = self.renderer.render(list(quote.items), quote.total_cost)

        return AssemblyResult(quote=quote, plan=plan, document=document)


def _products_json(products: list[Product]) -> str:
    return json.dumps([p.model_dump() for p in products], ensure_ascii=False)


def build_assembler(config_path: Path | None = None) -> QuoteAssembler:
    """Wire the assembler from config files on disk."""
    app_config = load_config(config_path)
    client = create_client(app_config)
    catalog = CatalogStore(client)
    catalog.load_cache()
    return QuoteAssembler(catalog, client, DocxRenderer())


def main():
    """CLI entry point - assemble one quote."""
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    parser = argparse.ArgumentParser(description="Assemble a priced commercial offer")
    parser.add_argument("query", nargs="*", help="Customer request")
    parser.add_argument("-o", "--output", type=Path, default=Path("offer.docx"),
                        help="Output DOCX path (default offer.docx)")
    parser.add_argument("--config", type=Path, help="Path to config.json")
    parser.add_argument("--rebuild-catalog", action="store_true",
                        help="Re-parse materials.csv before assembling")
    args = parser.parse_args()

    try:
        assembler = build_assembler(args.config)
        if args.rebuild_catalog:
            assembler.catalog.rebuild()
            print(f"Catalog rebuilt: {len(assembler.catalog)} products")
        if not args.query:
            return

        query = " ".join(args.query)
        print(f"Assembling: '{query}'\n")
        result = assembler.assemble(query)
    except QuoteError as e:
        print(f"Error: {e}")
        raise SystemExit(1)

    for i, item in enumerate(result.quote.items, 1):
        print(f"{i}. {item.name} x {item.quantity} = {item.subtotal}")
    print(f"\nTotal: {result.quote.total_cost}")

    args.output.write_bytes(result.document)
    print(f"Saved {args.output}")


if __name__ == "__main__":
    main()
