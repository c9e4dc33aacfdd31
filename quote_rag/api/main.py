"""FastAPI server for quote assembly.

The frontend posts a customer request and receives the priced items plus
the commercial offer DOCX (base64).
"""

import base64
import logging
import threading

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .. import config
from ..errors import (
    AuthError,
    ModelOutputError,
    NotFoundError,
    QuoteError,
    TransportError,
)
from ..pipeline.assembler import QuoteAssembler, build_assembler

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Quote RAG API")

# One assembler per process: the catalog and token caches live inside it
_assembler: QuoteAssembler | None = None
_assembler_lock = threading.Lock()


def get_assembler() -> QuoteAssembler:
    """Get or create the assembler (cached)."""
    global _assembler

    if _assembler is not None:
        return _assembler

    with _assembler_lock:
        if _assembler is None:
            try:
                _assembler = build_assembler()
            except QuoteError as e:
                logger.error(f"Startup failed: {e}")
                raise HTTPException(status_code=500, detail=str(e))
    return _assembler


# Request/Response models
class QuoteRequest(BaseModel):
    query: str = Field(min_length=1)


class QuoteItem(BaseModel):
    name: str
    quantity: int
    price: int
    subtotal: int


class QuoteResponse(BaseModel):
    query: str
    items: list[QuoteItem]
    total_cost: int
    document: str  # base64 DOCX
    filename: str


class CatalogHit(BaseModel):
    id: int
    name: str
    price: int


class CatalogSearchResponse(BaseModel):
    query: str
    keywords: list[str]
    results: list[CatalogHit]


def _status_for(error: QuoteError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ModelOutputError):
        return 502
    if isinstance(error, (AuthError, TransportError)):
        return 503
    return 500


# Endpoints
@app.get("/")
def health():
    """Health check."""
    return {"status": "ok", "service": "quote-rag"}


@app.post("/quote")
def create_quote(
    request: QuoteRequest,
    assembler: QuoteAssembler = Depends(get_assembler),
) -> QuoteResponse:
    """Assemble a priced commercial offer for a customer request.

    Args:
        request: Customer request (e.g. "комплект для монтажа короба 200х200")

    Returns:
        Priced items, total and the DOCX document
    """
    try:
        result = assembler.assemble(request.query)
    except QuoteError as e:
        logger.error(f"Quote failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail=str(e))

    quote = result.quote
    return QuoteResponse(
        query=quote.query,
        items=[QuoteItem(**item.to_dict()) for item in quote.items],
        total_cost=quote.total_cost,
        document=base64.b64encode(result.document).decode("ascii"),
        filename="offer.docx",
    )


@app.get("/catalog/search")
def catalog_search(
    q: str,
    top_k: int = config.DEFAULT_TOP_K,
    assembler: QuoteAssembler = Depends(get_assembler),
) -> CatalogSearchResponse:
    """Preview which catalog products a request retrieves.

    Args:
        q: Search query
        top_k: Number of results to return
    """
    try:
        assembler.catalog.ensure_loaded()
    except QuoteError as e:
        logger.error(f"Catalog load failed: {e}")
        raise HTTPException(status_code=_status_for(e), detail=str(e))

    keywords = assembler.retriever.keywords(q)
    products = assembler.retriever.rank(keywords, top_k)

    return CatalogSearchResponse(
        query=q,
        keywords=keywords,
        results=[CatalogHit(**p.model_dump()) for p in products],
    )


def main():
    """Run the server."""
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)


if __name__ == "__main__":
    main()
