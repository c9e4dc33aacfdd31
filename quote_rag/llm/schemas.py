"""Schemas for catalog data and structured model output.

Product: one catalog entry, ids assigned when the catalog is built.
ParsedProduct / SelectionResponse / KeywordResponse: shapes the model is
asked to return. LineItem / Quote: the priced result of one request.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field


class Product(BaseModel):
    """Catalog product. Price is in minor currency units."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    price: int


class ParsedProduct(BaseModel):
    """Product as returned by the catalog parsing prompt (no id yet)."""

    name: str = Field(min_length=1)
    price: int = Field(ge=0)


class SelectedItem(BaseModel):
    """Item the model chose, before it is checked against the catalog."""

    id: int
    quantity: int = Field(gt=0)


class SelectionResponse(BaseModel):
    """Stage-2 answer: {"found_items": [{"id": .., "quantity": ..}]}."""

    found_items: list[SelectedItem] = Field(default_factory=list)


class KeywordResponse(BaseModel):
    """Keyword extraction answer: {"keywords": [...]}."""

    keywords: list[str] = Field(default_factory=list)


@dataclass(frozen=True)
class LineItem:
    """A priced row of the quote."""

    name: str
    quantity: int
    unit_price: int

    @property
    def subtotal(self) -> int:
        return self.quantity * self.unit_price

    def to_dict(self) -> dict:
        """Log/API representation."""
        return {
            "name": self.name,
            "quantity": self.quantity,
            "price": self.unit_price,
            "subtotal": self.subtotal,
        }


@dataclass(frozen=True)
class Quote:
    """Terminal artifact of one assembly run."""

    query: str
    items: tuple[LineItem, ...] = field(default_factory=tuple)

    @property
    def total_cost(self) -> int:
        return sum(item.subtotal for item in self.items)

    def to_log_record(self) -> dict:
        return {
            "query": self.query,
            "response": {
                "found_items": [item.to_dict() for item in self.items],
                "total_cost": self.total_cost,
            },
        }
