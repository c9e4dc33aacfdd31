"""LLM integration for the quote assembler."""

from .gigachat_client import GigaChatClient
from .ollama_client import OllamaClient
from .parsing import extract_json, parse_model_json
from .provider import ChatClient, create_client
from .schemas import (
    KeywordResponse,
    LineItem,
    ParsedProduct,
    Product,
    Quote,
    SelectedItem,
    SelectionResponse,
)
from .token_broker import AccessToken, TokenBroker

__all__ = [
    "AccessToken",
    "ChatClient",
    "GigaChatClient",
    "KeywordResponse",
    "LineItem",
    "OllamaClient",
    "ParsedProduct",
    "Product",
    "Quote",
    "SelectedItem",
    "SelectionResponse",
    "TokenBroker",
    "create_client",
    "extract_json",
    "parse_model_json",
]
