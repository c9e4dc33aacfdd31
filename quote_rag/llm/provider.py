"""Provider selection.

Pipeline code only needs ``chat(prompt) -> str``; which backend answers is
decided once, from config, when the client is built.
"""

import logging
from typing import Protocol

from ..config import AppConfig
from ..errors import ConfigurationError
from .gigachat_client import GigaChatClient
from .ollama_client import OllamaClient

logger = logging.getLogger(__name__)


class ChatClient(Protocol):
    """Anything that turns a prompt into model text."""

    def chat(self, prompt: str, temperature: float | None = None) -> str: ...


def create_client(config: AppConfig) -> ChatClient:
    """Build the client selected by ``config.use_gigachat``.

    Raises:
        ConfigurationError: If the cloud provider is selected without credentials
    """
    if config.use_gigachat:
        if not config.gigachat.has_credentials:
            raise ConfigurationError(
                "useGigaChat is true but no GigaChat credentials are configured. "
                "Set gigaChat.apiKey in config.json or GIGACHAT_API_KEY."
            )
        logger.info(f"LLM provider: GigaChat ({config.gigachat.model})")
        return GigaChatClient(config.gigachat, temperature=config.temperature)

    logger.info(f"LLM provider: Ollama ({config.ollama.model} at {config.ollama.base_url})")
    return OllamaClient(config.ollama, temperature=config.temperature)
