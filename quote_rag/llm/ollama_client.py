"""Ollama client using its OpenAI-compatible API.

Ollama runs locally and needs no auth.
"""

import logging

import httpx
from openai import OpenAI

from ..config import DEFAULT_TEMPERATURE, OllamaConfig
from .completions import complete

logger = logging.getLogger(__name__)


class OllamaClient:
    """Local Ollama client."""

    provider = "Ollama"

    def __init__(
        self,
        config: OllamaConfig | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        http_client: httpx.Client | None = None,
    ):
        """Initialize client.

        Args:
            config: Optional config. If None, uses defaults/environment.
            temperature: Sampling temperature for every call
            http_client: Optional transport (tests inject a mock)
        """
        if config is None:
            config = OllamaConfig.from_env()

        self.config = config
        self.temperature = temperature
        self._client = OpenAI(
            base_url=f"{config.base_url.rstrip('/')}/v1",
            api_key="ollama",  # Ollama doesn't require a real key
            max_retries=0,
            timeout=config.timeout,
            http_client=http_client,
        )

    def chat(self, prompt: str, temperature: float | None = None) -> str:
        """Send a single-turn chat completion request.

        Args:
            prompt: User message
            temperature: Override default temperature

        Returns:
            Model response text
        """
        logger.info(f"Using API: {self.provider} ({self.config.model})")
        return complete(
            self._client,
            model=self.config.model,
            prompt=prompt,
            temperature=temperature if temperature is not None else self.temperature,
            provider=self.provider,
        )
