"""GigaChat client (cloud provider).

Chat completions are OpenAI-compatible; auth is a short-lived bearer token
obtained through TokenBroker.
"""

import logging

import httpx
from openai import OpenAI

from ..config import DEFAULT_TEMPERATURE, GigaChatConfig
from .completions import complete
from .token_broker import TokenBroker

logger = logging.getLogger(__name__)


class GigaChatClient:
    """GigaChat API client."""

    provider = "GigaChat"

    def __init__(
        self,
        config: GigaChatConfig | None = None,
        broker: TokenBroker | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
        http_client: httpx.Client | None = None,
    ):
        """Initialize client.

        Args:
            config: Optional config. If None, loads from environment.
            broker: Token source. Built from config if None.
            temperature: Sampling temperature for every call
            http_client: Optional transport for the completion endpoint
        """
        if config is None:
            config = GigaChatConfig.from_env()

        self.config = config
        self.temperature = temperature
        self.broker = broker or TokenBroker(config)
        self._client = OpenAI(
            base_url=config.api_url,
            api_key="token-per-request",  # replaced by the broker's token on each call
            max_retries=0,
            timeout=config.timeout,
            http_client=http_client or httpx.Client(verify=config.verify_ssl),
        )

    def chat(self, prompt: str, temperature: float | None = None) -> str:
        """Send a single-turn chat completion request.

        Args:
            prompt: User message
            temperature: Override default temperature

        Returns:
            Model response text
        """
        token = self.broker.get_token()
        logger.info(f"Using API: {self.provider} ({self.config.model})")
        return complete(
            self._client.with_options(api_key=token),
            model=self.config.model,
            prompt=prompt,
            temperature=temperature if temperature is not None else self.temperature,
            provider=self.provider,
        )
