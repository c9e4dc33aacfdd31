"""Access token cache for the cloud LLM provider.

The provider issues short-lived bearer tokens through an OAuth endpoint.
One token is shared by the whole process and refreshed a minute before it
expires. Refresh happens under a lock so concurrent requests never trigger
duplicate exchanges or see a half-written token.
"""

import base64
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Callable

import httpx

from ..config import GigaChatConfig
from ..errors import AuthError, ConfigurationError

logger = logging.getLogger(__name__)

# Refresh this many seconds before the provider's stated expiry
EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class AccessToken:
    """Bearer token and the moment (epoch seconds) it stops being reused."""

    value: str
    expires_at: float


class TokenBroker:
    """Obtains and caches the bearer token."""

    def __init__(
        self,
        config: GigaChatConfig,
        http_client: httpx.Client | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize broker.

        Args:
            config: Cloud provider settings
            http_client: Optional client (tests inject a mock transport)
            clock: Returns current epoch seconds
        """
        self.config = config
        self._authorization = self._build_authorization(config)
        self._http = http_client or httpx.Client(
            verify=config.verify_ssl, timeout=config.timeout
        )
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _build_authorization(config: GigaChatConfig) -> str:
        if config.client_id and config.client_secret:
            pair = f"{config.client_id}:{config.client_secret}".encode()
            return base64.b64encode(pair).decode()
        if not config.has_credentials:
            raise ConfigurationError(
                "GigaChat credentials are not configured. "
                "Set gigaChat.apiKey in config.json or GIGACHAT_API_KEY."
            )
        return config.api_key

    def get_token(self) -> str:
        """Return a valid token, refreshing it when expired.

        Raises:
            AuthError: If the exchange fails
        """
        with self._lock:
            token = self._token
            if token is not None and self._clock() < token.expires_at:
                return token.value

            logger.info("GigaChat token expired or missing, requesting a new one...")
            self._token = self._exchange()
            logger.info("New GigaChat token received")
            return self._token.value

    def _exchange(self) -> AccessToken:
        try:
            response = self._http.post(
                self.config.auth_url,
                headers={
                    "Accept": "application/json",
                    "RqUID": str(uuid.uuid4()),
                    "Authorization": f"Basic {self._authorization}",
                },
                data={"scope": self.config.scope},
            )
        except httpx.HTTPError as e:
            raise AuthError(f"Token request failed: {e}") from e

        if response.is_error:
            raise AuthError(
                f"Token endpoint returned {response.status_code}: {response.text[:500]}"
            )

        try:
            payload = response.json()
            value = payload["access_token"]
            expires_at_ms = int(payload["expires_at"])
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(f"Unexpected token response: {response.text[:500]}") from e

        return AccessToken(
            value=value,
            expires_at=expires_at_ms / 1000 - EXPIRY_MARGIN_SECONDS,
        )
