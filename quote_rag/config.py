"""Configuration for the quote assembler.

Paths default to the working directory; point QUOTE_RAG_HOME elsewhere to
keep config, catalog and logs together in one place.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# Working directory for all data files
BASE_DIR = Path(os.environ.get("QUOTE_RAG_HOME", Path.cwd()))

# Provider settings (created with defaults on first run)
CONFIG_PATH = BASE_DIR / "config.json"

# Raw price list, one product per line
MATERIALS_PATH = BASE_DIR / "materials.csv"

# Parsed catalog cache
PRODUCTS_CACHE_PATH = BASE_DIR / "products.json"

# DOCX template with {placeholders}
TEMPLATE_PATH = BASE_DIR / "template.docx"

# One JSON log per assembled quote
LOG_DIR = BASE_DIR / "logs"

# Retrieval defaults
DEFAULT_TOP_K = 50

# Low temperature keeps extraction and selection repeatable
DEFAULT_TEMPERATURE = 0.1

API_KEY_PLACEHOLDER = "PASTE_YOUR_BASE64_GIGACHAT_API_KEY_HERE"


class GigaChatConfig(BaseModel):
    """Cloud provider settings.

    ``api_key`` is the base64 authorization key issued by the provider. When
    it is empty, ``client_id`` and ``client_secret`` are used to build it.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(default=API_KEY_PLACEHOLDER, alias="apiKey")
    client_id: str | None = Field(default=None, alias="clientId")
    client_secret: str | None = Field(default=None, alias="clientSecret")
    model: str = "GigaChat:latest"
    scope: str = "GIGACHAT_API_PERS"
    auth_url: str = Field(
        default="https://ngw.devices.sberbank.ru:9443/api/v2/oauth", alias="authURL"
    )
    api_url: str = Field(
        default="https://gigachat.devices.sberbank.ru/api/v1", alias="apiURL"
    )
    # The provider's certificate chain is not in the default trust store
    verify_ssl: bool = Field(default=False, alias="verifySSL")
    timeout: float = 60.0

    @property
    def has_credentials(self) -> bool:
        if self.client_id and self.client_secret:
            return True
        return bool(self.api_key) and self.api_key != API_KEY_PLACEHOLDER

    @classmethod
    def from_env(cls) -> "GigaChatConfig":
        """Create config from environment variables."""
        api_key = os.environ.get("GIGACHAT_API_KEY")
        if not api_key:
            raise ConfigurationError(
                "GIGACHAT_API_KEY environment variable not set.\n"
                "Get your key at https://developers.sber.ru/studio"
            )
        return cls(
            api_key=api_key,
            model=os.environ.get("GIGACHAT_MODEL", "GigaChat:latest"),
        )


class OllamaConfig(BaseModel):
    """Local provider settings."""

    model_config = ConfigDict(populate_by_name=True)

    base_url: str = Field(default="http://localhost:11434", alias="baseURL")
    model: str = "llama3"
    timeout: float = 300.0

    @classmethod
    def from_env(cls) -> "OllamaConfig":
        """Create config from environment variables."""
        return cls(
            base_url=os.environ.get("OLLAMA_BASE_URL", "http://localhost:11434"),
            model=os.environ.get("OLLAMA_MODEL", "llama3"),
        )


class AppConfig(BaseModel):
    """Contents of config.json."""

    model_config = ConfigDict(populate_by_name=True)

    # True selects the cloud provider, False the local one
    use_gigachat: bool = Field(default=True, alias="useGigaChat")
    gigachat: GigaChatConfig = Field(default_factory=GigaChatConfig, alias="gigaChat")
    ollama: OllamaConfig = Field(default_factory=OllamaConfig)
    temperature: float = DEFAULT_TEMPERATURE


def _apply_env_overrides(config: AppConfig) -> AppConfig:
    """Environment variables win over the file."""
    gigachat_updates = {}
    if os.environ.get("GIGACHAT_API_KEY"):
        gigachat_updates["api_key"] = os.environ["GIGACHAT_API_KEY"]
    if os.environ.get("GIGACHAT_MODEL"):
        gigachat_updates["model"] = os.environ["GIGACHAT_MODEL"]

    ollama_updates = {}
    if os.environ.get("OLLAMA_BASE_URL"):
        ollama_updates["base_url"] = os.environ["OLLAMA_BASE_URL"]
    if os.environ.get("OLLAMA_MODEL"):
        ollama_updates["model"] = os.environ["OLLAMA_MODEL"]

    updates = {}
    if gigachat_updates:
        updates["gigachat"] = config.gigachat.model_copy(update=gigachat_updates)
    if ollama_updates:
        updates["ollama"] = config.ollama.model_copy(update=ollama_updates)

    use_gigachat = os.environ.get("QUOTE_RAG_USE_GIGACHAT")
    if use_gigachat:
        updates["use_gigachat"] = use_gigachat.lower() in ("1", "true", "yes")

    return config.model_copy(update=updates) if updates else config


def write_default_config(path: Path) -> AppConfig:
    """Write a config file with default values and return them."""
    config = AppConfig()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(config.model_dump(by_alias=True), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as e:
        raise ConfigurationError(f"Could not write default config to {path}: {e}") from e

    logger.warning(
        f"Created default config at {path}. Open it and paste your GigaChat API key."
    )
    return config


def load_config(path: Path | None = None) -> AppConfig:
    """Load config.json, creating it with defaults when missing.

    Args:
        path: Config file path. Defaults to CONFIG_PATH.

    Returns:
        AppConfig with environment overrides applied

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    path = path or CONFIG_PATH

    if not path.exists():
        logger.info(f"Config file {path} not found, creating defaults")
        return _apply_env_overrides(write_default_config(path))

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Could not read {path}: {e}") from e

    try:
        config = AppConfig.model_validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config in {path}: {e}") from e

    logger.info(f"Loaded config from {path}")
    return _apply_env_overrides(config)
