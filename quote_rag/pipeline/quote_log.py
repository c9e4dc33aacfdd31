"""Per-request quote logs: one JSON file per assembled quote."""

import json
import logging
import time
import uuid
from pathlib import Path

from .. import config
from ..errors import PersistenceError
from ..llm.schemas import Quote

logger = logging.getLogger(__name__)


def save_quote_log(quote: Quote, log_dir: Path | None = None) -> Path:
    """Write {query, response: {found_items, total_cost}} to a new file.

    Args:
        quote: Assembled quote
        log_dir: Target directory. Defaults to config.LOG_DIR.

    Returns:
        Path of the written file

    Raises:
        PersistenceError: If the file cannot be written
    """
    log_dir = log_dir or config.LOG_DIR
    # Concurrent requests can land in the same second
    path = log_dir / f"log_{int(time.time())}_{uuid.uuid4().hex[:8]}.json"

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        path.write_text(
            json.dumps(quote.to_log_record(), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
    except OSError as e:
        raise PersistenceError(f"Could not write quote log {path}: {e}") from e

    logger.info(f"Quote log saved: {path}")
    return path
