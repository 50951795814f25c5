import json
import logging
from datetime import datetime, timezone

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_event_logger = logging.getLogger("mindflow.events")


def configure_logging(level: int = logging.INFO):
    """Install the root handler once; safe to call on every startup."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


def log_event(event: str, data: dict):
    """
    Logs structured debug info if enabled.
    """
    if not get_settings().DEBUG_EVENTS:
        return

    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "data": data,
    }
    _event_logger.info("[EVENT] %s:\n%s", event, json.dumps(entry, indent=2, default=str))
