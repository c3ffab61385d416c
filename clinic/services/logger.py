import json
from datetime import datetime

from clinic.core.config import settings


def log_debug(event: str, data: dict):
    """
    Logs structured debug info if enabled.
    """
    if not settings.DEBUG_MODE:
        return

    entry = {
        "timestamp": datetime.now().isoformat(),
        "event": event,
        "data": data,
    }
    print(f"[CLINIC DEBUG] {json.dumps(entry, default=str)}")


def log_error(event: str, exc: BaseException):
    """Errors are always printed, regardless of DEBUG_MODE."""
    print(f"[CLINIC ERROR] {event}: {type(exc).__name__}: {exc}")
