import json, time, threading, logging
from dataclasses import dataclass, asdict
from typing import List, Optional

from .config import LOGGER_NAME, LOG_FORMAT, DIAGNOSTIC_LOG_FILE

_LOG_LOCK = threading.Lock()

logger = logging.getLogger(LOGGER_NAME)


@dataclass
class FieldEvent:
    """A per-field anomaly that was absorbed instead of raised."""
    stage: str  # "extract", "fill" or "generate"
    field_name: str
    reason: str


def configure_file_logging(path: str, level: int = logging.INFO) -> logging.Handler:
    """Attach a file handler to the bridge logger and stop console propagation."""
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    # Prevent propagation to root logger to avoid console spam
    logger.propagate = False
    return handler


def log_field_event(event: FieldEvent, log_file: Optional[str] = DIAGNOSTIC_LOG_FILE):
    logger.debug(f"{event.stage}: skipped/defaulted field {event.field_name!r} ({event.reason})")
    if not log_file:
        return
    try:
        rec = {"ts": time.time(), **asdict(event)}
        line = json.dumps(rec, ensure_ascii=False)
        with _LOG_LOCK:
            with open(log_file, "a", encoding="utf-8") as f:
                f.write(line + "\n")
    except OSError as e:
        logger.warning(f"Could not write diagnostic log {log_file}: {e}")


def record_field_event(events: Optional[List[FieldEvent]], event: FieldEvent):
    """Append to the caller's diagnostics list (if any) and log the event."""
    if events is not None:
        events.append(event)
    log_field_event(event)
