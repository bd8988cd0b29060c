"""
Centralized logging module for the PetPro API.

- Structured JSON logs suitable for Loki/ELK
- Appropriate log levels (info, warning, error)
- NEVER logs passwords, password hashes, tokens or full request bodies
- Security-sensitive actions emit structured logs with user_id, tenant_id, action, result, timestamp
- The last LOG_BUFFER_SIZE lines are kept in memory and served to admins by GET /api/logs
"""
import json
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from petpro.core.config import settings

logger = logging.getLogger("petpro")
logger.setLevel(settings.LOG_LEVEL.upper())


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON logs."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in ("user_id", "tenant_id", "action", "result", "meta"):
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class BufferHandler(logging.Handler):
    """Keeps the most recent formatted lines in memory."""

    def __init__(self, capacity: int) -> None:
        super().__init__()
        self._lines: deque[str] = deque(maxlen=capacity)
        self._buffer_lock = threading.Lock()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return
        with self._buffer_lock:
            self._lines.append(line)

    def lines(self) -> List[str]:
        with self._buffer_lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._buffer_lock:
            self._lines.clear()


_formatter = JSONFormatter()

_handler = logging.StreamHandler()
_handler.setFormatter(_formatter)
logger.addHandler(_handler)

log_buffer = BufferHandler(settings.LOG_BUFFER_SIZE)
log_buffer.setFormatter(_formatter)
logger.addHandler(log_buffer)

# Prevent duplicate logs
logger.propagate = False


def get_log_lines() -> List[str]:
    """Return a copy of the buffered log lines, oldest first."""
    return log_buffer.lines()


def log_security_event(
    action: str,
    result: str,
    user_id: Optional[str] = None,
    tenant_id: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None,
    level: str = "info",
) -> None:
    """
    Log security-sensitive actions (login, registration, invites, role and password changes).

    Args:
        action: Action name (e.g., "login", "register", "invite")
        result: Result status (e.g., "success", "failure", "denied")
        user_id: User ID (optional)
        tenant_id: Tenant ID (optional)
        meta: Additional metadata dict (optional, never credentials)
        level: Log level ("info", "warning", "error")
    """
    log_method = getattr(logger, level.lower(), logger.info)
    extra: Dict[str, Any] = {
        "action": action,
        "result": result,
    }
    if user_id:
        extra["user_id"] = user_id
    if tenant_id:
        extra["tenant_id"] = tenant_id
    if meta:
        extra["meta"] = meta

    log_method("Security event", extra=extra)
