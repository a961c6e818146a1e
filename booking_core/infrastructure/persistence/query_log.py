"""Structured query / error log for repository operations.

Both functions swallow any exception raised while logging: a broken handler
or an unrepresentable parameter must never mask the operation's own result
or error.
"""

from __future__ import annotations

import logging
from typing import Any

from booking_core.config import settings

logger = logging.getLogger(__name__)


def _summarize(result: Any) -> Any:
    if isinstance(result, list):
        return f"{len(result)} rows"
    return result


def log_query(entity_name: str, operation: str, params: Any, result: Any) -> None:
    if not settings.log_queries:
        return
    try:
        logger.debug(
            "%s.%s ok -> %s",
            entity_name,
            operation,
            _summarize(result),
            extra={"entity": entity_name, "operation": operation, "params": params},
        )
    except Exception:  # noqa: BLE001
        pass


def log_error(entity_name: str, operation: str, params: Any, error: BaseException) -> None:
    try:
        logger.error(
            "%s.%s failed: %s",
            entity_name,
            operation,
            error,
            extra={"entity": entity_name, "operation": operation, "params": params},
        )
    except Exception:  # noqa: BLE001
        pass
