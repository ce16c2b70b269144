"""Run telemetry side effects with a timeout, never failing the caller."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Callable

from easymode.core.config import settings
from easymode.observability.client import get_opik_client

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="best-effort")


def run_best_effort(fn: Callable[[], Any], *, timeout: float, label: str) -> bool:
    """
    Run ``fn`` on a worker thread and wait at most ``timeout`` seconds.

    Returns True when the call finished in time without raising. Timeouts and
    failures are logged and swallowed.
    """
    future = _executor.submit(fn)
    try:
        future.result(timeout=timeout)
        return True
    except FutureTimeoutError:
        logger.warning("%s timed out after %.1fs (non-fatal)", label, timeout)
    except Exception as exc:
        logger.warning("%s failed (non-fatal): %s", label, exc)
    return False


def flush_opik(timeout: float | None = None) -> bool:
    """Flush pending traces and feedback scores before a job or request ends."""
    client = get_opik_client()
    if not client:
        return True
    limit = timeout if timeout is not None else settings.telemetry_flush_timeout_seconds
    return run_best_effort(client.flush, timeout=limit, label="Opik flush")
