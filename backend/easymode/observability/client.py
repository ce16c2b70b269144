"""Lazily built Opik client shared by tracing, metrics and the LLM wrapper."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Optional

from easymode.core.config import settings

try:
    from opik import Opik
except ImportError:  # pragma: no cover
    Opik = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

STATUS_NOT_STARTED = "not_started"
STATUS_ENABLED = "enabled"
STATUS_DISABLED = "disabled"
STATUS_MISSING_API_KEY = "missing_api_key"
STATUS_SDK_MISSING = "sdk_missing"
STATUS_INIT_FAILED = "init_failed"

_client: Optional["Opik"] = None
_status = STATUS_NOT_STARTED
_lock = Lock()


def _build_client() -> tuple[Optional["Opik"], str]:
    if not settings.opik_enabled:
        return None, STATUS_DISABLED
    if Opik is None:
        logger.warning("OPIK_ENABLED is true but the opik package is not installed; tracing disabled.")
        return None, STATUS_SDK_MISSING
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED is true but OPIK_API_KEY is missing; tracing disabled.")
        return None, STATUS_MISSING_API_KEY
    try:
        client = Opik(
            project_name=settings.opik_project,
            workspace=settings.opik_workspace,
            api_key=settings.opik_api_key,
        )
    except Exception as exc:  # pragma: no cover
        logger.warning("Failed to initialize Opik, tracing will be disabled: %s", exc)
        return None, STATUS_INIT_FAILED
    logger.info("Opik enabled (workspace=%s, project=%s).", settings.opik_workspace, settings.opik_project)
    return client, STATUS_ENABLED


def init_opik() -> Optional["Opik"]:
    """Build the client on first call; later calls return the same outcome."""
    global _client, _status

    with _lock:
        if _status == STATUS_NOT_STARTED:
            _client, _status = _build_client()
        return _client


def get_opik_client() -> Optional["Opik"]:
    if _client is not None:
        return _client
    return init_opik()


def opik_status() -> str:
    """Why tracing is on or off, for health reporting."""
    init_opik()
    return _status


def reset_opik_client() -> None:
    """Forget the cached client so the next call re-reads settings."""
    global _client, _status
    with _lock:
        _client = None
        _status = STATUS_NOT_STARTED
