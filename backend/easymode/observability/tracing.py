"""Tracing utilities wrapping Opik."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterable, Iterator, List, Optional

from easymode.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace
else:  # pragma: no cover - typing helper
    Trace = object  # type: ignore[assignment]

logger = logging.getLogger(__name__)

BASE_TAGS = ["easy-mode"]


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
    input: Optional[Dict[str, Any]] = None,
    tags: Optional[Iterable[str]] = None,
) -> Iterator[Optional["Trace"]]:
    """
    Create an Opik trace context manager.

    When Opik is disabled or unavailable the context is a no-op and yields None.
    Errors raised inside the block are attached to the trace and re-raised.
    """
    client = get_opik_client()
    opik_trace: Optional["Trace"] = None

    if client:
        trace_metadata = dict(metadata or {})
        if user_id:
            trace_metadata.setdefault("user_id", str(user_id))
        if request_id:
            trace_metadata.setdefault("request_id", request_id)
        trace_tags: List[str] = [*BASE_TAGS, name.split(".")[0], *(tags or [])]
        try:
            opik_trace = client.trace(
                name=name,
                input=input,
                metadata=trace_metadata or None,
                tags=trace_tags,
            )
        except Exception as exc:  # pragma: no cover
            logger.debug("Unable to start Opik trace %s: %s", name, exc)
            opik_trace = None

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace:
            try:
                opik_trace.update(error_info={"exception_type": type(exc).__name__, "message": str(exc)})
            except Exception:  # pragma: no cover
                logger.debug("Failed to attach error info to Opik trace %s", name, exc_info=True)
        raise
    finally:
        if opik_trace:
            try:
                opik_trace.end()
            except Exception:  # pragma: no cover
                logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)


def record_output(
    opik_trace: Optional["Trace"],
    output: Dict[str, Any],
    scores: Optional[List[Dict[str, Any]]] = None,
) -> None:
    """Attach output and feedback scores to an open trace; never raises."""
    if not opik_trace:
        return
    try:
        opik_trace.update(output=output)
        for score in scores or []:
            opik_trace.log_feedback_score(
                name=score["name"],
                value=score["value"],
                reason=score.get("reason"),
            )
    except Exception:  # pragma: no cover - telemetry is best effort
        logger.debug("Failed to record output on Opik trace", exc_info=True)
