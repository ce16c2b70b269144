"""Main FastAPI application for the Easy Mode backend."""
from fastapi import FastAPI, Request

from easymode.api.routes.chat import router as chat_router
from easymode.api.routes.insights import router as insights_router
from easymode.api.routes.jobs import router as jobs_router
from easymode.api.routes.progress import router as progress_router
from easymode.api.routes.tasks import router as tasks_router
from easymode.api.routes.weekly_plan import router as weekly_plan_router
from easymode.core.config import settings
from easymode.core.errors import EasyModeError, easymode_exception_handler
from easymode.core.logging import configure_logging
from easymode.core.middleware import RequestIDMiddleware
from easymode.db.session import init_db
from easymode.observability.best_effort import flush_opik
from easymode.observability.client import init_opik, opik_status
from easymode.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.add_exception_handler(EasyModeError, easymode_exception_handler)
app.include_router(progress_router)
app.include_router(tasks_router)
app.include_router(weekly_plan_router)
app.include_router(chat_router)
app.include_router(insights_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup() -> None:
    """Create tables and initialize observability backends after the event loop starts."""
    if settings.database_create_tables:
        init_db()
    init_opik()


@app.on_event("shutdown")
async def shutdown_observability() -> None:
    flush_opik()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok", "tracing": opik_status()}
