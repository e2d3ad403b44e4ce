from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.audit import router as audit_router
from app.api.classification import router as classification_router
from app.api.headcount import router as headcount_router
from app.api.history import router as history_router
from app.api.officers import router as officers_router
from app.api.removals import router as removals_router
from app.api.transfers import router as transfers_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging

app = FastAPI(title=f"{settings.brand_name} API")

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(officers_router)
_include_api_router(transfers_router)
_include_api_router(removals_router)
_include_api_router(classification_router)
_include_api_router(history_router)
_include_api_router(headcount_router)
_include_api_router(audit_router)


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
