from __future__ import annotations

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from apps.api.routers.query import router as query_router
from packages.core.config import load_settings
from packages.core.logs import configure_logging
from packages.core.schemas.session import SessionContext
from packages.fhir.fetcher import ResourceFetcher
from packages.query.classifier import RULES

settings = load_settings()
configure_logging(settings.log_level)

app = FastAPI(title="FHIR Query Assistant API")
app.state.settings = settings
app.state.session = SessionContext.from_settings(settings)
app.state.fetcher = ResourceFetcher(timeout=settings.timeout)
app.include_router(query_router)


@app.get("/")
def root() -> dict:
    return {
        "name": "fhir-query-assistant",
        "status": "ok",
        "endpoints": ["/healthz", "/readyz", "/v1/query", "/v1/assess", "/v1/server"],
    }


@app.get("/healthz")
def healthz() -> dict:
    return {"status": "ok"}


@app.get("/readyz")
def readyz() -> JSONResponse:
    try:
        load_settings()
        if not RULES:
            raise RuntimeError("no query classification rules loaded")
    except Exception as exc:
        return JSONResponse(status_code=500, content={"status": "error", "detail": str(exc)})
    return JSONResponse(status_code=200, content={"status": "ok"})


__all__ = ["app"]
