from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from packages.assistant import build_assistant
from packages.core.schemas.session import SessionContext
from packages.quality.report import assessment_summary
from packages.quality.scorer import QualityScorer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")


class QueryRequest(BaseModel):
    text: str
    server_url: Optional[str] = None
    smart_mode: Optional[bool] = None
    provider: Optional[Literal["openai", "anthropic"]] = None
    api_key: Optional[str] = None


class AssessRequest(BaseModel):
    server_url: Optional[str] = None
    bands: Literal["four_band", "two_band"] = "four_band"


class ServerRequest(BaseModel):
    server_url: str


def _error(status: int, code: str, message: str, detail: Optional[dict] = None) -> JSONResponse:
    payload = {"error": {"code": code, "message": message, "detail": detail or {}}}
    return JSONResponse(status_code=status, content=payload)


def _valid_server_url(url: str) -> bool:
    return url.startswith("http://") or url.startswith("https://")


def _request_session(state, request: QueryRequest) -> SessionContext:
    # Overrides apply to a copy of the shared session for this request only.
    session = state.session.model_copy()
    if request.server_url:
        session.server_url = request.server_url.rstrip("/")
    if request.smart_mode is not None:
        session.smart_mode = request.smart_mode
    if request.provider is not None:
        session.provider = request.provider
        session.api_key = state.settings.api_key_for(request.provider)
    if request.api_key is not None:
        session.api_key = request.api_key
    return session


@router.post("/query")
def query(body: QueryRequest, http_request: Request) -> JSONResponse:
    if not body.text.strip():
        return _error(400, "invalid_input", "text is required")
    if body.server_url and not _valid_server_url(body.server_url):
        return _error(400, "invalid_input", "server_url must be an http(s) URL", {"server_url": body.server_url})

    state = http_request.app.state
    session = _request_session(state, body)
    try:
        assistant = build_assistant(state.settings, session, state.fetcher)
        result = assistant.process_query(body.text)
    except Exception as exc:
        logger.exception("Query endpoint failed")
        return _error(500, "internal_error", "unexpected error", {"error": str(exc)})

    if not body.server_url:
        state.session.server_url = session.server_url
        state.session.set_status(session.status, session.status_source)
    meta = {
        "server_url": session.server_url,
        "status": session.status,
        "source": session.status_source,
        "route": assistant.last_route,
        "intent": assistant.last_intent,
    }
    return JSONResponse(status_code=200, content={"type": result.type, "content": result.content, "meta": meta})


@router.post("/assess")
def assess(body: AssessRequest, http_request: Request) -> JSONResponse:
    state = http_request.app.state
    server_url = (body.server_url or state.session.server_url).rstrip("/")
    if not _valid_server_url(server_url):
        return _error(400, "invalid_input", "server_url must be an http(s) URL", {"server_url": server_url})
    try:
        assessment = QualityScorer(state.fetcher).assess(server_url)
    except Exception as exc:
        logger.exception("Assessment endpoint failed")
        return _error(500, "internal_error", "unexpected error", {"error": str(exc)})
    content = jsonable_encoder(assessment)
    content["summary"] = assessment_summary(assessment, body.bands)
    return JSONResponse(status_code=200, content=content)


@router.put("/server")
def select_server(body: ServerRequest, http_request: Request) -> JSONResponse:
    if not _valid_server_url(body.server_url):
        return _error(400, "invalid_input", "server_url must be an http(s) URL", {"server_url": body.server_url})
    state = http_request.app.state
    state.session.select_server(body.server_url)
    assistant = build_assistant(state.settings, state.session, state.fetcher)
    connected = assistant.transport.check_connection()
    return JSONResponse(
        status_code=200,
        content={
            "server_url": state.session.server_url,
            "status": state.session.status,
            "connected": connected,
        },
    )


__all__ = ["router"]
