"""FastAPI app exposing link suggestions to an editor over HTTP."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, List, Optional, Union

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from link_weaver.config import CONFIG
from link_weaver.errors import LinkWeaverError, RequestError
from link_weaver.log_setup import setup_logging
from link_weaver.models import PathResult
from link_weaver.runtime import WeaverRuntime, create_runtime
from link_weaver.suggestions import LOOKUP_ID_KEY, SCAN_ID_KEY

API_TOKEN = CONFIG.web.token

setup_logging()
logger = logging.getLogger("link_weaver.web")

_runtime: Optional[WeaverRuntime] = None

app = FastAPI(title="Link Weaver", version="0.1.0")

DocumentId = Optional[Union[int, str]]


class ScanRequest(BaseModel):
    """Whole-draft scan payload."""

    content: str = Field(default="", description="Full draft content")
    post_id: DocumentId = Field(default=None, description="Document being edited; excluded from targets")


class TextLinkRequest(BaseModel):
    anchor_text: str = Field(default="", description="Phrase selected in the editor")
    post_id: DocumentId = None


class RagQuery(BaseModel):
    query: str = Field(default="", description="Phrase to look up in the knowledge base")


class SettingsUpdate(BaseModel):
    """Partial settings update; omitted fields keep their stored value."""

    llm_provider: Optional[str] = None
    gemini_api_key: Optional[str] = None
    llm_url: Optional[str] = None
    llm_model: Optional[str] = None
    llm_key: Optional[str] = None
    rag_api_url: Optional[str] = None


class HealthResponse(BaseModel):
    status: str


def get_runtime() -> WeaverRuntime:
    global _runtime
    if _runtime is None:
        _runtime = create_runtime()
    return _runtime


async def require_token(authorization: Optional[str] = Header(default=None)) -> None:
    """Simple bearer token guard; skip if no token configured."""

    if not API_TOKEN:
        return
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or token != API_TOKEN:
        raise HTTPException(status_code=401, detail="Invalid token")


def _error(exc: LinkWeaverError, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def _path_response(result: PathResult, **item_kwargs: Any) -> Union[List[dict], JSONResponse]:
    if result.error is not None:
        return _error(result.error, 500)
    return [item.to_dict(**item_kwargs) for item in result.items]


@app.get("/health", response_model=HealthResponse)
async def health(_: None = Depends(require_token)) -> HealthResponse:
    return HealthResponse(status="ok")


@app.post("/suggestions")
async def suggestions(req: ScanRequest, _: None = Depends(require_token)):
    weaver = get_runtime().weaver
    try:
        outcome = await asyncio.to_thread(weaver.scan_document, req.content, req.post_id)
    except RequestError as exc:
        return _error(exc, 400)
    return _path_response(outcome.llm, id_key=SCAN_ID_KEY)


@app.post("/link-for-text")
async def link_for_text(req: TextLinkRequest, _: None = Depends(require_token)):
    weaver = get_runtime().weaver
    try:
        result = await asyncio.to_thread(weaver.rank_phrase, req.anchor_text, req.post_id)
    except RequestError as exc:
        return _error(exc, 400)
    return _path_response(result, id_key=LOOKUP_ID_KEY)


@app.post("/link-from-rag")
async def link_from_rag(req: RagQuery, _: None = Depends(require_token)):
    weaver = get_runtime().weaver
    try:
        result = await asyncio.to_thread(weaver.discover_sources, req.query)
    except RequestError as exc:
        return _error(exc, 400)
    return _path_response(result)


@app.post("/lookup")
async def lookup(req: TextLinkRequest, _: None = Depends(require_token)):
    """Phrase lookup returning both paths, each with its own error slot."""

    weaver = get_runtime().weaver
    try:
        outcome = await asyncio.to_thread(weaver.lookup_phrase, req.anchor_text, req.post_id)
    except RequestError as exc:
        return _error(exc, 400)
    return {
        "anchor_text": req.anchor_text.strip(),
        "llm": outcome.llm.to_dict(id_key=LOOKUP_ID_KEY),
        "rag": outcome.rag.to_dict() if isinstance(outcome.rag, PathResult) else None,
    }


@app.get("/settings")
async def read_settings(_: None = Depends(require_token)) -> dict:
    return get_runtime().settings.masked()


@app.post("/settings")
async def write_settings(update: SettingsUpdate, _: None = Depends(require_token)) -> dict:
    settings = get_runtime().settings
    values = update.model_dump(exclude_none=True)
    await asyncio.to_thread(settings.update, values)
    return settings.masked()


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
