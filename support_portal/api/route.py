"""
API routes.
"""
import json

from fastapi import APIRouter, Depends, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from support_portal.api.schemas import ErrorReply, parse_chat_request, parse_search_request
from support_portal.assistant import Outcome, SupportAssistant, assistant
from support_portal.llm.errors import CatalogLoadError, RequestValidationError

router = APIRouter()

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "POST,OPTIONS",
}


def get_assistant() -> SupportAssistant:
    return assistant


def _respond(outcome: Outcome, headers: dict = None) -> JSONResponse:
    return JSONResponse(content=outcome.body, status_code=outcome.status_code, headers=headers)


def _bad_request(message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(content=ErrorReply(error=message).model_dump(), status_code=400, headers=headers)


async def _read_json(request: Request):
    raw = await request.body()
    if not raw:
        return None
    return json.loads(raw)


@router.post("/api/chat")
async def chat(request: Request, portal: SupportAssistant = Depends(get_assistant)) -> JSONResponse:
    """Answer a chat message with the AI assistant."""
    try:
        body = await _read_json(request)
    except (ValueError, RecursionError):
        return _bad_request("Invalid JSON in request body")

    try:
        payload = parse_chat_request(body)
    except RequestValidationError as e:
        return _bad_request(str(e))

    return _respond(await portal.chat(payload))


@router.options("/api/smart-search")
async def smart_search_preflight() -> Response:
    """CORS preflight."""
    return Response(status_code=200, headers=CORS_HEADERS)


@router.post("/api/smart-search")
async def smart_search(request: Request, portal: SupportAssistant = Depends(get_assistant)) -> JSONResponse:
    """Find pre-filled form links for a query."""
    try:
        body = await _read_json(request)
    except (ValueError, RecursionError):
        return _bad_request("Invalid JSON in request body", CORS_HEADERS)

    try:
        payload = parse_search_request(body)
    except RequestValidationError as e:
        return _bad_request(str(e), CORS_HEADERS)

    return _respond(await portal.search(payload), CORS_HEADERS)


@router.api_route("/api/smart-search", methods=["GET", "PUT", "PATCH", "DELETE"])
async def smart_search_method_not_allowed() -> JSONResponse:
    return JSONResponse(
        content=ErrorReply(error="Method not allowed").model_dump(),
        status_code=405,
        headers=CORS_HEADERS,
    )


@router.get("/api/schema.json")
async def schema(portal: SupportAssistant = Depends(get_assistant)) -> JSONResponse:
    """Serve the raw form catalog."""
    try:
        document = await run_in_threadpool(portal.catalog.document)
    except CatalogLoadError:
        return JSONResponse(content=ErrorReply(error="Failed to load schema data").model_dump(), status_code=500)
    return JSONResponse(content=document, headers={"Cache-Control": "public, max-age=3600"})


@router.get("/")
async def health_check(portal: SupportAssistant = Depends(get_assistant)):
    """Report whether the catalog and the AI engine are usable."""
    try:
        await portal.load_catalog()
        catalog_ok = True
    except CatalogLoadError:
        catalog_ok = False
    ai_ok = portal.gateway.available
    return {
        "status": "healthy" if (catalog_ok and ai_ok) else "degraded",
        "ai": "configured" if ai_ok else "unconfigured",
        "catalog": "loaded" if catalog_ok else "unavailable",
    }
