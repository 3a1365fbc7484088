"""
Request core shared by the chat and link-search endpoints.

Each request runs once through: validate (done by the caller), resolve
the catalog and engine availability, send, then interpret the reply or
classify the failure. Nothing is kept between requests except the
catalog cache.
"""
import logging
from typing import Any, Dict

from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from support_portal.api.schemas import ChatReply, ChatRequest, ErrorReply, SearchReply, SearchRequest
from support_portal.catalog.catalog import Catalog, CatalogCache, catalog_cache, describe
from support_portal.chat.context import ConversationContext, UserDetails
from support_portal.llm.errors import (
    CATALOG_LOAD_FAILURE_MESSAGE,
    MAINTENANCE_MESSAGE,
    CatalogLoadError,
    classify,
)
from support_portal.llm.interpreter import extract_chat_reply, extract_search_results
from support_portal.llm.llm import GeminiClient, Mode, gemini_client
from support_portal.llm.prompts import build_chat_prompt, build_search_prompt, build_search_query

logger = logging.getLogger(__name__)

UPDATE_INFO_COMMAND = "update my information"


class Outcome(BaseModel):
    """HTTP status and JSON body for one handled request."""
    status_code: int = 200
    body: Dict[str, Any]


def is_update_info_request(message: str) -> bool:
    return message.strip().lower() == UPDATE_INFO_COMMAND


def update_info_summary(user_details: UserDetails) -> str:
    """Summary of the caller's details on file, inviting corrections."""
    lines = ["Here is the information we currently have on file for you:", ""]
    lines.extend(f"- **{label}:** {value}" for label, value in user_details.facts())
    lines.append("")
    lines.append(
        "If anything is incorrect, tell me what needs to change and I'll find the right form to update it."
    )
    return "\n".join(lines)


class SupportAssistant:
    """Runs chat and search requests against the catalog and the engine."""

    def __init__(self, catalog: CatalogCache, gateway: GeminiClient):
        self.catalog = catalog
        self.gateway = gateway

    async def load_catalog(self) -> Catalog:
        """Cached catalog; a cold load runs in the threadpool, off the event loop."""
        if self.catalog.loaded:
            return self.catalog.load()
        return await run_in_threadpool(self.catalog.load)

    async def chat(self, request: ChatRequest) -> Outcome:
        """Answer one chat message."""
        # Answered locally, never sent to the engine
        if is_update_info_request(request.message):
            reply = ChatReply(response=update_info_summary(request.userDetails))
            return Outcome(body=reply.to_body())

        try:
            catalog = await self.load_catalog()
        except CatalogLoadError:
            return Outcome(status_code=500, body=ErrorReply(error=CATALOG_LOAD_FAILURE_MESSAGE).model_dump())

        if not self.gateway.available:
            reply = ChatReply(response=MAINTENANCE_MESSAGE, aiDisabled=True)
            return Outcome(body=reply.to_body())

        context = ConversationContext(request.userDetails, request.history)
        prompt = build_chat_prompt(context, describe(catalog))

        try:
            raw_text = await self.gateway.send(prompt, context.history, request.message, Mode.CHAT)
            response = extract_chat_reply(raw_text)
        except Exception as e:
            degraded = classify(e)
            if degraded.ai_disabled:
                reply = ChatReply(response=degraded.message, aiDisabled=True)
                return Outcome(body=reply.to_body())
            return Outcome(status_code=500, body=ErrorReply(error=degraded.message).model_dump())

        return Outcome(body=ChatReply(response=response).to_body())

    async def search(self, request: SearchRequest) -> Outcome:
        """Find pre-filled form links for a free-text query."""
        try:
            catalog = await self.load_catalog()
        except CatalogLoadError:
            return Outcome(status_code=500, body=ErrorReply(error=CATALOG_LOAD_FAILURE_MESSAGE).model_dump())

        if not self.gateway.available:
            reply = SearchReply(links=[], error=MAINTENANCE_MESSAGE, aiDisabled=True)
            return Outcome(status_code=503, body=reply.to_body())

        context = ConversationContext(request.userDetails)
        prompt = build_search_prompt(context, describe(catalog))

        try:
            raw_text = await self.gateway.send(prompt, (), build_search_query(request.query), Mode.SEARCH)
        except Exception as e:
            degraded = classify(e)
            if degraded.ai_disabled:
                reply = SearchReply(links=[], error=degraded.message, aiDisabled=True)
                return Outcome(status_code=503, body=reply.to_body())
            return Outcome(status_code=500, body=SearchReply(links=[], error=degraded.message).to_body())

        links = extract_search_results(raw_text)
        # Diagnostics only; links are returned unchanged
        for link in links:
            if catalog.find_form(link.url) is None:
                logger.info("Search result does not match a catalog form: %s", link.url)
        return Outcome(body=SearchReply(links=links, error=None).to_body())


assistant = SupportAssistant(catalog_cache, gemini_client)
