"""
Interpret raw engine replies for chat and link search.
"""
import json
import logging
import re
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from support_portal.llm.errors import EmptyResponseError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?[ \t]*```\s*$")


class SearchResultItem(BaseModel):
    """One link surfaced to the caller."""
    url: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


def extract_chat_reply(raw_text: Optional[str]) -> str:
    """Return the reply text, or raise EmptyResponseError when there is none."""
    if raw_text is None or not raw_text.strip():
        raise EmptyResponseError("Reasoning engine returned no text")
    return raw_text


def strip_code_fences(text: str) -> str:
    """Remove a surrounding ```lang ... ``` wrapper if present."""
    stripped = _FENCE_OPEN.sub("", text, count=1)
    stripped = _FENCE_CLOSE.sub("", stripped, count=1)
    return stripped.strip()


_DECODER = json.JSONDecoder()


def _find_array(text: str) -> Any:
    """First JSON array embedded in prose, preferring one that holds objects."""
    fallback = None
    idx = text.find("[")
    while idx != -1:
        try:
            value, _ = _DECODER.raw_decode(text, idx)
        except ValueError:
            value = None
        if isinstance(value, list):
            if any(isinstance(item, dict) for item in value):
                return value
            if fallback is None:
                fallback = value
        idx = text.find("[", idx + 1)
    if fallback is None:
        raise ValueError("no JSON array found")
    return fallback


def _parse_json(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return _find_array(text)


def _is_valid_item(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    url, description = item.get("url"), item.get("description")
    return (
        isinstance(url, str) and bool(url.strip())
        and isinstance(description, str) and bool(description.strip())
    )


def extract_search_results(raw_text: Optional[str]) -> List[SearchResultItem]:
    """Parse a JSON array of {url, description} objects.

    Never raises. Unparseable or non-array output yields an empty list;
    elements without a non-empty string url and description are dropped.
    """
    if not raw_text:
        logger.warning("Search reply was empty")
        return []

    text = strip_code_fences(raw_text)
    try:
        data = _parse_json(text)
    except (ValueError, RecursionError):
        logger.warning("Search reply was not valid JSON: %.200s", raw_text)
        return []

    if not isinstance(data, list):
        logger.warning("Search reply was %s, expected an array", type(data).__name__)
        return []

    results = [
        SearchResultItem(url=item["url"], description=item["description"])
        for item in data
        if _is_valid_item(item)
    ]
    dropped = len(data) - len(results)
    if dropped:
        logger.info("Dropped %d invalid search result item(s)", dropped)
    return results
