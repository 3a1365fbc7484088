"""
Gemini API client: the single boundary to the hosted reasoning engine.
"""
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import BaseModel

from support_portal.config import GEMINI_API_KEY, GEMINI_BASE_URL, GEMINI_MODEL, GEMINI_STRUCTURED_OUTPUT
from support_portal.chat.context import ConversationTurn
from support_portal.llm.errors import GatewayError, MissingCredentialsError

logger = logging.getLogger(__name__)


class Mode(str, Enum):
    CHAT = "chat"
    SEARCH = "search"


SEARCH_RESULTS_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "url": {"type": "STRING"},
            "description": {"type": "STRING"},
        },
        "required": ["url", "description"],
    },
}


class GatewayStatus(BaseModel):
    available: bool


class GeminiClient:
    """Gemini generateContent client.

    Each send is one attempt. Failures surface as GatewayError carrying
    the HTTP status and the engine's reason code so they can be classified.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        structured_output: bool = GEMINI_STRUCTURED_OUTPUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.structured_output = structured_output
        self.transport = transport
        self.api_key = ""
        self.initialize(GEMINI_API_KEY if api_key is None else api_key)

    def initialize(self, api_key: Optional[str]) -> GatewayStatus:
        """Set the credential. A missing or blank key leaves the client unavailable."""
        self.api_key = (api_key or "").strip()
        if not self.available:
            logger.warning("No Gemini API key configured; AI features are disabled")
        return GatewayStatus(available=self.available)

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    def build_payload(
        self,
        prompt: str,
        prior_turns: Sequence[ConversationTurn],
        user_turn: str,
        mode: Mode,
        schema: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Build the generateContent request body."""
        contents = [turn.model_dump(mode="json") for turn in prior_turns]
        contents.append({"role": "user", "parts": [{"text": user_turn}]})

        payload: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": prompt}]},
            "contents": contents,
        }
        if mode == Mode.SEARCH and self.structured_output:
            payload["generationConfig"] = {
                "responseMimeType": "application/json",
                "responseSchema": schema or SEARCH_RESULTS_SCHEMA,
            }
        return payload

    async def send(
        self,
        prompt: str,
        prior_turns: Sequence[ConversationTurn],
        user_turn: str,
        mode: Mode = Mode.CHAT,
        schema: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Send one request and return the reply text."""
        if not self.available:
            raise MissingCredentialsError()

        payload = self.build_payload(prompt, prior_turns, user_turn, mode, schema)
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}

        # No client-side timeout; the hosting layer bounds the request
        try:
            async with httpx.AsyncClient(timeout=None, transport=self.transport) as client:
                response = await client.post(self.endpoint, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise GatewayError(f"Gemini request failed: {e}") from e

        if response.is_error:
            raise self._error_from(response)

        try:
            result = response.json()
        except ValueError as e:
            raise GatewayError("Gemini returned a non-JSON body", status=response.status_code) from e
        return self._extract_text(result)

    def _error_from(self, response: httpx.Response) -> GatewayError:
        """Turn an error response into a GatewayError using the API's error envelope."""
        reason = None
        message = response.reason_phrase or "Gemini request failed"
        try:
            error = response.json().get("error") or {}
        except (ValueError, AttributeError):
            error = {}
        if isinstance(error, dict):
            reason = error.get("status")
            message = error.get("message") or message
        return GatewayError(f"[{response.status_code}] {message}", status=response.status_code, reason=reason)

    def _extract_text(self, result: Any) -> str:
        """Join the text parts of the first candidate; empty when there are none."""
        if not isinstance(result, dict):
            return ""
        candidates: List[Any] = result.get("candidates") or []
        if not candidates or not isinstance(candidates[0], dict):
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))


gemini_client = GeminiClient()
