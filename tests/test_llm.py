"""
Gemini client tests.
"""
import json

import httpx
import pytest

from support_portal.chat.context import ConversationTurn, TurnPart
from support_portal.llm.errors import HIGH_DEMAND, MAINTENANCE, GatewayError, MissingCredentialsError, classify
from support_portal.llm.llm import SEARCH_RESULTS_SCHEMA, GeminiClient, Mode


def reply_body(*texts):
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": t} for t in texts]}}]}


class Recorder:
    """MockTransport handler that keeps the last request."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.request = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.request = request
        return self.response

    @property
    def payload(self):
        return json.loads(self.request.content)


def make_gemini(handler, api_key="test-key", **kwargs) -> GeminiClient:
    return GeminiClient(
        api_key=api_key,
        model="gemini-test",
        base_url="https://engine.example/v1beta/",
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestAvailability:

    # A key makes the client available
    def test_initialize_with_key(self):
        client = make_gemini(Recorder(httpx.Response(200)))
        assert client.available is True
        assert client.initialize("another-key").available is True

    # Missing or blank keys leave the client unavailable without raising
    @pytest.mark.parametrize("key", ["", "   ", None])
    def test_initialize_without_key(self, key):
        client = make_gemini(Recorder(httpx.Response(200)))
        assert client.initialize(key).available is False
        assert client.available is False

    # Sending while unavailable raises MissingCredentialsError, which maps to maintenance
    @pytest.mark.asyncio
    async def test_send_without_key(self):
        client = make_gemini(Recorder(httpx.Response(200)), api_key="")
        with pytest.raises(MissingCredentialsError) as excinfo:
            await client.send("prompt", [], "hi")
        assert classify(excinfo.value) == MAINTENANCE


class TestPayload:

    # Chat requests carry instructions, history and the new turn, with no schema
    @pytest.mark.asyncio
    async def test_chat_request(self):
        recorder = Recorder(httpx.Response(200, json=reply_body("Hello!")))
        client = make_gemini(recorder)
        history = [
            ConversationTurn.user("I need a laptop"),
            ConversationTurn(role="model", parts=[TurnPart(text="What kind?")]),
        ]

        text = await client.send("instructions", history, "A new one", Mode.CHAT)

        assert text == "Hello!"
        assert str(recorder.request.url) == "https://engine.example/v1beta/models/gemini-test:generateContent"
        assert recorder.request.headers["x-goog-api-key"] == "test-key"
        payload = recorder.payload
        assert payload["systemInstruction"] == {"parts": [{"text": "instructions"}]}
        assert payload["contents"] == [
            {"role": "user", "parts": [{"text": "I need a laptop"}]},
            {"role": "model", "parts": [{"text": "What kind?"}]},
            {"role": "user", "parts": [{"text": "A new one"}]},
        ]
        assert "generationConfig" not in payload

    # Search requests ask for schema-constrained JSON
    @pytest.mark.asyncio
    async def test_search_request_schema(self):
        recorder = Recorder(httpx.Response(200, json=reply_body("[]")))
        client = make_gemini(recorder)

        await client.send("instructions", [], "laptop issue", Mode.SEARCH)

        config = recorder.payload["generationConfig"]
        assert config["responseMimeType"] == "application/json"
        assert config["responseSchema"] == SEARCH_RESULTS_SCHEMA

    # Structured output can be switched off
    @pytest.mark.asyncio
    async def test_search_without_structured_output(self):
        recorder = Recorder(httpx.Response(200, json=reply_body("[]")))
        client = make_gemini(recorder, structured_output=False)

        await client.send("instructions", [], "laptop issue", Mode.SEARCH)

        assert "generationConfig" not in recorder.payload


class TestReplies:

    # Multiple text parts are joined
    @pytest.mark.asyncio
    async def test_joined_parts(self):
        client = make_gemini(Recorder(httpx.Response(200, json=reply_body("Hello, ", "world"))))
        assert await client.send("p", [], "hi") == "Hello, world"

    # No candidates gives empty text
    @pytest.mark.asyncio
    async def test_no_candidates(self):
        client = make_gemini(Recorder(httpx.Response(200, json={"candidates": []})))
        assert await client.send("p", [], "hi") == ""

    # Error envelopes become GatewayError with status and reason
    @pytest.mark.asyncio
    async def test_overloaded(self):
        body = {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}
        client = make_gemini(Recorder(httpx.Response(503, json=body)))
        with pytest.raises(GatewayError) as excinfo:
            await client.send("p", [], "hi")
        assert excinfo.value.status == 503
        assert excinfo.value.reason == "UNAVAILABLE"
        assert classify(excinfo.value) == HIGH_DEMAND

    # Rejected keys classify as maintenance
    @pytest.mark.asyncio
    async def test_invalid_key(self):
        body = {"error": {"code": 400, "message": "API key not valid. Please pass a valid API key.", "status": "INVALID_ARGUMENT"}}
        client = make_gemini(Recorder(httpx.Response(400, json=body)))
        with pytest.raises(GatewayError) as excinfo:
            await client.send("p", [], "hi")
        assert excinfo.value.status == 400
        assert classify(excinfo.value) == MAINTENANCE

    # Error responses without an envelope still carry the status
    @pytest.mark.asyncio
    async def test_error_without_envelope(self):
        client = make_gemini(Recorder(httpx.Response(500, text="oops")))
        with pytest.raises(GatewayError) as excinfo:
            await client.send("p", [], "hi")
        assert excinfo.value.status == 500

    # Transport failures become GatewayError without a status
    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = make_gemini(handler)
        with pytest.raises(GatewayError) as excinfo:
            await client.send("p", [], "hi")
        assert excinfo.value.status is None
