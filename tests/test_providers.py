from __future__ import annotations

import json
import threading

import httpx
import pytest

from docagent.models.base import ProviderCancelled, ToolSchema, TransportError
from docagent.models.bedrock import BedrockProvider
from docagent.models.gemini import GeminiProvider
from docagent.models.openai_compat import OpenAICompatProvider

TOOLS = [
    ToolSchema(
        name="read_file",
        description="Read a file",
        parameters={"type": "object", "properties": {"path": {"type": "string"}}},
    )
]


def test_openai_compat_url_payload_and_tool_calls():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {
                        "message": {
                            "content": "Reading",
                            "tool_calls": [
                                {
                                    "id": "abc",
                                    "function": {"name": "read_file", "arguments": '{"path": "manifest.yml"}'},
                                },
                                {"function": {"name": "list_directory", "arguments": {"path": ""}}},
                            ],
                        },
                        "finish_reason": "tool_calls",
                    }
                ]
            },
        )

    provider = OpenAICompatProvider(
        base_url="localhost:11434", model="llama3", api_key="local-key", transport=httpx.MockTransport(handler)
    )
    response = provider.generate_response("Human: hi\n\n", TOOLS)
    assert requests[0].url == httpx.URL("http://localhost:11434/v1/chat/completions")
    assert requests[0].headers["Authorization"] == "Bearer local-key"
    body = json.loads(requests[0].content.decode())
    assert body["model"] == "llama3"
    assert body["messages"] == [{"role": "user", "content": "Human: hi\n\n"}]
    assert body["tools"][0]["function"]["name"] == "read_file"
    assert body["tool_choice"] == "auto"
    assert response.content == "Reading"
    assert not response.finished
    assert [call.id for call in response.tool_calls] == ["abc", "call_1"]
    assert json.loads(response.tool_calls[1].arguments) == {"path": ""}


def test_openai_compat_stop_means_finished():
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(200, json={"choices": [{"message": {"content": "Done"}, "finish_reason": "stop"}]})

    provider = OpenAICompatProvider(base_url="http://llm.local/v1/", transport=httpx.MockTransport(handler))
    response = provider.generate_response("hi", [])
    assert response.finished
    assert response.content == "Done"


def test_gemini_function_calls_and_headers():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {
                        "content": {
                            "parts": [
                                {"text": "Let me look."},
                                {"functionCall": {"name": "read_file", "args": {"path": "manifest.yml"}}},
                                {"functionCall": {"name": "list_directory", "args": {}}},
                            ]
                        },
                        "finishReason": "STOP",
                    }
                ]
            },
        )

    provider = GeminiProvider(api_key="gemini-secret-key", transport=httpx.MockTransport(handler))
    assert provider.unstable
    response = provider.generate_response("hi", TOOLS)
    request = requests[0]
    assert request.url.path == "/v1beta/models/gemini-2.5-pro:generateContent"
    assert request.headers["X-goog-api-key"] == "gemini-secret-key"
    body = json.loads(request.content.decode())
    assert body["tools"][0]["functionDeclarations"][0]["name"] == "read_file"
    assert response.finished
    assert response.content == "Let me look."
    assert [call.id for call in response.tool_calls] == ["call_0", "call_1"]
    assert json.loads(response.tool_calls[0].arguments) == {"path": "manifest.yml"}


@pytest.mark.parametrize(
    "reason, expected",
    [
        ("MAX_TOKENS", "I reached the maximum response length"),
        ("MALFORMED_FUNCTION_CALL", "I encountered an error"),
        ("SAFETY", "safety policies"),
    ],
)
def test_gemini_synthesizes_text_for_abnormal_finish(reason, expected):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": []}, "finishReason": reason}]})

    provider = GeminiProvider(api_key="k", transport=httpx.MockTransport(handler))
    response = provider.generate_response("hi", [])
    assert response.finished
    assert expected in response.content


def test_gemini_without_finish_reason_is_not_finished():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": "partial"}]}}]})

    response = GeminiProvider(api_key="k", transport=httpx.MockTransport(handler)).generate_response("hi", [])
    assert not response.finished
    assert response.content == "partial"


def test_bedrock_invoke_and_stop_reason():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "content": "Writing the file",
                "stop_reason": "tool_use",
                "tool_calls": [{"id": "t1", "name": "write_file", "input": {"path": "a", "content": "b"}}],
            },
        )

    provider = BedrockProvider(api_key="bedrock-key", region="eu-west-1", transport=httpx.MockTransport(handler))
    response = provider.generate_response("hi", TOOLS)
    request = requests[0]
    assert request.url.host == "bedrock-runtime.eu-west-1.amazonaws.com"
    assert request.url.path.endswith("/invoke")
    assert request.headers["Authorization"] == "Bearer bedrock-key"
    assert json.loads(request.content.decode())["tools"][0]["input_schema"]["type"] == "object"
    assert not response.finished
    assert response.tool_calls[0].name == "write_file"
    assert json.loads(response.tool_calls[0].arguments) == {"path": "a", "content": "b"}


def test_bedrock_end_turn_is_finished():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": "Done", "stop_reason": "end_turn"})

    provider = BedrockProvider(api_key="k", transport=httpx.MockTransport(handler))
    assert provider.generate_response("hi", []).finished


def test_server_errors_are_retried_then_raised():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(500, text="boom")

    provider = GeminiProvider(api_key="k", transport=httpx.MockTransport(handler), backoff_seconds=0)
    with pytest.raises(TransportError, match="Gemini request failed"):
        provider.generate_response("hi", [])
    assert len(attempts) == provider.max_attempts


def test_retry_recovers_after_rate_limit():
    responses = [httpx.Response(429), httpx.Response(200, json={"content": "ok", "stop_reason": "end_turn"})]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    provider = BedrockProvider(api_key="k", transport=httpx.MockTransport(handler), backoff_seconds=0)
    assert provider.generate_response("hi", []).content == "ok"


def test_client_errors_are_not_retried():
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        return httpx.Response(403, json={"error": "forbidden"})

    provider = BedrockProvider(api_key="k", transport=httpx.MockTransport(handler), backoff_seconds=0)
    with pytest.raises(TransportError, match="status 403"):
        provider.generate_response("hi", [])
    assert len(attempts) == 1


def test_malformed_json_raises_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="not json")

    provider = OpenAICompatProvider(transport=httpx.MockTransport(handler), backoff_seconds=0)
    with pytest.raises(TransportError):
        provider.generate_response("hi", [])


def test_cancelled_request_is_not_sent():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("request should not be sent")

    cancel = threading.Event()
    cancel.set()
    provider = BedrockProvider(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderCancelled):
        provider.generate_response("hi", [], cancel)


def test_cancel_set_while_request_in_flight():
    cancel = threading.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        cancel.set()
        return httpx.Response(200, json={"content": "Done", "stop_reason": "end_turn"})

    provider = BedrockProvider(api_key="k", transport=httpx.MockTransport(handler))
    with pytest.raises(ProviderCancelled):
        provider.generate_response("hi", [], cancel)


def test_openai_tool_shape_comes_from_schema():
    assert TOOLS[0].openai() == {
        "type": "function",
        "function": {
            "name": "read_file",
            "description": "Read a file",
            "parameters": {"type": "object", "properties": {"path": {"type": "string"}}},
        },
    }
