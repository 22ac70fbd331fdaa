"""End-to-end tests for the chat completions route against a mock upstream."""

import json

import httpx

from conftest import sse_body


def _chat_frames(text: str) -> list:
    frames = []
    for block in text.split("\n\n"):
        if not block.strip():
            continue
        data = block[len("data: "):]
        frames.append(data if data == "[DONE]" else json.loads(data))
    return frames


class _Upstream:
    """MockTransport handler replaying responses and recording requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # The last response repeats; each call gets a fresh copy
        template = self.responses[min(len(self.requests), len(self.responses)) - 1]
        return httpx.Response(
            template.status_code,
            headers=template.headers,
            content=template.content,
        )

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


CHAT_REQUEST = {
    "model": "gpt-test",
    "messages": [
        {"role": "system", "content": "Be brief."},
        {"role": "user", "content": "hello"},
    ],
}


class TestNonStreaming:
    """Tests for buffered chat completions."""

    def test_json_upstream_reply(self, bridge_client):
        upstream = _Upstream(httpx.Response(200, json={
            "id": "resp_1",
            "created_at": 1700000000,
            "model": "gpt-test-2025",
            "output": [
                {"type": "message", "content": [{"type": "output_text", "text": "hi"}]}
            ],
            "usage": {"input_tokens": 5, "output_tokens": 1, "total_tokens": 6},
        }))
        client = bridge_client(upstream)

        response = client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "resp_1"
        assert data["model"] == "gpt-test"
        assert data["choices"][0]["message"] == {"role": "assistant", "content": "hi"}
        assert data["choices"][0]["finish_reason"] == "stop"
        assert data["usage"] == {"prompt_tokens": 5, "completion_tokens": 1, "total_tokens": 6}

        sent = upstream.body()
        assert sent["instructions"] == "Be brief."
        assert sent["input"] == [{"role": "user", "content": "hello"}]
        assert sent["stream"] is False

    def test_sse_upstream_reply_is_collected(self, bridge_client):
        body = sse_body(
            {"type": "response.created", "response": {"id": "resp_2"}},
            {"type": "response.output_text.delta", "delta": "Hel"},
            {"type": "response.output_text.delta", "delta": "lo"},
            {"type": "response.completed", "response": {"id": "resp_2"}},
        )
        client = bridge_client(_Upstream(
            httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})
        ))

        data = client.post("/chat/completions", json=CHAT_REQUEST).json()

        assert data["id"] == "resp_2"
        assert data["choices"][0]["message"]["content"] == "Hello"

    def test_tool_call_reply(self, bridge_client):
        client = bridge_client(_Upstream(httpx.Response(200, json={
            "id": "resp_3",
            "output": [
                {"type": "function_call", "call_id": "call_1", "name": "f", "arguments": "{}"}
            ],
        })))

        data = client.post("/v1/chat/completions", json=CHAT_REQUEST).json()

        choice = data["choices"][0]
        assert choice["finish_reason"] == "tool_calls"
        assert choice["message"]["tool_calls"] == [
            {"id": "call_1", "type": "function", "function": {"name": "f", "arguments": "{}"}}
        ]

    def test_empty_upstream_body_is_502(self, bridge_client):
        client = bridge_client(_Upstream(httpx.Response(200, content=b"")))

        response = client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert response.status_code == 502
        assert response.json()["error"]["type"] == "upstream_error"

    def test_invalid_upstream_json_is_502(self, bridge_client):
        client = bridge_client(_Upstream(
            httpx.Response(200, content=b"{broken", headers={"content-type": "application/json"})
        ))

        response = client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert response.status_code == 502


class TestDialectProbing:
    """Tests for variant fallback through the route."""

    def test_422_422_200_uses_third_variant(self, bridge_client):
        upstream = _Upstream(
            httpx.Response(422, json={"error": {"message": "unknown field"}}),
            httpx.Response(422, json={"error": {"message": "unknown field"}}),
            httpx.Response(200, json={"id": "resp_ok", "output_text": "third time"}),
        )
        client = bridge_client(upstream)
        request = dict(CHAT_REQUEST, max_tokens=32, reasoning_effort="high")

        data = client.post("/v1/chat/completions", json=request).json()

        assert len(upstream.requests) == 3
        assert data["choices"][0]["message"]["content"] == "third time"
        assert "max_output_tokens" in upstream.body(0)
        assert "max_tokens" in upstream.body(1)
        assert "instructions" not in upstream.body(2)
        assert upstream.body(2)["input"][0]["role"] == "developer"

    def test_exhausted_rejections_relay_last_json_error(self, bridge_client):
        upstream = _Upstream(httpx.Response(400, json={"error": {"message": "still wrong"}}))
        client = bridge_client(upstream)

        response = client.post("/v1/chat/completions", json=CHAT_REQUEST)

        # canonical + inlined-instructions variant
        assert len(upstream.requests) == 2
        assert response.status_code == 400
        assert response.json() == {"error": {"message": "still wrong"}}

    def test_non_json_rejection_is_wrapped(self, bridge_client):
        client = bridge_client(_Upstream(httpx.Response(401, text="Unauthorized")))

        response = client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert response.status_code == 401
        assert response.json() == {"error": {"message": "Unauthorized"}}

    def test_transport_failure_is_502(self, bridge_client):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        client = bridge_client(handler)

        response = client.post(
            "/v1/chat/completions", json=dict(CHAT_REQUEST, max_tokens=8)
        )

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["type"] == "upstream_error"
        assert "refused" in error["message"]
        assert len(calls) == 1


class TestAuthorization:
    """Tests for the upstream Authorization header."""

    def test_client_header_forwarded_unmodified(self, bridge_client):
        upstream = _Upstream(httpx.Response(200, json={"output_text": "x"}))
        client = bridge_client(upstream, api_key="sk-configured")

        client.post(
            "/v1/chat/completions",
            json=CHAT_REQUEST,
            headers={"Authorization": "Bearer sk-client"},
        )

        assert upstream.requests[0].headers["authorization"] == "Bearer sk-client"

    def test_configured_key_used_when_client_sends_none(self, bridge_client):
        upstream = _Upstream(httpx.Response(200, json={"output_text": "x"}))
        client = bridge_client(upstream, api_key="sk-configured")

        client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert upstream.requests[0].headers["authorization"] == "Bearer sk-configured"

    def test_no_header_without_key(self, bridge_client):
        upstream = _Upstream(httpx.Response(200, json={"output_text": "x"}))
        client = bridge_client(upstream)

        client.post("/v1/chat/completions", json=CHAT_REQUEST)

        assert "authorization" not in upstream.requests[0].headers


class TestStreaming:
    """Tests for streamed chat completions."""

    def test_stream_is_transcoded(self, bridge_client):
        body = sse_body(
            {"type": "response.output_text.delta", "delta": "Hi"},
            {
                "type": "response.function_call_arguments.delta",
                "call_id": "call_1",
                "name": "f",
                "delta": "{}",
            },
            {
                "type": "response.completed",
                "response": {"usage": {"input_tokens": 2, "output_tokens": 3, "total_tokens": 5}},
            },
        )
        upstream = _Upstream(
            httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})
        )
        client = bridge_client(upstream)

        response = client.post("/v1/chat/completions", json=dict(CHAT_REQUEST, stream=True))

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        frames = _chat_frames(response.text)
        assert frames[0]["choices"][0]["delta"] == {"content": "Hi"}
        assert frames[0]["id"] == "chatcmpl-test-1"
        assert frames[1]["choices"][0]["delta"]["tool_calls"][0]["id"] == "call_1"
        assert frames[2]["choices"][0]["finish_reason"] == "tool_calls"
        assert frames[2]["usage"]["total_tokens"] == 5
        assert frames[3] == "[DONE]"
        assert upstream.body()["stream"] is True

    def test_stream_without_completion_still_ends(self, bridge_client):
        body = sse_body({"type": "response.output_text.delta", "delta": "cut"})
        client = bridge_client(_Upstream(
            httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})
        ))

        response = client.post("/v1/chat/completions", json=dict(CHAT_REQUEST, stream=True))

        frames = _chat_frames(response.text)
        assert frames[-1] == "[DONE]"
        assert frames.count("[DONE]") == 1


class TestInvalidRequests:
    """Tests for malformed client requests."""

    def test_invalid_json_is_400(self, bridge_client):
        upstream = _Upstream(httpx.Response(200, json={}))
        client = bridge_client(upstream)

        response = client.post(
            "/v1/chat/completions",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["type"] == "invalid_request_error"
        assert error["code"] == "invalid_json"
        assert upstream.requests == []

    def test_non_object_body_is_400(self, bridge_client):
        client = bridge_client(_Upstream(httpx.Response(200, json={})))

        response = client.post("/v1/chat/completions", json=[1, 2])

        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request_error"
