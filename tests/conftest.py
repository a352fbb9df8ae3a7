"""Pytest configuration and shared fixtures."""

import json

import httpx
import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"


def sse_body(payload) -> str:
    """Frame a JSON-RPC message the way the upstream does."""
    return f"event: message\ndata: {json.dumps(payload)}\n\n"


def tool_text_body(text: str) -> str:
    return sse_body(
        {
            "jsonrpc": "2.0",
            "id": 2,
            "result": {"content": [{"type": "text", "text": text}]},
        }
    )


class FakeUpstream:
    """Stand-in for the Z.AI MCP endpoint, served through ``httpx.MockTransport``."""

    def __init__(self, search_body: str = "", session_id=7):
        self.requests: list[httpx.Request] = []
        self.init_status = 200
        self.init_body = sse_body(
            {"jsonrpc": "2.0", "id": session_id, "result": {"protocolVersion": "2024-11-05"}}
        )
        self.notify_status = 202
        self.search_status = 200
        self.search_body = search_body
        self.delete_status = 200
        self.connect_error = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.connect_error:
            raise httpx.ConnectError("connection refused", request=request)
        if request.method == "DELETE":
            return httpx.Response(self.delete_status)

        method = json.loads(request.content)["method"]
        if method == "initialize":
            return httpx.Response(self.init_status, text=self.init_body)
        if method == "notifications/initialized":
            return httpx.Response(self.notify_status)
        return httpx.Response(self.search_status, text=self.search_body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def methods(self) -> list[str]:
        return [
            "DELETE" if r.method == "DELETE" else json.loads(r.content)["method"]
            for r in self.requests
        ]


@pytest.fixture
def upstream():
    return FakeUpstream()
