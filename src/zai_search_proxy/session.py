import logging
import time
from dataclasses import dataclass
from typing import Any, Literal

import anyio
import httpx

from zai_search_proxy.errors import (
    SearchResponseParseError,
    UpstreamHTTPError,
    ZaiProxyError,
)
from zai_search_proxy.settings import DEFAULT_ZAI_API_URL
from zai_search_proxy.sse import decode_result_text, extract_result_text, parse_event_stream

logger = logging.getLogger(__name__)

CLIENT_NAME = "zai-mcp-proxy"
CLIENT_VERSION = "1.0.0"
SEARCH_TOOL_NAME = "webSearchPrime"
SESSION_HEADER = "Mcp-Session-Id"

ContentSize = Literal["small", "medium", "large"]


@dataclass(frozen=True)
class SearchOptions:
    content_size: ContentSize = "medium"
    location: str = "us"


class ZaiSession:
    """Holds the single upstream MCP session and runs web searches through it.

    The session is opened lazily by the first ``search`` and reused until ``close``.
    """

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_ZAI_API_URL,
        *,
        protocol_version: str = "2024-11-05",
        client: httpx.AsyncClient | None = None,
        timeout: float = 60.0,
    ):
        self._api_key = api_key
        self._api_url = api_url
        self._protocol_version = protocol_version
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0))
        )
        self._init_lock = anyio.Lock()
        self._last_request_id = 0

        self.session_id: str | None = None
        self.initialized = False

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json, text/event-stream",
            "Authorization": f"Bearer {self._api_key}",
        }
        if self.session_id:
            headers[SESSION_HEADER] = self.session_id
        return headers

    def _next_request_id(self) -> int:
        # Millisecond timestamp, bumped when two calls land in the same millisecond
        request_id = max(int(time.time() * 1000), self._last_request_id + 1)
        self._last_request_id = request_id
        return request_id

    async def _request(self, method: str, payload: dict | None = None) -> str:
        try:
            response = await self._client.request(
                method, self._api_url, headers=self._headers(), json=payload
            )
        except httpx.HTTPError as e:
            raise UpstreamHTTPError(f"Request to Z.AI failed: {e}") from e
        if not response.is_success:
            raise UpstreamHTTPError(
                f"HTTP {response.status_code}: {response.text}",
                status_code=response.status_code,
                body=response.text,
            )
        return response.text

    async def initialize(self) -> None:
        async with self._init_lock:
            if self.initialized:
                return

            payload = {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "initialize",
                "params": {
                    "protocolVersion": self._protocol_version,
                    "capabilities": {
                        "roots": {"listChanged": True},
                        "sampling": {},
                    },
                    "clientInfo": {"name": CLIENT_NAME, "version": CLIENT_VERSION},
                },
            }
            try:
                body = await self._request("POST", payload)
            except ZaiProxyError as e:
                logger.error("Z.AI session initialization error: %s", e)
                raise

            message = parse_event_stream(body)
            if message is None:
                logger.warning("Z.AI initialize response had no JSON payload")
                return

            session_id = message.get("id")
            self.session_id = str(session_id) if session_id is not None else "1"
            self.initialized = True
            logger.info("Z.AI session initialized  session_id=%s", self.session_id)

            await self._send_initialized_notification()

    async def _send_initialized_notification(self) -> None:
        payload = {
            "jsonrpc": "2.0",
            "method": "notifications/initialized",
            "params": {},
        }
        try:
            await self._request("POST", payload)
        except ZaiProxyError as e:
            logger.warning("Warning when sending initialization notification: %s", e)

    async def search(self, query: str, options: SearchOptions | None = None) -> Any:
        options = options or SearchOptions()
        if not self.initialized:
            await self.initialize()

        payload = {
            "jsonrpc": "2.0",
            "id": self._next_request_id(),
            "method": "tools/call",
            "params": {
                "name": SEARCH_TOOL_NAME,
                "arguments": {
                    "search_query": query,
                    "content_size": options.content_size,
                    "location": options.location,
                },
            },
        }
        logger.info(
            "Calling Z.AI search  query=%r  content_size=%s  location=%s",
            query,
            options.content_size,
            options.location,
        )
        try:
            body = await self._request("POST", payload)
            text = extract_result_text(parse_event_stream(body))
            if text is None:
                raise SearchResponseParseError()
            return decode_result_text(text)
        except ZaiProxyError as e:
            logger.error("Search error: %s", e)
            raise

    async def close(self) -> None:
        if self.session_id:
            try:
                await self._request("DELETE")
            except ZaiProxyError as e:
                logger.warning("Warning when closing session: %s", e)
            self.session_id = None
            self.initialized = False
        if self._owns_client:
            await self._client.aclose()
