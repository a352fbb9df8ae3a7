import logging
from typing import Any, Protocol

from mcp.types import CallToolResult, TextContent, Tool

from zai_search_proxy.formatting import SearchResult, TextFormatter, XmlFormatter
from zai_search_proxy.session import SEARCH_TOOL_NAME, SearchOptions

logger = logging.getLogger(__name__)

CONTENT_SIZES = ("small", "medium", "large")
MAX_RESULTS_LIMIT = 20
RESULT_SOURCE = "zai-web-search-prime"


class SearchSession(Protocol):
    async def search(self, query: str, options: SearchOptions | None = None) -> Any: ...


class SearchTool:
    """The ``webSearchPrime`` tool: argument handling, upstream call and rendering."""

    name = SEARCH_TOOL_NAME

    def __init__(self, session: SearchSession, formatter: TextFormatter | XmlFormatter):
        self._session = session
        self._formatter = formatter

    def definition(self) -> Tool:
        properties: dict[str, Any] = {
            "search_query": {"type": "string", "description": "Search query"},
            "content_size": {
                "type": "string",
                "enum": list(CONTENT_SIZES),
                "default": "medium",
                "description": "Content size of results (default: medium)",
            },
            "location": {
                "type": "string",
                "default": "us",
                "description": "Search location (default: us)",
            },
        }
        if self._formatter.supports_rich_arguments:
            properties["max_results"] = {
                "type": "integer",
                "minimum": 1,
                "maximum": MAX_RESULTS_LIMIT,
                "default": self._formatter.default_limit,
                "description": "Maximum number of results to return (1-20, default: 5)",
            }
            properties["full_description"] = {
                "type": "boolean",
                "default": False,
                "description": "Return full result descriptions instead of 200-character snippets",
            }
        return Tool(
            name=self.name,
            title="Z.AI Web Search Prime",
            description="Z.AI Web Search Prime - fast and accurate search engine",
            inputSchema={
                "type": "object",
                "properties": properties,
                "required": ["search_query"],
            },
        )

    def _parse_arguments(self, arguments: dict) -> tuple[str, SearchOptions, int, bool]:
        query = arguments.get("search_query")
        if not isinstance(query, str) or not query.strip():
            raise ValueError("search_query is required")

        content_size = arguments.get("content_size") or "medium"
        if content_size not in CONTENT_SIZES:
            raise ValueError(
                f"content_size must be one of {', '.join(CONTENT_SIZES)}, got {content_size!r}"
            )
        location = arguments.get("location") or "us"

        limit = self._formatter.default_limit
        full_description = False
        if self._formatter.supports_rich_arguments:
            max_results = arguments.get("max_results")
            if max_results is not None:
                if not isinstance(max_results, int) or isinstance(max_results, bool):
                    raise ValueError(f"max_results must be an integer, got {max_results!r}")
                limit = max_results
            if not 1 <= limit <= MAX_RESULTS_LIMIT:
                raise ValueError(
                    f"max_results must be between 1 and {MAX_RESULTS_LIMIT}, got {limit}"
                )
            full_description = arguments.get("full_description", False)
            if not isinstance(full_description, bool):
                raise ValueError(
                    f"full_description must be a boolean, got {full_description!r}"
                )

        return query, SearchOptions(content_size, str(location)), limit, full_description

    async def call(self, arguments: dict | None) -> CallToolResult:
        try:
            query, options, limit, full_description = self._parse_arguments(arguments or {})
            logger.info("webSearchPrime: %r  limit=%d", query, limit)

            raw = await self._session.search(query, options)
            if not isinstance(raw, list):
                logger.warning("Upstream returned %s instead of a list", type(raw).__name__)
                raw = []

            total = len(raw)
            results = [SearchResult.from_dict(item) for item in raw[:limit] if isinstance(item, dict)]
            text = self._formatter.render(query, results, total, full_description)
        except Exception as e:
            logger.error("webSearchPrime tool error: %s", e)
            return CallToolResult(
                content=[TextContent(type="text", text=f"❌ Search error: {e}")],
                isError=True,
            )

        return CallToolResult(
            content=[TextContent(type="text", text=text)],
            isError=False,
            _meta={
                "totalResults": total,
                "returnedResults": len(results),
                "query": query,
                "source": RESULT_SOURCE,
            },
        )
