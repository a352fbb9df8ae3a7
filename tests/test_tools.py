import json

import pytest

from conftest import FakeUpstream, tool_text_body
from zai_search_proxy.formatting import TextFormatter, XmlFormatter
from zai_search_proxy.session import SearchOptions, ZaiSession
from zai_search_proxy.tools import SearchTool

pytestmark = pytest.mark.anyio


class FakeSession:
    def __init__(self, results=None, error: Exception | None = None):
        self.results = results
        self.error = error
        self.calls: list[tuple[str, SearchOptions]] = []

    async def search(self, query, options=None):
        self.calls.append((query, options))
        if self.error:
            raise self.error
        return self.results


def make_results(n: int) -> list[dict]:
    return [
        {"title": f"Result {i}", "link": f"https://example.com/{i}", "content": f"Body {i}"}
        for i in range(n)
    ]


def text_of(result) -> str:
    return result.content[0].text


async def test_defaults_are_applied():
    session = FakeSession(results=[])
    await SearchTool(session, XmlFormatter()).call({"search_query": "rust"})

    assert session.calls == [("rust", SearchOptions(content_size="medium", location="us"))]


async def test_truncates_to_max_results_in_order():
    session = FakeSession(results=make_results(10))
    result = await SearchTool(session, XmlFormatter()).call(
        {"search_query": "rust", "max_results": 3}
    )

    assert not result.isError
    text = text_of(result)
    assert text.count("<result ") == 3
    assert text.index("Result 0") < text.index("Result 1") < text.index("Result 2")
    assert "Result 3" not in text
    assert result.meta["totalResults"] == 10
    assert result.meta["returnedResults"] == 3


async def test_text_formatter_uses_fixed_top_five():
    session = FakeSession(results=make_results(8))
    result = await SearchTool(session, TextFormatter()).call(
        {"search_query": "rust", "max_results": 2}
    )

    assert result.meta["returnedResults"] == 5
    assert text_of(result).startswith('🔍 Found 8 results for: "rust"')


@pytest.mark.parametrize("payload", [None, {"results": []}, "nothing", 42])
async def test_non_list_result_is_treated_as_empty(payload):
    session = FakeSession(results=payload)
    result = await SearchTool(session, XmlFormatter()).call({"search_query": "rust"})

    assert not result.isError
    assert result.meta["totalResults"] == 0
    assert "<result " not in text_of(result)


async def test_session_error_becomes_error_result():
    session = FakeSession(error=RuntimeError("HTTP 502: bad gateway"))
    result = await SearchTool(session, XmlFormatter()).call({"search_query": "rust"})

    assert result.isError
    assert text_of(result) == "❌ Search error: HTTP 502: bad gateway"


@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"search_query": "   "},
        {"search_query": "rust", "content_size": "huge"},
        {"search_query": "rust", "max_results": 0},
        {"search_query": "rust", "max_results": 21},
        {"search_query": "rust", "max_results": "many"},
        {"search_query": "rust", "max_results": 3.7},
        {"search_query": "rust", "max_results": True},
        {"search_query": "rust", "full_description": "false"},
        {"search_query": "rust", "full_description": 1},
    ],
)
async def test_invalid_arguments_become_error_results(arguments):
    session = FakeSession(results=[])
    result = await SearchTool(session, XmlFormatter()).call(arguments)

    assert result.isError
    assert session.calls == []


async def test_full_description_keeps_content():
    session = FakeSession(results=[{"title": "T", "link": "L", "content": "z" * 400}])
    result = await SearchTool(session, XmlFormatter()).call(
        {"search_query": "rust", "full_description": True}
    )

    assert f"<description>{'z' * 400}</description>" in text_of(result)


def test_definition_schema_follows_formatter():
    rich = SearchTool(FakeSession(), XmlFormatter()).definition()
    simple = SearchTool(FakeSession(), TextFormatter()).definition()

    assert rich.name == simple.name == "webSearchPrime"
    assert rich.inputSchema["required"] == ["search_query"]
    assert rich.inputSchema["properties"]["max_results"]["minimum"] == 1
    assert rich.inputSchema["properties"]["max_results"]["maximum"] == 20
    assert rich.inputSchema["properties"]["full_description"]["default"] is False
    assert set(simple.inputSchema["properties"]) == {"search_query", "content_size", "location"}
    assert simple.inputSchema["properties"]["content_size"]["enum"] == ["small", "medium", "large"]


async def test_end_to_end_against_stub_upstream():
    results = [
        {"title": "Rust Programming Language", "link": "https://www.rust-lang.org", "content": "r" * 500},
        {"title": "Rust (programming language) - Wikipedia", "link": "https://en.wikipedia.org/wiki/Rust", "content": "short"},
    ]
    upstream = FakeUpstream(search_body=tool_text_body(json.dumps(results)))
    session = ZaiSession("key", "https://upstream.test/mcp", client=upstream.client())
    tool = SearchTool(session, TextFormatter())

    result = await tool.call(
        {"search_query": "rust programming language", "content_size": "medium", "location": "us"}
    )

    text = text_of(result)
    assert not result.isError
    assert text.startswith('🔍 Found 2 results for: "rust programming language"')
    assert "1. Rust Programming Language" in text
    assert "2. Rust (programming language) - Wikipedia" in text
    assert "🔗 https://www.rust-lang.org" in text
    assert f"📝 {'r' * 200}..." in text
    assert "r" * 201 not in text
    assert "📝 short" in text
    assert "3. " not in text


async def test_explicit_null_max_results_uses_default():
    session = FakeSession(results=make_results(8))
    result = await SearchTool(session, XmlFormatter()).call(
        {"search_query": "rust", "max_results": None}
    )

    assert result.meta["returnedResults"] == 5
