"""
Rendering of search results into tool response text.

Two layouts are available: a compact numbered listing (``text``) and an escaped
tagged block (``xml``) that also honours ``max_results`` and ``full_description``.
"""
from dataclasses import dataclass
from typing import Any
from xml.sax.saxutils import escape

SNIPPET_LENGTH = 200

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}


@dataclass(frozen=True)
class SearchResult:
    title: str
    link: str
    content: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SearchResult":
        return cls(
            title=str(data.get("title") or ""),
            link=str(data.get("link") or ""),
            content=str(data.get("content") or ""),
        )


def truncate(text: str, limit: int = SNIPPET_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def escape_xml(value: str) -> str:
    """Replace ``& < > " '`` with their named entities, leaving everything else alone."""
    return escape(value, _XML_ENTITIES)


class TextFormatter:
    name = "text"
    supports_rich_arguments = False
    default_limit = 5

    def render(
        self,
        query: str,
        results: list[SearchResult],
        total: int,
        full_description: bool = False,
    ) -> str:
        lines = [f'🔍 Found {total} results for: "{query}"', ""]
        for index, result in enumerate(results, start=1):
            lines.append(f"{index}. {result.title or 'No title'}")
            lines.append(f"   🔗 {result.link or 'No link'}")
            if result.content:
                lines.append(f"   📝 {truncate(result.content)}")
            lines.append("")
        return "\n".join(lines)


class XmlFormatter:
    name = "xml"
    supports_rich_arguments = True
    default_limit = 5

    def render(
        self,
        query: str,
        results: list[SearchResult],
        total: int,
        full_description: bool = False,
    ) -> str:
        lines = [
            f'<search_results query="{escape_xml(query)}" '
            f'total_results="{total}" returned="{len(results)}">'
        ]
        for index, result in enumerate(results, start=1):
            description = result.content if full_description else truncate(result.content)
            lines.extend(
                [
                    f'<result index="{index}">',
                    f"<title>{escape_xml(result.title)}</title>",
                    f"<link>{escape_xml(result.link)}</link>",
                    f"<description>{escape_xml(description)}</description>",
                    "</result>",
                ]
            )
        lines.append("</search_results>")
        return "\n".join(lines)


OUTPUT_FORMATS = {
    TextFormatter.name: TextFormatter,
    XmlFormatter.name: XmlFormatter,
}


def get_formatter(name: str) -> TextFormatter | XmlFormatter:
    try:
        return OUTPUT_FORMATS[name]()
    except KeyError:
        raise ValueError(f"Unknown output format: {name}") from None
