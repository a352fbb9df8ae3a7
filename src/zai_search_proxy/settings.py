import argparse
from typing import Literal, Sequence

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ZAI_API_URL = "https://api.z.ai/api/mcp/web_search_prime/mcp"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    zai_api_key: str
    zai_api_url: str = DEFAULT_ZAI_API_URL
    zai_protocol_version: str = "2024-11-05"

    # "text" is the compact listing, "xml" the escaped block with richer args
    output_format: Literal["text", "xml"] = "xml"

    request_timeout: float = 60.0
    close_timeout: float = 5.0
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="zai-search-proxy",
        description="MCP stdio proxy for Z.AI Web Search Prime.",
    )
    parser.add_argument(
        "--api-key",
        dest="api_key",
        default=None,
        help="Z.AI API key (falls back to the ZAI_API_KEY environment variable)",
    )
    parser.add_argument(
        "--output-format",
        dest="output_format",
        choices=["text", "xml"],
        default=None,
        help="Tool result rendering (default: xml)",
    )
    return parser.parse_args(argv)


def load_settings(argv: Sequence[str] | None = None) -> Settings:
    """Build settings from the environment, with command-line values taking precedence.

    Raises ``pydantic.ValidationError`` when no API key is available from either source.
    """
    args = parse_args(argv)
    overrides = {}
    if args.api_key:
        overrides["zai_api_key"] = args.api_key
    if args.output_format:
        overrides["output_format"] = args.output_format
    return Settings(**overrides)  # type: ignore[arg-type]
