class ZaiProxyError(Exception):
    """Base class for failures talking to the Z.AI upstream."""


class UpstreamHTTPError(ZaiProxyError):
    """Connection failure or non-2xx response from the upstream endpoint."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SearchResponseParseError(ZaiProxyError):
    def __init__(self, message: str = "Failed to parse search response"):
        super().__init__(message)


class SearchResultJSONError(ZaiProxyError):
    pass
