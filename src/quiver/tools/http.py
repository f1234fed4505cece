"""
Web effector for Quiver.

This module provides the built-in fetch_url tool (category "web"), used for
documentation lookup. It returns the response body as text.

Limits:
    - Requests time out after the configured number of seconds
    - Bodies larger than max_response_bytes are rejected, checked against
      Content-Length first and again while streaming
"""

from urllib.parse import urlparse

import httpx

from quiver.schema import HttpSettings, QuiverConfig, ToolSpec
from quiver.tools.base import ToolOutput
from quiver.tools.compiler import ToolCompiler, default_compiler

CATEGORY = "web"


class FetchEffector:
    """
    Fetches URLs over HTTP(S).

    Attributes:
        settings: Timeout and size limits
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        settings: HttpSettings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings or HttpSettings()
        self.transport = transport

    def fetch_url(self, url: str) -> ToolOutput:
        """Fetch a URL and return its body as text."""
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return ToolOutput.fail(f"Only absolute http(s) URLs are supported: {url}", url=url)

        timeout = self.settings.timeout_seconds
        max_bytes = self.settings.max_response_bytes
        try:
            with httpx.Client(timeout=timeout, follow_redirects=True, transport=self.transport) as client:
                with client.stream("GET", url) as response:
                    content_length = response.headers.get("content-length")
                    if content_length and content_length.isdigit() and int(content_length) > max_bytes:
                        return ToolOutput.fail(
                            f"Response too large: {content_length} bytes (max: {max_bytes})",
                            url=url,
                            max_bytes=max_bytes,
                        )

                    # Read body with size limit
                    chunks: list[bytes] = []
                    total = 0
                    for chunk in response.iter_bytes(chunk_size=8192):
                        total += len(chunk)
                        if total > max_bytes:
                            return ToolOutput.fail(
                                f"Response exceeded size limit: {total} bytes (max: {max_bytes})",
                                url=url,
                                max_bytes=max_bytes,
                            )
                        chunks.append(chunk)

                    body = b"".join(chunks).decode(response.encoding or "utf-8", errors="replace")
                    if response.is_error:
                        return ToolOutput.fail(
                            f"HTTP {response.status_code} fetching {url}",
                            url=url,
                            status_code=response.status_code,
                        )
                    return ToolOutput.ok(
                        body,
                        url=url,
                        final_url=str(response.url),
                        status_code=response.status_code,
                        body_size=total,
                    )
        except httpx.TimeoutException:
            return ToolOutput.fail(f"Request timed out after {timeout} seconds", url=url, timeout=timeout)
        except httpx.TooManyRedirects:
            return ToolOutput.fail("Too many redirects", url=url)
        except httpx.RequestError as e:
            return ToolOutput.fail(f"Request failed: {e}", url=url, error_type=type(e).__name__)


def register_http_tools(
    compiler: ToolCompiler | None = None,
    config: QuiverConfig | None = None,
    transport: httpx.BaseTransport | None = None,
) -> list[ToolSpec]:
    """Compile the web tools into the compiler's registry."""
    compiler = compiler or default_compiler
    config = config or QuiverConfig()
    effector = FetchEffector(config.http, transport)

    return [
        compiler.compile(
            effector.fetch_url,
            description="Fetch a web page or document over HTTP(S) and return its text.",
            category=CATEGORY,
            tags=["read", "docs"],
            args=[{"name": "url", "type": "string", "description": "Absolute http(s) URL"}],
        ),
    ]
