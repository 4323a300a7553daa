# galaxy_asm/transport.py
"""
HTTP transport for ``send``.

POSTs the modulated request bits as the body and expects HTTP 200 with the
reply bits as the body. Configuration falls back to the environment:

    GALAXY_SERVER_URL    endpoint URL
    GALAXY_API_KEY       appended as ?apiKey=... when set
    GALAXY_HTTP_TIMEOUT  seconds (default 30)
"""

from __future__ import annotations

import os
import urllib.error
import urllib.parse
import urllib.request
from typing import List, Optional

from galaxy_asm.errors import TransportError

DEFAULT_TIMEOUT = float(os.environ.get("GALAXY_HTTP_TIMEOUT", "30"))


def _with_api_key(url: str, api_key: Optional[str]) -> str:
    if not api_key:
        return url
    sep = "&" if urllib.parse.urlparse(url).query else "?"
    return f"{url}{sep}{urllib.parse.urlencode({'apiKey': api_key})}"


class HttpTransport:
    def __init__(
        self,
        url: Optional[str] = None,
        *,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        url = url or os.environ.get("GALAXY_SERVER_URL")
        if not url:
            raise TransportError("no server URL given and GALAXY_SERVER_URL is not set")
        api_key = api_key if api_key is not None else os.environ.get("GALAXY_API_KEY")
        self.url = _with_api_key(url, api_key)
        self.timeout = DEFAULT_TIMEOUT if timeout is None else timeout

    def send(self, bits: str) -> str:
        req = urllib.request.Request(
            self.url,
            data=bits.encode("ascii"),
            headers={"Content-Type": "text/plain"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                status = resp.status
                body = resp.read()
        except urllib.error.HTTPError as e:
            raise TransportError(f"server answered HTTP {e.code}", status=e.code) from e
        except (urllib.error.URLError, OSError) as e:
            raise TransportError(f"request to {self.url} failed: {e}") from e

        if status != 200:
            raise TransportError(f"server answered HTTP {status}", status=status)
        try:
            return body.decode("ascii").strip()
        except UnicodeDecodeError as e:
            raise TransportError("reply body is not ASCII bits") from e


class RecordingTransport:
    """
    Canned replies, in order; records every request.

    Useful for replaying a captured session without a server.
    """

    def __init__(self, replies: List[str]) -> None:
        self._replies = list(replies)
        self.requests: List[str] = []

    def send(self, bits: str) -> str:
        self.requests.append(bits)
        if not self._replies:
            raise TransportError(f"no canned reply left for request {bits!r}")
        return self._replies.pop(0)
