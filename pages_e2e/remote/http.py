"""Thin aiohttp wrapper that turns every exchange into an HttpResponse.

Transport failures are normalized into ``RemoteCallError`` here so callers
deal with a single error type at every remote-call boundary.
"""

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import aiohttp

from ..core.errors import RemoteCallError
from ..core.log import Logger, get_logger


@dataclass(frozen=True)
class HttpResponse:
    """Fully read HTTP response."""

    status: int
    reason: str
    text: str
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Any:
        return json.loads(self.text)


class HttpClient:
    """Shared HTTP client; owns one aiohttp session for the whole run."""

    def __init__(
        self,
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
        logger: Optional[Logger] = None,
    ) -> None:
        self._timeout = timeout
        self._session = session
        self._owns_session = session is None
        self._logger = logger or get_logger(__name__)

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout)
            )
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Dict[str, str]] = None,
        json_body: Any = None,
    ) -> HttpResponse:
        """Perform a request and read the full body.

        Raises:
            RemoteCallError: If no response could be obtained
        """
        session = self._get_session()
        self._logger.debug("%s %s", method, url)
        try:
            async with session.request(
                method, url, headers=headers, json=json_body
            ) as response:
                # Bodies are not guaranteed to be valid in their declared charset
                text = await response.text(errors="replace")
                return HttpResponse(
                    status=response.status,
                    reason=response.reason or "",
                    text=text,
                    headers=dict(response.headers),
                )
        except asyncio.TimeoutError as e:
            raise RemoteCallError(f"{method} {url} timed out after {self._timeout:g}s") from e
        except (aiohttp.ClientError, OSError) as e:
            raise RemoteCallError(f"{method} {url} failed: {e}") from e

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None
