# -------------------------------------------------------------------------------
# Name:         metadata_client
# Purpose:      Async client for the media metadata extraction service.
#
# Created:      2026-10-18
# Licence:      MIT
# -------------------------------------------------------------------------------
"""Async client for the metadata extraction service.

Wraps :mod:`aiohttp` for the two endpoints the bridge talks to:

- ``POST /api/metadata`` - multipart upload with one ``file`` field; a
  2xx response carries a JSON object (the metadata result), a failure
  carries ``{"error": "..."}``.
- ``GET /api/version`` - ``{"version": "..."}``, display only.

Every failure (network, timeout, non-2xx, non-JSON or non-object body)
is raised as :class:`~intelbridge.errors.MetadataServiceError`; for
non-2xx responses the server's ``error`` string is the message, verbatim.

Session lifecycle
-----------------
A client lazily opens one ``aiohttp.ClientSession`` and reuses it. Use it
as an async context manager or call :meth:`MetadataClient.close`.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from intelbridge.__version__ import __version__
from intelbridge.constants import (
    DEFAULT_METADATA_BASE_URL,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_UPLOAD_FILENAME,
    METADATA_PATH,
    VERSION_PATH,
)
from intelbridge.errors import MetadataServiceError

log = logging.getLogger("intelbridge.metadata_client")

MetadataResult = Dict[str, Any]


class MetadataClient:
    """Talks to the metadata extraction service."""

    def __init__(self, base_url: str = DEFAULT_METADATA_BASE_URL,
                 timeout: float = DEFAULT_REQUEST_TIMEOUT,
                 session: Optional[aiohttp.ClientSession] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    async def __aenter__(self) -> "MetadataClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
                headers={"User-Agent": f"intelbridge/{__version__}"},
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    @staticmethod
    def _decode(body: str, status: int) -> Any:
        try:
            return json.loads(body)
        except (TypeError, ValueError):
            if 200 <= status < 300:
                raise MetadataServiceError(
                    "Malformed response from metadata service", status)
            raise MetadataServiceError(
                f"Metadata service returned HTTP {status}", status)

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = self.base_url + path
        session = self._get_session()
        try:
            async with session.request(method, url, **kwargs) as resp:
                status = resp.status
                raw = await resp.read()
        except asyncio.TimeoutError:
            log.debug("Timeout talking to %s", url)
            raise MetadataServiceError(f"Metadata service timed out: {url}")
        except aiohttp.ClientError as exc:
            log.debug("HTTP error talking to %s: %s", url, exc)
            raise MetadataServiceError(f"Metadata service unreachable: {exc}")

        body = raw.decode("utf-8", errors="replace")
        payload = self._decode(body, status)
        if not 200 <= status < 300:
            message = payload.get("error") if isinstance(payload, dict) else None
            if not isinstance(message, str) or not message:
                message = f"Metadata service returned HTTP {status}"
            raise MetadataServiceError(message, status)
        return payload

    async def extract(self, data: bytes, filename: str = DEFAULT_UPLOAD_FILENAME,
                      content_type: str = "application/octet-stream") -> MetadataResult:
        """Upload *data* and return the metadata result mapping."""
        form = aiohttp.FormData()
        form.add_field("file", data, filename=filename, content_type=content_type)
        log.debug("Uploading %d bytes as %s", len(data), filename)

        payload = await self._request("POST", METADATA_PATH, data=form)
        if not isinstance(payload, dict):
            raise MetadataServiceError(
                "Malformed response from metadata service: expected a JSON object")
        return payload

    async def version(self) -> str:
        payload = await self._request("GET", VERSION_PATH)
        if not isinstance(payload, dict) or "version" not in payload:
            raise MetadataServiceError(
                "Malformed response from metadata service: missing version")
        return str(payload["version"])
