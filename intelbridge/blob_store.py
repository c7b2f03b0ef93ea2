"""Ephemeral in-memory blob references.

The conversation renderer exposes decrypted media through ``blob:`` URLs
that point at bytes held in memory and can be revoked at any time. The
store hands out such URLs and resolves them back to their bytes; a
revoked or unknown reference fails with
:class:`~intelbridge.errors.BlobResolutionError`.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict

from intelbridge.errors import BlobResolutionError

log = logging.getLogger("intelbridge.blob_store")


@dataclass(frozen=True)
class Blob:
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


class BlobStore:
    """Registry of ``blob:`` URLs and the bytes behind them."""

    def __init__(self, origin: str = "null") -> None:
        self.origin = origin
        self._blobs: Dict[str, Blob] = {}

    def create_object_url(self, data: bytes,
                          content_type: str = "application/octet-stream") -> str:
        url = f"blob:{self.origin}/{uuid.uuid4()}"
        self._blobs[url] = Blob(bytes(data), content_type)
        return url

    def revoke(self, url: str) -> None:
        self._blobs.pop(url, None)

    def __contains__(self, url: str) -> bool:
        return url in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def resolve(self, url: str) -> Blob:
        if not isinstance(url, str) or not url.startswith("blob:"):
            raise BlobResolutionError(str(url), "not a blob reference")
        blob = self._blobs.get(url)
        if blob is None:
            raise BlobResolutionError(url)
        return blob

    async def fetch(self, url: str) -> Blob:
        """Resolve *url* to its bytes.

        Yields to the event loop once, like any other fetch, so callers can
        rely on it being a suspension point.
        """
        await asyncio.sleep(0)
        blob = self.resolve(url)
        log.debug("Resolved %s (%d bytes)", url, blob.size)
        return blob
