"""
Media re-hosting: copy provider result files into first-party storage so that
provider URLs (which expire) are never the system of record.
"""
import logging
import os
import secrets
import time
from urllib.parse import urlparse

import httpx

from genr8.storage.base import Storage


logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "png"


def media_filename(url: str) -> str:
    """<unix-ms>-<random>.<ext>, extension taken from the source URL path."""
    ext = os.path.splitext(urlparse(url).path)[1].lstrip(".").lower()
    if not ext or len(ext) > 5 or not ext.isalnum():
        ext = DEFAULT_EXTENSION
    return f"{int(time.time() * 1000)}-{secrets.token_hex(4)}.{ext}"


class MediaRehoster:
    def __init__(self, storage: Storage, timeout: float = 30.0, transport: httpx.BaseTransport | None = None) -> None:
        self.storage = storage
        self.timeout = timeout
        self.transport = transport

    def rehost(self, url: str) -> str:
        """Download one URL and store it byte for byte. Raises on any failure."""
        with httpx.Client(timeout=self.timeout, transport=self.transport, follow_redirects=True) as client:
            response = client.get(url)
            response.raise_for_status()
            content = response.content
        content_type = response.headers.get("content-type")
        return self.storage.save_media(media_filename(url), content, content_type)

    def rehost_all(self, urls: list[str]) -> list[str]:
        """Re-host each URL; a URL that cannot be copied is returned unchanged."""
        result = []
        for url in urls:
            try:
                result.append(self.rehost(url))
            except (httpx.HTTPError, OSError, ValueError) as e:
                logger.warning("media_rehost_failed", extra={"url": url, "error": str(e)})
                result.append(url)
        return result
