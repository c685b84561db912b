import os

from genr8.core.config import settings
from genr8.storage.base import Storage


class LocalStorage(Storage):
    """Writes media under storage_base_path; served by the /media static mount."""

    def __init__(self, base_path: str | None = None, public_base_url: str | None = None) -> None:
        self.base_path = base_path or settings.storage_base_path
        self.public_base_url = (public_base_url or settings.media_public_base_url).rstrip("/")

    def _path(self, filename: str) -> str:
        name = os.path.basename(filename)
        if not name or name != filename:
            raise ValueError(f"Invalid media filename: {filename!r}")
        return os.path.join(self.base_path, name)

    def save_media(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        os.makedirs(self.base_path, exist_ok=True)
        with open(self._path(filename), "wb") as f:
            f.write(content)
        return f"{self.public_base_url}/{filename}"

    def read_media(self, filename: str) -> bytes:
        with open(self._path(filename), "rb") as f:
            return f.read()
