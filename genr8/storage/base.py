from abc import ABC, abstractmethod


class Storage(ABC):
    @abstractmethod
    def save_media(self, filename: str, content: bytes, content_type: str | None = None) -> str:
        """Persist bytes unchanged; returns the public URL."""
        raise NotImplementedError

    @abstractmethod
    def read_media(self, filename: str) -> bytes:
        raise NotImplementedError
