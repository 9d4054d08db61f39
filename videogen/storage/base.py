"""Object storage interface for generated videos."""

from abc import ABC, abstractmethod
from datetime import timedelta


class ObjectStorage(ABC):

    @abstractmethod
    def upload(self, data: bytes, path: str, content_type: str = "video/mp4") -> str:
        """Store data at path. Returns a locator for sign_url()."""
        ...

    @abstractmethod
    def sign_url(self, locator: str, ttl_seconds: int) -> str:
        """Return a time-limited retrieval URL for locator."""
        ...

    def cleanup_expired(self, max_age: timedelta) -> int:
        """Remove stored objects older than max_age. Returns count removed.

        Backends with their own lifecycle rules keep the default no-op.
        """
        return 0
