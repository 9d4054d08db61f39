"""Filesystem storage for local development, with HMAC-signed download links."""

import hashlib
import hmac
import os
import tempfile
import time
from datetime import timedelta
from typing import Callable, Optional
from urllib.parse import quote, urlencode

from videogen.errors import StorageError
from videogen.storage.base import ObjectStorage

LOCAL_SCHEME = "local://"


class LocalStorage(ObjectStorage):
    """Stores videos under base_dir and serves them through /v1/files/."""

    def __init__(
        self,
        public_base_url: str,
        secret: str,
        base_dir: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        if base_dir:
            self._base_dir = base_dir
        else:
            self._base_dir = os.path.join(tempfile.gettempdir(), "videogen_results")
        os.makedirs(self._base_dir, exist_ok=True)
        self._public_base_url = public_base_url.rstrip("/")
        self._secret = secret.encode("utf-8")
        self._clock = clock

    def resolve(self, path: str) -> str:
        """Absolute file path for a storage path; refuses to escape base_dir."""
        base = os.path.realpath(self._base_dir)
        full = os.path.realpath(os.path.join(base, path))
        if os.path.commonpath([base, full]) != base or full == base:
            raise StorageError(f"Invalid storage path: {path}")
        return full

    def upload(self, data: bytes, path: str, content_type: str = "video/mp4") -> str:
        full = self.resolve(path)
        os.makedirs(os.path.dirname(full), exist_ok=True)
        with open(full, "wb") as fh:
            fh.write(data)
        return f"{LOCAL_SCHEME}{path}"

    def _signature(self, path: str, expires: int) -> str:
        message = f"{path}:{expires}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def sign_url(self, locator: str, ttl_seconds: int) -> str:
        if not locator.startswith(LOCAL_SCHEME):
            raise StorageError(f"Cannot sign non-local locator: {locator}")
        path = locator[len(LOCAL_SCHEME):]
        expires = int(self._clock()) + ttl_seconds
        query = urlencode({"expires": expires, "signature": self._signature(path, expires)})
        return f"{self._public_base_url}/v1/files/{quote(path)}?{query}"

    def verify(self, path: str, expires: int, signature: str) -> bool:
        if expires < self._clock():
            return False
        return hmac.compare_digest(self._signature(path, expires), signature)

    def cleanup_expired(self, max_age: timedelta) -> int:
        """Remove files older than max_age. Returns count of removed files."""
        now = self._clock()
        removed = 0
        if not os.path.exists(self._base_dir):
            return 0
        for root, _dirs, files in os.walk(self._base_dir):
            for name in files:
                path = os.path.join(root, name)
                try:
                    if now - os.path.getmtime(path) > max_age.total_seconds():
                        os.remove(path)
                        removed += 1
                except FileNotFoundError:
                    continue
        return removed

