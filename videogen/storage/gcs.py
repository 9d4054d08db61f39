"""Google Cloud Storage backend with V4 signed URLs."""

import re
from datetime import timedelta
from typing import Optional, Tuple

from google.api_core import exceptions as gapi_exceptions
from google.cloud import storage

from videogen.errors import StorageError
from videogen.jobs.models import utc_now
from videogen.storage.base import ObjectStorage

_GCS_URI = re.compile(r"^gs://([^/]+)/(.+)$")


def parse_gcs_uri(uri: str) -> Tuple[str, str]:
    match = _GCS_URI.match(uri)
    if not match:
        raise StorageError(f"Invalid GCS URI format: {uri}")
    return match.group(1), match.group(2)


class GCSStorage(ObjectStorage):
    """Uploads to one bucket; signs any gs:// locator, including ones the
    provider wrote itself."""

    def __init__(self, bucket_name: Optional[str], client: Optional[storage.Client] = None):
        self.bucket_name = bucket_name
        self._client = client

    def _get_client(self) -> storage.Client:
        if self._client is None:
            self._client = storage.Client()
        return self._client

    def upload(self, data: bytes, path: str, content_type: str = "video/mp4") -> str:
        if not self.bucket_name:
            raise StorageError("GCS bucket is not configured")

        blob = self._get_client().bucket(self.bucket_name).blob(path)
        blob.metadata = {"generatedAt": utc_now().isoformat()}
        try:
            blob.upload_from_string(data, content_type=content_type)
        except gapi_exceptions.GoogleAPIError as exc:
            raise StorageError(f"Upload to gs://{self.bucket_name}/{path} failed: {exc}") from exc
        return f"gs://{self.bucket_name}/{path}"

    def sign_url(self, locator: str, ttl_seconds: int) -> str:
        bucket_name, path = parse_gcs_uri(locator)
        blob = self._get_client().bucket(bucket_name).blob(path)
        try:
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
            )
        except (gapi_exceptions.GoogleAPIError, AttributeError, ValueError) as exc:
            # AttributeError: credentials that cannot sign (e.g. user ADC without a key)
            raise StorageError(f"Could not sign URL for {locator}: {exc}") from exc
