import base64
import io
import time

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from videogen.auth.identity import Identity, IdentityVerifier, InvalidToken
from videogen.config import Settings
from videogen.main import create_app
from videogen.providers.base import InferenceProvider
from videogen.storage.base import ObjectStorage

FAKE_VIDEO = b"\x00\x00\x00\x18ftypmp42fake-video"


class FakeVerifier(IdentityVerifier):
    """Accepts tokens of the form 'test:<uid>'."""

    def verify(self, token: str) -> Identity:
        prefix, _, uid = token.partition(":")
        if prefix != "test" or not uid:
            raise InvalidToken("Invalid or expired authentication token.")
        return Identity(id=uid, email=f"{uid}@example.com")


class FakeProvider(InferenceProvider):
    def __init__(self, predictions=None, error=None):
        if predictions is None:
            predictions = [{"bytesBase64Encoded": base64.b64encode(FAKE_VIDEO).decode()}]
        self.predictions = predictions
        self.error = error
        self.calls = []

    def endpoint(self) -> str:
        return "projects/test-project/locations/us-central1/publishers/google/models/veo-test"

    def predict(self, endpoint, instances, parameters):
        self.calls.append({"endpoint": endpoint, "instances": instances, "parameters": parameters})
        if self.error is not None:
            raise self.error
        return self.predictions


class FakeStorage(ObjectStorage):
    def __init__(self):
        self.objects = {}

    def upload(self, data, path, content_type="video/mp4"):
        self.objects[path] = data
        return f"gs://test-bucket/{path}"

    def sign_url(self, locator, ttl_seconds):
        return f"https://storage.example/{locator[len('gs://'):]}?ttl={ttl_seconds}"


def make_settings(**overrides) -> Settings:
    values = dict(
        gcp_project_id="test-project",
        gcs_bucket_name="test-bucket",
        supabase_url="http://supabase.test",
        supabase_anon_key="anon",
        daily_quota=5,
        rate_limit_max_requests=1000,
        enable_image_to_video=True,
        log_level="WARNING",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def make_client(provider, storage):
    """Factory for a running TestClient; settings overrides as keyword args."""
    clients = []

    def _make(provider=provider, storage=storage, **overrides):
        app = create_app(
            make_settings(**overrides),
            verifier=FakeVerifier(),
            provider=provider,
            storage=storage,
        )
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


def auth(uid: str) -> dict:
    return {"Authorization": f"Bearer test:{uid}"}


@pytest.fixture
def wait_for_job():
    """Poll a job until it reaches a terminal state; returns the status data."""

    def _wait(client, job_id, uid, timeout=5.0):
        deadline = time.monotonic() + timeout
        while True:
            data = client.get(f"/v1/video/status/{job_id}", headers=auth(uid)).json()["data"]
            if data["status"] in ("COMPLETED", "FAILED"):
                return data
            if time.monotonic() > deadline:
                raise AssertionError(f"job {job_id} still {data['status']}")
            time.sleep(0.02)

    return _wait


@pytest.fixture
def png_base64():
    buf = io.BytesIO()
    Image.new("RGB", (8, 8), (200, 40, 40)).save(buf, format="PNG")
    return base64.b64encode(buf.getvalue()).decode()
