"""Pytest configuration and fixtures for the ReactShare tests.

This module provides fixtures for:
- Settings with safe test values
- Database: SQLite in-memory engine, session factory and RecordStore
- In-memory blob store and downloader doubles
- The wired service container (eager background tasks) and an API client
"""

import os

import pytest
from fastapi.testclient import TestClient

from config import Settings
from database.record_store import RecordStore
from database.session import build_engine, build_session_factory, init_db
from services.container import build_services, build_publishers
from services.downloader import VideoInfo
from services.errors import BlobNotFound, BlobStoreError, DownloadError
from services.scheduler import TaskRunner

USER_HEADER = "X-Authenticated-User"


# -----------------------------------------------------------------------------
# Test doubles
# -----------------------------------------------------------------------------


class FakeBlobStore:
    """Dict-backed stand-in for the object storage service."""

    def __init__(self):
        self.objects = {}
        self.downloaded_to = []
        self.fail_uploads = False

    def upload(self, bucket, path, body, content_type="video/mp4"):
        if self.fail_uploads:
            raise BlobStoreError()
        data = body if isinstance(body, (bytes, bytearray)) else body.read()
        self.objects[(bucket, path)] = bytes(data)
        return path

    def upload_file(self, bucket, path, local_path, content_type="video/mp4"):
        with open(local_path, "rb") as f:
            return self.upload(bucket, path, f, content_type)

    def download(self, bucket, path):
        if (bucket, path) not in self.objects:
            raise BlobNotFound()
        return self.objects[(bucket, path)]

    def download_to_file(self, bucket, path, destination):
        data = self.download(bucket, path)
        with open(destination, "wb") as f:
            f.write(data)
        self.downloaded_to.append(destination)
        return destination

    def get_public_url(self, bucket, path):
        return f"https://objects.test/{bucket}/{path}"

    def get_signed_url(self, bucket, path, ttl_seconds):
        return f"https://objects.test/{bucket}/{path}?ttl={ttl_seconds}"

    def delete(self, bucket, path):
        self.objects.pop((bucket, path), None)


class FakeDownloader:
    """Writes a small file instead of running yt-dlp, or fails on request."""

    def __init__(self):
        self.fail_with = None
        self.probe_fails = False
        self.content = b"fake-mp4-bytes"

    def probe(self, url):
        if self.probe_fails:
            raise DownloadError("probe failed")
        return VideoInfo(title="Fetched title", duration=12.5, thumbnail_url="https://img.test/t.jpg",
                         platform="Youtube")

    def download(self, url, output_dir, stem):
        if self.fail_with:
            raise self.fail_with
        os.makedirs(output_dir, exist_ok=True)
        path = os.path.join(output_dir, f"{stem}.mp4")
        with open(path, "wb") as f:
            f.write(self.content)
        return path


# -----------------------------------------------------------------------------
# Settings & database
# -----------------------------------------------------------------------------


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings with safe defaults."""
    return Settings(
        database_url="sqlite:///:memory:",
        oracle_namespace="test-namespace",
        oracle_region="us-ashburn-1",
        scratch_dir=str(tmp_path / "scratch"),
        oauth_clients={
            "google": ("google-client-id", "google-client-secret"),
            "tiktok": ("tiktok-client-key", "tiktok-client-secret"),
        },
    )


@pytest.fixture
def engine():
    """Synchronous SQLite in-memory engine with all tables created."""
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine) -> RecordStore:
    return RecordStore(build_session_factory(engine))


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def services(test_settings, engine, blob_store, downloader):
    """Service container wired with in-memory collaborators and eager tasks."""
    return build_services(
        test_settings,
        session_factory=build_session_factory(engine),
        blob_store=blob_store,
        downloader=downloader,
        tasks=TaskRunner(eager=True),
        publishers=build_publishers(timeout=5),
    )


@pytest.fixture
def client(services):
    from main import create_app

    app = create_app(services)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {USER_HEADER: "u1"}
