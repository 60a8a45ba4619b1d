"""
Shared test fixtures.

Fakes here stand in for the external services (Claude, the S3 API, the
signing proxy) so tests never touch the network.
"""

import json
from typing import Optional

import httpx
import pytest
from botocore.exceptions import ClientError, ResponseStreamingError

from catalog.infrastructure.storage.client import MockStorageBackend
from catalog.infrastructure.storage.proxy import SignedUrlProxy


JPEG = b"\xff\xd8\xff\xe0" + bytes(16)
PNG = b"\x89PNG\r\n\x1a\n" + bytes(16)
WEBP = b"RIFF" + b"\x24\x00\x00\x00" + b"WEBP" + bytes(12)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG


@pytest.fixture
def png_bytes() -> bytes:
    return PNG


@pytest.fixture
def webp_bytes() -> bytes:
    return WEBP


# ---------------------------------------------------------------------------
# Vision model
# ---------------------------------------------------------------------------

class FakeVisionClient:
    """Returns canned replies in order and records every call."""

    def __init__(self, replies: Optional[list] = None, error: Optional[Exception] = None) -> None:
        self._replies = list(replies or [])
        self._error = error
        self.calls: list[dict] = []

    async def analyze_image(self, image, media_type, system_prompt, user_prompt, model=None) -> str:
        self.calls.append({
            "image": image,
            "media_type": media_type,
            "user_prompt": user_prompt,
            "model": model,
        })
        if self._error is not None:
            raise self._error
        reply = self._replies.pop(0)
        return reply if isinstance(reply, str) else json.dumps(reply)


@pytest.fixture
def vision_client_factory():
    return FakeVisionClient


# ---------------------------------------------------------------------------
# S3 API
# ---------------------------------------------------------------------------

class FakeBody:
    """Streaming body; with fail_after set, the connection drops after that many chunks."""

    def __init__(self, data: bytes, fail_after: Optional[int] = None) -> None:
        self._data = data
        self._fail_after = fail_after
        self.closed = False

    def iter_chunks(self, chunk_size: int = 1024):
        for index, offset in enumerate(range(0, len(self._data), chunk_size)):
            if self._fail_after is not None and index >= self._fail_after:
                raise ResponseStreamingError(error="connection reset by peer")
            yield self._data[offset:offset + chunk_size]

    def close(self) -> None:
        self.closed = True


class FakeS3Client:
    """In-memory subset of the boto3 S3 client."""

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str], dict] = {}
        self.bodies: list[FakeBody] = []
        self.fail_with: Optional[str] = None
        self.fail_stream_after: Optional[int] = None

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_with:
            raise ClientError({"Error": {"Code": self.fail_with, "Message": "boom"}}, operation)

    def put_object(self, Bucket, Key, Body, ContentType=None, Metadata=None):
        self._maybe_fail("PutObject")
        self.objects[(Bucket, Key)] = {
            "data": bytes(Body),
            "content_type": ContentType,
            "metadata": Metadata or {},
        }
        return {}

    def head_object(self, Bucket, Key):
        self._maybe_fail("HeadObject")
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "404", "Message": "Not Found"}}, "HeadObject")
        return {"ContentLength": len(self.objects[(Bucket, Key)]["data"])}

    def get_object(self, Bucket, Key):
        self._maybe_fail("GetObject")
        if (Bucket, Key) not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "Not Found"}}, "GetObject")
        stored = self.objects[(Bucket, Key)]
        body = FakeBody(stored["data"], fail_after=self.fail_stream_after)
        self.bodies.append(body)
        return {
            "Body": body,
            "ContentType": stored["content_type"],
            "ContentLength": len(stored["data"]),
            "Metadata": stored["metadata"],
        }


@pytest.fixture
def fake_s3_client() -> FakeS3Client:
    return FakeS3Client()


# ---------------------------------------------------------------------------
# Signing proxy
# ---------------------------------------------------------------------------

@pytest.fixture
def proxy_requests() -> list:
    return []


@pytest.fixture
def signing_proxy(proxy_requests) -> SignedUrlProxy:
    """A proxy client whose transport answers like the local signing sidecar."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        proxy_requests.append({"path": request.url.path, "body": body})
        return httpx.Response(
            200,
            json={"signed_url": f"https://storage.example/{body['bucket_name']}/{body['object_name']}?sig=abc"},
        )

    client = httpx.Client(transport=httpx.MockTransport(handler))
    return SignedUrlProxy("http://127.0.0.1:1106", client=client)


@pytest.fixture
def memory_storage() -> MockStorageBackend:
    return MockStorageBackend()
