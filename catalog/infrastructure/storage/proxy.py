"""
Client for the local signing proxy.

The remote bucket grants direct access (for example, a browser uploading
straight to storage) only through short-lived signed URLs. Those are issued
by a trusted proxy process listening on localhost; it holds the bucket
credentials so this service doesn't have to.

The interface is deliberately narrow: ask for a URL, get a URL or a
StorageError. Whatever went wrong (proxy down, trust revoked, garbage reply)
the caller sees the same generic failure, and the proxy's address never
ends up in an error message that could reach a client.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx

from ...core.errors import StorageError

logger = logging.getLogger(__name__)


SIGNED_URL_ENDPOINT = "/object-storage/signed-object-url"


class SignedUrlProxy:
    """Requests signed object URLs from the local trusted proxy."""

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.Client] = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def sign(self, bucket_name: str, object_name: str, method: str, ttl_seconds: int) -> str:
        """
        Get a signed URL for one object and HTTP method.

        Raises StorageError on any failure.
        """
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=ttl_seconds)
        payload = {
            "bucket_name": bucket_name,
            "object_name": object_name,
            "method": method,
            "expires_at": expires_at.isoformat(),
        }

        try:
            response = self._client.post(f"{self._base_url}{SIGNED_URL_ENDPOINT}", json=payload)
            response.raise_for_status()
            signed_url = response.json()["signed_url"]
        except httpx.HTTPStatusError as e:
            logger.error(
                "Signing proxy rejected request",
                extra={"status_code": e.response.status_code, "object_name": object_name}
            )
            raise StorageError("Failed to obtain a signed URL")
        except httpx.HTTPError as e:
            logger.error(
                "Signing proxy unreachable",
                extra={"error_type": type(e).__name__, "object_name": object_name}
            )
            raise StorageError("Failed to obtain a signed URL")
        except (KeyError, TypeError, ValueError) as e:
            logger.error(
                "Signing proxy returned an unexpected response",
                extra={"error_type": type(e).__name__, "object_name": object_name}
            )
            raise StorageError("Failed to obtain a signed URL")

        if not isinstance(signed_url, str) or not signed_url:
            raise StorageError("Failed to obtain a signed URL")

        return signed_url

    def close(self) -> None:
        self._client.close()
