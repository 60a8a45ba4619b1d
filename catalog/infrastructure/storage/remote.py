"""
Remote bucket storage backend.

Talks to an S3-compatible bucket with boto3. The bucket and a key prefix
come from a single setting, PRIVATE_OBJECT_DIR, written as
/<bucket>/<prefix>: with /catalog-bucket/private, the key items/<id>.jpg
lives at private/items/<id>.jpg in catalog-bucket.

Direct-write URLs are not signed here. They come from the local signing
proxy (see proxy.py), which is the only component trusted with issuing
them.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from botocore.exceptions import BotoCoreError, ClientError

from ...core.errors import DirectUploadUnavailableError, ObjectNotFoundError, StorageError
from ...core.objects.backend import (
    DEFAULT_CHUNK_SIZE,
    ObjectStream,
    cache_control_header,
    content_type_for_key,
)
from .proxy import SignedUrlProxy

logger = logging.getLogger(__name__)


_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class RemoteStorageConfig:
    """
    Configuration for the remote bucket.

    endpoint_url and credentials may be left empty when the environment
    already provides them (instance roles, AWS_* variables).
    """
    bucket_name: str
    prefix: str = ""
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "auto"


def parse_object_dir(object_dir: str) -> tuple[str, str]:
    """
    Split "/<bucket>/<prefix...>" into (bucket, prefix).

    >>> parse_object_dir("/catalog-bucket/private")
    ('catalog-bucket', 'private')
    """
    parts = [part for part in object_dir.strip().split("/") if part]
    if not parts:
        raise ValueError("Object directory must name a bucket: /<bucket>/<prefix>")
    return parts[0], "/".join(parts[1:])


class RemoteStorageBackend:
    """
    Stores objects in a remote bucket.

    All methods are async to match the protocol even though boto3 is
    synchronous.
    """

    name = "remote"

    def __init__(
        self,
        config: RemoteStorageConfig,
        signer: Optional[SignedUrlProxy] = None,
        s3_client: Any = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._config = config
        self._signer = signer
        self._chunk_size = chunk_size
        self._s3_client = s3_client or self._build_client(config)

        logger.info(
            "Initialized remote storage backend",
            extra={
                "bucket": config.bucket_name,
                "prefix": config.prefix,
            }
        )

    @staticmethod
    def _build_client(config: RemoteStorageConfig) -> Any:
        import boto3
        from botocore.config import Config

        # v4 signatures and path-style addressing work across S3-compatible stores
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        return boto3.client(
            's3',
            endpoint_url=config.endpoint_url or None,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
            region_name=config.region,
            config=boto_config,
        )

    def object_name(self, key: str) -> str:
        """Full object name inside the bucket."""
        if self._config.prefix:
            return f"{self._config.prefix.rstrip('/')}/{key}"
        return key

    async def save(self, key: str, data: bytes) -> None:
        object_name = self.object_name(key)

        try:
            self._s3_client.put_object(
                Bucket=self._config.bucket_name,
                Key=object_name,
                Body=data,
                ContentType=content_type_for_key(key),
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to save object")

        logger.debug(
            "Uploaded object",
            extra={"key": key, "size_bytes": len(data)}
        )

    async def exists(self, key: str) -> bool:
        try:
            self._s3_client.head_object(
                Bucket=self._config.bucket_name,
                Key=self.object_name(key),
            )
        except ClientError as e:
            if _is_missing(e):
                return False
            logger.error(
                "Failed to check object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to check object")
        except BotoCoreError as e:
            logger.error(
                "Failed to check object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to check object")

        return True

    async def stream(self, key: str, cache_ttl_seconds: int) -> ObjectStream:
        """
        Open an object for streaming.

        Content-Type always follows the key's extension, never the type
        stored with the object: direct uploads store whatever the client
        sent. An object whose metadata marks it visibility=private is
        served with a private cache policy; everything else is public.

        The response body is already open when this returns, so the
        stream carries a release hook that closes it.
        """
        object_name = self.object_name(key)

        try:
            response = self._s3_client.get_object(
                Bucket=self._config.bucket_name,
                Key=object_name,
            )
        except ClientError as e:
            if _is_missing(e):
                raise ObjectNotFoundError()
            logger.error(
                "Failed to open object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to read object")
        except BotoCoreError as e:
            logger.error(
                "Failed to open object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Failed to read object")

        metadata = response.get("Metadata") or {}
        private = metadata.get("visibility") == "private"
        body = response["Body"]

        return ObjectStream(
            content_type=content_type_for_key(key),
            content_length=int(response.get("ContentLength", 0)),
            cache_control=cache_control_header(cache_ttl_seconds, private=private),
            chunks=self._iter_body(body, key),
            release=body.close,
        )

    async def signed_upload_url(self, key: str, ttl_seconds: int) -> str:
        if self._signer is None:
            raise DirectUploadUnavailableError()

        return self._signer.sign(
            bucket_name=self._config.bucket_name,
            object_name=self.object_name(key),
            method="PUT",
            ttl_seconds=ttl_seconds,
        )

    def _iter_body(self, body: Any, key: str) -> Iterator[bytes]:
        try:
            for chunk in body.iter_chunks(chunk_size=self._chunk_size):
                if chunk:
                    yield chunk
        except BotoCoreError as e:
            logger.error(
                "Error streaming object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError("Error streaming file")
        finally:
            body.close()


def _is_missing(error: Exception) -> bool:
    code = str(getattr(error, "response", {}).get("Error", {}).get("Code", ""))
    return code in _MISSING_OBJECT_CODES
