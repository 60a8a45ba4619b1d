"""
Object endpoints.

GET /objects/<category>/... streams a stored image. Rejected paths and
missing objects both answer 404 with the same body.

POST /api/objects/upload-url hands out a short-lived URL a client can PUT
an image to directly. Only the remote backend supports it.
"""

import logging
from uuid import uuid4

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from starlette.types import Receive, Scope, Send
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.errors import ValidationError
from ...core.objects.backend import ObjectStream
from ...core.media.content import normalize_claimed_kind
from ...core.media.paths import OBJECT_PREFIX, build_storage_key, object_path_for_key
from ..dependencies import ObjectGatewayDep, SettingsDep, StorageBackendDep

logger = logging.getLogger(__name__)

router = APIRouter()
upload_router = APIRouter()


DIRECT_UPLOAD_CATEGORY = "uploads"


class UploadUrlRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content_type: str = Field(description="MIME type of the image to be uploaded")


class UploadUrlResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    upload_url: str = Field(description="Signed URL accepting a single PUT")
    object_path: str = Field(description="Where the object can be fetched once uploaded")


class ObjectResponse(StreamingResponse):
    """
    Streams an ObjectStream and always releases it afterwards.

    Headers are sent before the first chunk. A read error after that point
    ends the body early; the status and headers already sent stay as they are.
    """

    def __init__(self, stream: ObjectStream) -> None:
        super().__init__(
            stream.chunks,
            media_type=stream.content_type,
            headers=stream.headers,
        )
        self._object_stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._object_stream.close()


@router.get(
    "/{object_path:path}",
    summary="Fetch a stored image",
    responses={404: {"description": "Object not found"}},
)
async def serve_object(object_path: str, gateway: ObjectGatewayDep) -> ObjectResponse:
    stream = await gateway.serve(f"{OBJECT_PREFIX}{object_path}")

    return ObjectResponse(stream)


@upload_router.post(
    "/upload-url",
    response_model=UploadUrlResponse,
    summary="Get a direct upload URL",
    responses={501: {"description": "Backend does not support direct uploads"}},
)
async def create_upload_url(
    request: UploadUrlRequest,
    storage: StorageBackendDep,
    settings: SettingsDep,
) -> UploadUrlResponse:
    kind = normalize_claimed_kind(request.content_type)
    if kind is None:
        raise ValidationError(
            "Only JPEG, PNG, and WebP images are supported",
            code="UNSUPPORTED_FILE_TYPE",
        )

    key = build_storage_key(DIRECT_UPLOAD_CATEGORY, str(uuid4()), kind.extension)
    upload_url = await storage.signed_upload_url(key, settings.signed_url_ttl_seconds)

    logger.info("Issued direct upload URL", extra={"key": key})

    return UploadUrlResponse(upload_url=upload_url, object_path=object_path_for_key(key))
