"""
Image content validation by signature sniffing.

Clients tell us what they are uploading (the declared MIME type), but
clients lie - sometimes on purpose. We only accept a file when the declared
type AND the type inferred from the file's leading bytes agree.

Only the leading bytes are examined, and only three formats are accepted:
- JPEG: FF D8 FF
- PNG:  89 50 4E 47
- WebP: "RIFF" at bytes 0-3 and "WEBP" at bytes 8-11

Anything shorter than 12 bytes is never classified, even if it starts with
a valid JPEG or PNG signature.
"""

from enum import Enum
from typing import Optional

from ..errors import ValidationError


MIN_SIGNATURE_LENGTH = 12


class ImageKind(Enum):
    """Image formats the catalog accepts."""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"

    @property
    def extension(self) -> str:
        """File extension used in storage keys and virtual paths."""
        return _EXTENSIONS.get(self, "jpg")


_EXTENSIONS = {
    ImageKind.JPEG: "jpg",
    ImageKind.PNG: "png",
    ImageKind.WEBP: "webp",
}


class ContentCheck(Enum):
    """Outcome of comparing a declared type with the sniffed type."""
    OK = "ok"
    MISMATCH = "mismatch"
    UNSUPPORTED_KIND = "unsupported_kind"


def classify(data: bytes) -> Optional[ImageKind]:
    """
    Determine the true format of a buffer from its binary signature.

    Returns None for unknown formats and for buffers under 12 bytes.
    """
    if not data or len(data) < MIN_SIGNATURE_LENGTH:
        return None

    if data[:3] == b"\xff\xd8\xff":
        return ImageKind.JPEG

    if data[:4] == b"\x89PNG":
        return ImageKind.PNG

    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ImageKind.WEBP

    return None


def normalize_claimed_kind(claimed: Optional[str]) -> Optional[ImageKind]:
    """
    Map a declared type to an ImageKind.

    Accepts MIME types ("image/jpeg") or bare names ("png"). The jpeg/jpg
    spelling variants are treated as the same kind. Parameters such as
    "; charset=..." are ignored.
    """
    if not claimed:
        return None

    value = claimed.split(";", 1)[0].strip().lower()
    if value.startswith("image/"):
        value = value[len("image/"):]
    if value == "jpg":
        value = "jpeg"

    try:
        return ImageKind(value)
    except ValueError:
        return None


def validate(data: bytes, claimed: Optional[str]) -> ContentCheck:
    """
    Cross-check a buffer against its declared type.

    UNSUPPORTED_KIND if the declared type isn't jpeg/png/webp, MISMATCH if
    the sniffed type disagrees (an unrecognized buffer is a mismatch too).
    """
    claimed_kind = normalize_claimed_kind(claimed)
    if claimed_kind is None:
        return ContentCheck.UNSUPPORTED_KIND

    if classify(data) != claimed_kind:
        return ContentCheck.MISMATCH

    return ContentCheck.OK


def ensure_valid_image(data: bytes, claimed: Optional[str], label: str = "File") -> ImageKind:
    """
    Validate a buffer and return its kind, or raise ValidationError.

    The returned kind is the sniffed one, so callers can derive extensions
    from verified content rather than from anything the client sent.
    """
    result = validate(data, claimed)

    if result is ContentCheck.UNSUPPORTED_KIND:
        raise ValidationError(
            f"{label}: only JPEG, PNG, and WebP images are supported",
            code="UNSUPPORTED_FILE_TYPE",
        )

    if result is ContentCheck.MISMATCH:
        detected = classify(data)
        if detected is None:
            message = f"{label}: unable to verify file type. File may be corrupted or invalid"
        else:
            message = f"{label}: file type mismatch. Declared as {claimed} but detected as {detected.mime_type}"
        raise ValidationError(message, code="FILE_TYPE_MISMATCH")

    # validate() returned OK, so classify() agrees with the claim
    return classify(data)
