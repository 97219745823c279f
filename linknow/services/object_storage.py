"""Image uploads to Supabase Storage and reference-to-URL resolution."""

import os
import mimetypes
from typing import Optional

from ulid import ULID

from linknow.models.session import SessionContext
from linknow.services.auth import current_user_id
from linknow.services.supabase_client import SupabaseClient
from linknow.utils.errors import StorageError, ValidationFailed
from linknow.utils.logging import get_structured_logger, get_correlation_id, mask_user_id

logger = get_structured_logger(__name__)

STORAGE_BUCKET = os.environ.get("STORAGE_BUCKET", "uploads")
LEGACY_PREFIX = "/api/uploads/"

ALLOWED_CONTENT_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/gif",
    "image/heic",
})


def _extension_for(filename: Optional[str], content_type: str) -> str:
    if filename and "." in filename:
        return "." + filename.rsplit(".", 1)[1].lower()
    return mimetypes.guess_extension(content_type) or ""


async def upload_image(
    session: SessionContext,
    data: bytes,
    filename: Optional[str] = None,
    content_type: str = "image/jpeg",
) -> str:
    """Store an image under the caller's folder and return its reference."""
    user_id = current_user_id(session)
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed("file", f"Unsupported image type: {content_type}")
    if not data:
        raise ValidationFailed("file", "Empty upload")

    reference = f"{user_id}/{ULID()}{_extension_for(filename, content_type)}"

    async with SupabaseClient() as client:
        try:
            client.storage.from_(STORAGE_BUCKET).upload(
                reference,
                data,
                {"content-type": content_type},
            )
        except Exception as e:
            raise StorageError(f"Failed to upload image: {e}")

    logger.info(
        "Image uploaded",
        correlation_id=get_correlation_id(),
        user_id=mask_user_id(user_id),
        size_bytes=len(data),
        content_type=content_type
    )
    return reference


def normalize_reference(reference: Optional[str]) -> str:
    """Strip the legacy ``/api/uploads/`` prefix."""
    reference = reference or ""
    if reference.startswith(LEGACY_PREFIX):
        return reference[len(LEGACY_PREFIX):]
    return reference


async def resolve_image_url(reference: Optional[str]) -> str:
    """Public URL for a stored reference; absolute URLs pass through."""
    reference = normalize_reference(reference)
    if not reference:
        return ""
    if reference.startswith(("http://", "https://")):
        return reference

    async with SupabaseClient() as client:
        try:
            return client.storage.from_(STORAGE_BUCKET).get_public_url(reference)
        except Exception as e:
            raise StorageError(f"Failed to resolve image URL: {e}")
