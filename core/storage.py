# core/storage.py
"""
Core Storage Utilities.

Centralizes the Supabase Storage operations used by the file service:
building collision-free object paths, deriving the stable public URL of an
object, issuing signed upload URLs, and the server-side inline upload.

The Supabase SDK is synchronous, so every call into it runs in a worker
thread via asyncio.to_thread.
"""
import asyncio
import base64
import binascii
from typing import Any, Optional, Tuple
from urllib.parse import quote

from core.config import settings, logger as core_logger
from core.errors import BackendOperationError, ClientInputError, PayloadTooLargeError
from core.models import UploadTarget, InlineUploadResult
from core.utils import unique_time_token

logger = core_logger.getChild("Storage")


def build_storage_path(file_name: str, prefix: Optional[str] = None) -> str:
    """Prefixes the original name with a unique time token, e.g. 'uploads/1718000000000-a.txt'."""
    prefix = settings.UPLOAD_PATH_PREFIX if prefix is None else prefix
    unique_name = f"{unique_time_token()}-{file_name}"
    return f"{prefix.strip('/')}/{unique_name}" if prefix else unique_name


def build_public_url(path: str, bucket: Optional[str] = None, base_url: Optional[str] = None) -> str:
    """
    Public object URL following Supabase's convention:
    {SUPABASE_URL}/storage/v1/object/public/{bucket}/{path}

    Never carries a token or query string, so it can be stored indefinitely.
    """
    bucket = bucket or settings.FILE_STORAGE_BUCKET
    base_url = (base_url or settings.SUPABASE_URL or "").rstrip("/")
    return f"{base_url}/storage/v1/object/public/{quote(bucket, safe='')}/{quote(path, safe='/')}"


def split_data_url(file_data: str) -> Tuple[Optional[str], str]:
    """Returns (mime type, base64 body) for a data: URL, or (None, input) for plain base64."""
    if file_data.startswith("data:") and "," in file_data:
        header, body = file_data.split(",", 1)
        mime = header[len("data:"):].split(";", 1)[0] or None
        return mime, body
    return None, file_data


def decode_inline_payload(file_data: str, max_bytes: Optional[int] = None) -> bytes:
    """
    Decodes base64 file content (plain or as a data: URL) and enforces the size ceiling.

    A payload of exactly max_bytes is accepted; anything larger raises
    PayloadTooLargeError carrying both sizes.
    """
    limit = settings.INLINE_UPLOAD_MAX_BYTES if max_bytes is None else max_bytes
    _, encoded = split_data_url(file_data)
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ClientInputError(f"fileData is not valid base64: {e}")

    if len(content) > limit:
        raise PayloadTooLargeError(size=len(content), limit=limit)
    return content


def _storage_error_details(err: Exception) -> Any:
    """Pulls the provider's error payload out of a storage exception, verbatim where possible."""
    if err.args and isinstance(err.args[0], dict):
        return err.args[0]
    details = {k: getattr(err, k) for k in ("message", "code", "status") if getattr(err, k, None) is not None}
    return details or str(err)


def _storage_error_message(err: Exception) -> str:
    details = _storage_error_details(err)
    if isinstance(details, dict):
        return str(details.get("message") or details.get("error") or err)
    return str(err)


async def create_upload_target(supabase, file_name: str, bucket: Optional[str] = None) -> UploadTarget:
    """Requests a single-use signed upload URL for a fresh path derived from file_name."""
    bucket = bucket or settings.FILE_STORAGE_BUCKET
    path = build_storage_path(file_name)
    logger.debug(f"Requesting signed upload URL: Bucket='{bucket}', Path='{path}'")

    def storage_call():
        return supabase.storage.from_(bucket).create_signed_upload_url(path)

    try:
        signed = await asyncio.to_thread(storage_call)
    except Exception as e:
        logger.error(f"Supabase Storage rejected signed upload URL request for '{path}': {e}", exc_info=False)
        raise BackendOperationError(_storage_error_message(e), details=_storage_error_details(e)) from e

    signed_url = signed.get("signed_url") or signed.get("signedUrl")
    if not signed_url:
        logger.error(f"Signed upload URL missing from storage response for '{path}': {signed}")
        raise BackendOperationError("Storage did not return a signed upload URL", details=signed)

    logger.info(f"Issued signed upload URL for '{path}'.")
    return UploadTarget(signed_url=signed_url, path=path, public_url=build_public_url(path, bucket))


async def upload_inline(
    supabase,
    file_name: str,
    content: bytes,
    content_type: Optional[str] = None,
    bucket: Optional[str] = None,
) -> InlineUploadResult:
    """Stores already-decoded bytes server-side and returns the public URL. The write target never leaves the server."""
    bucket = bucket or settings.FILE_STORAGE_BUCKET
    path = build_storage_path(file_name)
    content_type = content_type or "application/octet-stream"
    logger.info(f"Uploading {len(content)} bytes inline to Supabase Storage: Bucket='{bucket}', Path='{path}'")

    def storage_call():
        return supabase.storage.from_(bucket).upload(
            path=path,
            file=content,
            file_options={"content-type": content_type, "upsert": "false"}
        )

    try:
        await asyncio.to_thread(storage_call)
    except Exception as e:
        logger.error(f"Supabase Storage rejected inline upload for '{path}': {e}", exc_info=False)
        raise BackendOperationError(_storage_error_message(e), details=_storage_error_details(e)) from e

    logger.info(f"Inline upload stored as '{path}'.")
    return InlineUploadResult(success=True, path=path, public_url=build_public_url(path, bucket))


