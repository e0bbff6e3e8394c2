import base64

import pytest
from unittest.mock import MagicMock

from core import storage
from core.config import settings
from core.errors import BackendOperationError, ClientInputError, PayloadTooLargeError
from core.utils import unique_time_token, format_file_size


# --- Storage path and public URL ---

def test_unique_time_token_strictly_increasing():
    tokens = [unique_time_token() for _ in range(500)]
    assert tokens == sorted(tokens)
    assert len(set(tokens)) == len(tokens)


def test_build_storage_path_unique_for_same_name():
    paths = {storage.build_storage_path("a.txt") for _ in range(200)}
    assert len(paths) == 200
    assert all(p.startswith(f"{settings.UPLOAD_PATH_PREFIX}/") and p.endswith("-a.txt") for p in paths)


def test_build_storage_path_custom_prefix():
    assert storage.build_storage_path("a.txt", prefix="docs/").startswith("docs/")
    assert "/" not in storage.build_storage_path("a.txt", prefix="")


def test_build_public_url_is_deterministic():
    url = storage.build_public_url("uploads/1-a.txt", bucket="myfile", base_url="https://x.supabase.co/")
    assert url == "https://x.supabase.co/storage/v1/object/public/myfile/uploads/1-a.txt"
    assert url == storage.build_public_url("uploads/1-a.txt", bucket="myfile", base_url="https://x.supabase.co/")


def test_build_public_url_escapes_query_characters():
    url = storage.build_public_url("uploads/1-what?token=abc.txt", bucket="myfile", base_url="https://x.supabase.co")
    assert "?" not in url
    assert url.endswith("uploads/1-what%3Ftoken%3Dabc.txt")


# --- Inline payload decoding ---

def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_decode_inline_payload_exact_limit():
    assert storage.decode_inline_payload(_b64(b"x" * 10), max_bytes=10) == b"x" * 10


def test_decode_inline_payload_one_byte_over():
    with pytest.raises(PayloadTooLargeError) as exc_info:
        storage.decode_inline_payload(_b64(b"x" * 11), max_bytes=10)
    assert exc_info.value.size == 11
    assert exc_info.value.limit == 10
    assert exc_info.value.to_body() == {"error": exc_info.value.message, "size": 11, "limit": 10}


def test_decode_inline_payload_data_url():
    assert storage.decode_inline_payload("data:image/png;base64," + _b64(b"png"), max_bytes=10) == b"png"


def test_decode_inline_payload_invalid():
    with pytest.raises(ClientInputError):
        storage.decode_inline_payload("not base64!", max_bytes=10)


def test_split_data_url():
    assert storage.split_data_url("data:text/plain;base64,aGk=") == ("text/plain", "aGk=")
    assert storage.split_data_url("aGk=") == (None, "aGk=")


# --- Storage calls ---

@pytest.mark.asyncio
async def test_create_upload_target_accepts_camel_case_response():
    supabase = MagicMock()
    supabase.storage.from_.return_value.create_signed_upload_url.return_value = {
        "signedUrl": "https://x.supabase.co/storage/v1/object/upload/sign/myfile/p?token=t", "path": "p", "token": "t"
    }

    target = await storage.create_upload_target(supabase, "a.txt", bucket="myfile")

    assert target.signed_url.endswith("?token=t")
    assert target.path.endswith("-a.txt")
    assert "?" not in target.public_url
    supabase.storage.from_.assert_called_once_with("myfile")


@pytest.mark.asyncio
async def test_create_upload_target_without_signed_url():
    supabase = MagicMock()
    supabase.storage.from_.return_value.create_signed_upload_url.return_value = {"path": "p"}

    with pytest.raises(BackendOperationError) as exc_info:
        await storage.create_upload_target(supabase, "a.txt")
    assert exc_info.value.details == {"path": "p"}


@pytest.mark.asyncio
async def test_upload_inline_wraps_provider_error():
    class FakeStorageError(Exception):
        def __init__(self):
            super().__init__("The resource already exists")
            self.message = "The resource already exists"
            self.code = "Duplicate"
            self.status = 409

    supabase = MagicMock()
    supabase.storage.from_.return_value.upload.side_effect = FakeStorageError()

    with pytest.raises(BackendOperationError) as exc_info:
        await storage.upload_inline(supabase, "a.txt", b"abc", "text/plain")
    assert exc_info.value.message == "The resource already exists"
    assert exc_info.value.details == {"message": "The resource already exists", "code": "Duplicate", "status": 409}


# --- Formatting ---

@pytest.mark.parametrize("num_bytes, expected", [
    (None, "-"),
    (0, "0 Bytes"),
    (512, "512 Bytes"),
    (1536, "1.5 KB"),
    (1048576, "1 MB"),
    (5 * 1024 ** 4, "5120 GB"),
])
def test_format_file_size(num_bytes, expected):
    assert format_file_size(num_bytes) == expected
