import pytest

from core.config import Settings, DEFAULT_STORAGE_BUCKET


@pytest.mark.parametrize("bucket", ["", "   "])
def test_blank_bucket_falls_back_to_default(bucket):
    assert Settings(FILE_STORAGE_BUCKET=bucket).FILE_STORAGE_BUCKET == DEFAULT_STORAGE_BUCKET


def test_configured_bucket_is_kept():
    assert Settings(FILE_STORAGE_BUCKET=" avatars ").FILE_STORAGE_BUCKET == "avatars"
