"""Unit tests for the Supabase storage adapter."""

from unittest.mock import MagicMock, patch

import pytest

from services.storage_service import SupabaseStorage
from utils.errors import ConfigurationError, SignedUrlError, StorageError


@pytest.fixture
def supabase_client():
    """Mock supabase Client with a single bucket handle."""
    client = MagicMock()
    bucket = client.storage.from_.return_value
    bucket.create_signed_url.return_value = {"signedURL": "https://sb.example.com/object/sign/raw-videos/a.mp4?token=t"}
    bucket.get_public_url.return_value = "https://sb.example.com/object/public/raw-videos/uploads/a.mp4?"
    return client


@pytest.fixture
def storage(supabase_client):
    return SupabaseStorage(url=None, key=None, client=supabase_client)


@pytest.mark.unit
class TestSupabaseStorage:
    def test_client_created_from_credentials(self):
        with patch("services.storage_service.create_client") as create_client:
            storage = SupabaseStorage(url="https://sb.example.com", key="service-key")
        create_client.assert_called_once_with("https://sb.example.com", "service-key")
        assert storage.configured

    def test_unconfigured(self):
        storage = SupabaseStorage(url=None, key=None)
        assert not storage.configured
        with pytest.raises(ConfigurationError, match="not configured"):
            storage.get_public_url("a.mp4")

    @pytest.mark.asyncio
    async def test_create_signed_url(self, storage, supabase_client):
        url = await storage.create_signed_url("a.mp4", 60)

        assert url.startswith("https://sb.example.com/object/sign/")
        supabase_client.storage.from_.assert_called_with("raw-videos")
        supabase_client.storage.from_.return_value.create_signed_url.assert_called_once_with("a.mp4", 60)

    @pytest.mark.asyncio
    async def test_signed_url_download_option(self, storage, supabase_client):
        await storage.create_signed_url("a.mp4", 300, download=True)
        supabase_client.storage.from_.return_value.create_signed_url.assert_called_once_with(
            "a.mp4", 300, {"download": True}
        )

    @pytest.mark.asyncio
    async def test_signed_url_camel_case_key(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.create_signed_url.return_value = {"signedUrl": "https://u"}
        assert await storage.create_signed_url("a.mp4", 60) == "https://u"

    @pytest.mark.asyncio
    async def test_signed_url_provider_error(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.create_signed_url.side_effect = RuntimeError("Object not found")
        with pytest.raises(SignedUrlError, match="Object not found"):
            await storage.create_signed_url("missing.mp4", 60)

    @pytest.mark.asyncio
    async def test_signed_url_missing_in_response(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.create_signed_url.return_value = {}
        with pytest.raises(SignedUrlError, match="did not return"):
            await storage.create_signed_url("a.mp4", 60)

    def test_public_url(self, storage):
        assert storage.get_public_url("uploads/a.mp4") == "https://sb.example.com/object/public/raw-videos/uploads/a.mp4"

    def test_public_url_not_naming_object(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.get_public_url.return_value = "https://sb.example.com/"
        assert storage.get_public_url("uploads/a.mp4") is None

    @pytest.mark.asyncio
    async def test_readable_url_private_bucket_signs(self, storage):
        url = await storage.resolve_readable_url("uploads/a.mp4", 3600)
        assert "/sign/" in url

    @pytest.mark.asyncio
    async def test_readable_url_public_bucket(self, supabase_client):
        storage = SupabaseStorage(url=None, key=None, raw_bucket_public=True, client=supabase_client)
        url = await storage.resolve_readable_url("uploads/a.mp4", 3600)
        assert "/public/" in url
        supabase_client.storage.from_.return_value.create_signed_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload(self, storage, supabase_client):
        path = await storage.upload_bytes(
            "uploads/1_a.mp4", b"data", content_type="video/mp4", cache_control="3600"
        )

        assert path == "uploads/1_a.mp4"
        supabase_client.storage.from_.return_value.upload.assert_called_once_with(
            "uploads/1_a.mp4",
            b"data",
            file_options={"content-type": "video/mp4", "upsert": "false", "cache-control": "3600"},
        )

    @pytest.mark.asyncio
    async def test_upload_failure(self, storage, supabase_client):
        supabase_client.storage.from_.return_value.upload.side_effect = RuntimeError("Duplicate")
        with pytest.raises(StorageError, match="Duplicate"):
            await storage.upload_bytes("a.mp4", b"", content_type="video/mp4")
