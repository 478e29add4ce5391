"""Supabase Storage adapter.

Wraps the synchronous supabase-py storage client for use from async handlers:
- Signed URLs for private objects (clip download, redirects, AI analysis)
- Public URL lookup
- Uploads for raw videos and rendered clips
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import unquote

from supabase import Client, create_client

from utils.errors import ConfigurationError, SignedUrlError, StorageError

logger = logging.getLogger(__name__)


class SupabaseStorage:
    """Supabase object storage service.

    The client is created once at startup and shared by every request.
    """

    def __init__(
        self,
        url: Optional[str],
        key: Optional[str],
        raw_bucket: str = "raw-videos",
        clips_bucket: str = "processed-clips",
        raw_bucket_public: bool = False,
        client: Optional[Client] = None,
    ):
        """Initialize storage.

        Args:
            url: Supabase project URL
            key: Service role or anon key
            raw_bucket: Bucket holding uploaded source videos
            clips_bucket: Bucket receiving rendered clips
            raw_bucket_public: Whether raw_bucket allows anonymous reads
            client: Pre-built client (tests)
        """
        self.url = url
        self.raw_bucket = raw_bucket
        self.clips_bucket = clips_bucket
        self.raw_bucket_public = raw_bucket_public
        self._client = client

        if self._client is None and url and key:
            self._client = create_client(url, key)
            logger.info(f"Supabase storage initialized (raw: {raw_bucket}, clips: {clips_bucket})")
        elif self._client is None:
            logger.warning("Supabase URL/key missing - storage-backed features will fail")

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self) -> Client:
        if self._client is None:
            raise ConfigurationError("Supabase client not configured on server.")
        return self._client

    async def create_signed_url(
        self,
        path: str,
        expires_in: int,
        bucket: Optional[str] = None,
        download: bool = False,
    ) -> str:
        """Issue a time-limited URL for a private object.

        Args:
            path: Object key inside the bucket
            expires_in: Lifetime in seconds
            bucket: Bucket name (defaults to the raw-videos bucket)
            download: Ask storage to send Content-Disposition: attachment

        Returns:
            The signed URL

        Raises:
            SignedUrlError: if the provider fails or returns no URL
        """
        client = self._require_client()
        bucket = bucket or self.raw_bucket
        options = {"download": True} if download else None

        def _sign() -> dict:
            storage = client.storage.from_(bucket)
            if options:
                return storage.create_signed_url(path, expires_in, options)
            return storage.create_signed_url(path, expires_in)

        try:
            data = await asyncio.to_thread(_sign)
        except Exception as e:
            logger.error(f"Supabase signed URL generation error for {bucket}/{path}: {e}")
            raise SignedUrlError(f"Failed to get Supabase signed URL: {e}") from e

        signed_url = None
        if isinstance(data, dict):
            signed_url = data.get("signedURL") or data.get("signedUrl") or data.get("signed_url")
        if not signed_url:
            raise SignedUrlError("Supabase did not return a signed URL.")

        logger.debug(f"Signed URL issued for {bucket}/{path} ({expires_in}s)")
        return signed_url

    def get_public_url(self, path: str, bucket: Optional[str] = None) -> Optional[str]:
        """Return the public URL for an object, or None if none can be built."""
        client = self._require_client()
        bucket = bucket or self.raw_bucket
        try:
            public_url = client.storage.from_(bucket).get_public_url(path)
        except Exception as e:
            logger.warning(f"Public URL lookup failed for {bucket}/{path}: {e}")
            return None
        if isinstance(public_url, str):
            public_url = public_url.rstrip("?")
        # A URL that does not name the object is just the bucket root
        if not public_url or path not in unquote(public_url):
            return None
        return public_url

    async def resolve_readable_url(self, path: str, expires_in: int) -> str:
        """Return a URL an external service can fetch path from.

        Public buckets get a plain public URL; otherwise (or if none can be
        built) a signed URL valid for expires_in seconds.
        """
        if self.raw_bucket_public:
            public_url = self.get_public_url(path)
            if public_url:
                logger.info(f"Using public URL for storage object: {path}")
                return public_url
        logger.info(f"Using signed URL for storage object: {path}")
        return await self.create_signed_url(path, expires_in)

    async def upload_bytes(
        self,
        path: str,
        data: bytes,
        content_type: str,
        bucket: Optional[str] = None,
        upsert: bool = False,
        cache_control: Optional[str] = None,
    ) -> str:
        """Upload an object.

        Returns:
            The object key as stored

        Raises:
            StorageError: if the upload fails
        """
        client = self._require_client()
        bucket = bucket or self.raw_bucket
        file_options = {"content-type": content_type, "upsert": "true" if upsert else "false"}
        if cache_control:
            file_options["cache-control"] = cache_control

        def _upload():
            return client.storage.from_(bucket).upload(path, data, file_options=file_options)

        try:
            await asyncio.to_thread(_upload)
        except Exception as e:
            logger.error(f"Upload to {bucket}/{path} failed: {e}")
            raise StorageError(f"Supabase upload error: {e}") from e

        size_mb = len(data) / (1024 * 1024)
        logger.info(f"Uploaded {bucket}/{path} ({size_mb:.1f} MB)")
        return path
