"""Blob storage for proof-of-performance files."""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from google.cloud import storage

from hubmarket.config import storage_config
from hubmarket.errors import UpstreamError

class BlobStore(ABC):
    """Opaque file store that hands out time-limited links."""

    @abstractmethod
    def get_signed_url(self, path: str, ttl_seconds: int) -> str:
        """
        Signed GET URL for ``path`` valid for ``ttl_seconds``.

        Raises:
            UpstreamError: The store could not sign the link
        """

class GCSBlobStore(BlobStore):
    """Google Cloud Storage bucket."""

    def __init__(self, bucket_name: Optional[str] = None, client: Optional[storage.Client] = None):
        self.client = client or storage.Client()
        self.bucket_name = bucket_name or storage_config.bucket

    def get_signed_url(self, path: str, ttl_seconds: int) -> str:
        bucket = self.client.bucket(self.bucket_name)
        blob = bucket.blob(path)
        try:
            return blob.generate_signed_url(
                version="v4",
                expiration=timedelta(seconds=ttl_seconds),
                method="GET",
            )
        except Exception as e:
            # Credentials without a signing key fail here, not at client creation
            raise UpstreamError(
                f"Could not sign URL: {e}",
                "get_signed_url",
                {"bucket": self.bucket_name, "path": path},
            ) from e
