"""
Supabase Storage client for payout proofs.

Staff attach a transfer receipt (image or PDF) when processing a payout. The
file lands under payout-proofs/ in the configured bucket and the payout keeps
its public URL as proof_of_payment_url.
"""
import uuid
from typing import Optional

from supabase import Client, create_client

from app.config import settings


class StorageClient:
    """Blob store holding payout proof files."""

    _client: Optional[Client] = None

    @classmethod
    def get_client(cls) -> Client:
        """Supabase client built from the service key, shared per process."""
        if cls._client is None:
            if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
                raise ValueError(
                    "Supabase credentials not configured. "
                    "Set SUPABASE_URL and SUPABASE_SERVICE_KEY environment variables."
                )
            cls._client = create_client(
                settings.SUPABASE_URL,
                settings.SUPABASE_SERVICE_KEY
            )
        return cls._client

    @classmethod
    def get_bucket(cls):
        """Bucket that payout proofs are written to (SUPABASE_STORAGE_BUCKET)."""
        client = cls.get_client()
        return client.storage.from_(settings.SUPABASE_STORAGE_BUCKET)

    @classmethod
    def upload(
        cls,
        content: bytes,
        path: str,
        content_type: str
    ) -> str:
        """
        Store a validated payout proof.

        Args:
            content: Receipt bytes, already checked against the allowed types and size
            path: Object path, e.g. "payout-proofs/3f2a9c1d7e4b.pdf"
            content_type: MIME type recorded on the object

        Returns:
            Public URL saved on the payout as proof_of_payment_url

        Never overwrites: the path is unique per upload.
        """
        bucket = cls.get_bucket()

        bucket.upload(
            path=path,
            file=content,
            file_options={"content-type": content_type, "upsert": "false"}
        )

        return bucket.get_public_url(path)

    @classmethod
    def generate_unique_filename(cls, original_filename: str, prefix: str = "") -> str:
        """
        Object path for a new proof: random id, original extension kept.

        The staff member's filename is not reused, only its extension.
        """
        ext = ""
        if "." in original_filename:
            ext = "." + original_filename.rsplit(".", 1)[1].lower()

        unique_id = uuid.uuid4().hex[:12]

        if prefix:
            return f"{prefix}/{unique_id}{ext}"
        return f"{unique_id}{ext}"
