"""Upload service for payout proof validation and storage."""
import io
import logging
from typing import Optional, Tuple

from PIL import Image

from app.config import settings
from app.core.exceptions import InvalidArgumentError, UpstreamError
from app.core.storage import StorageClient


logger = logging.getLogger(__name__)


# Allowed MIME types for proof of payment
ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

ALLOWED_DOCUMENT_TYPES = {
    "application/pdf": ".pdf",
}


class UploadService:
    """Service for handling payout proof uploads."""

    @staticmethod
    def validate_image(
        content: bytes,
        content_type: str,
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate image file.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if content_type not in ALLOWED_IMAGE_TYPES:
            return False, f"Invalid image type: {content_type}. Allowed: {', '.join(ALLOWED_IMAGE_TYPES.keys())}"

        try:
            img = Image.open(io.BytesIO(content))
            img.verify()
        except Exception:
            return False, "Invalid or corrupted image file"

        return True, None

    @staticmethod
    def validate_document(
        content: bytes,
        content_type: str,
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate document file.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if content_type not in ALLOWED_DOCUMENT_TYPES:
            return False, f"Invalid document type: {content_type}. Allowed: PDF"

        # Basic PDF validation (check magic bytes)
        if not content.startswith(b"%PDF"):
            return False, "Invalid PDF file"

        return True, None

    @classmethod
    def validate_proof(cls, content: bytes, content_type: str) -> None:
        """Raise InvalidArgumentError unless the file is an acceptable proof of payment."""
        if not content:
            raise InvalidArgumentError("Proof of payment file is empty", field="proof_file")

        if len(content) > settings.MAX_PROOF_FILE_SIZE:
            max_mb = settings.MAX_PROOF_FILE_SIZE / (1024 * 1024)
            actual_mb = len(content) / (1024 * 1024)
            raise InvalidArgumentError(
                f"File too large: {actual_mb:.1f}MB. Maximum: {max_mb:.0f}MB",
                field="proof_file",
            )

        if content_type in ALLOWED_DOCUMENT_TYPES:
            is_valid, error = cls.validate_document(content, content_type)
        elif content_type in ALLOWED_IMAGE_TYPES:
            is_valid, error = cls.validate_image(content, content_type)
        else:
            is_valid, error = False, (
                f"Invalid file type: {content_type}. Allowed: JPEG, PNG, WebP, PDF"
            )

        if not is_valid:
            raise InvalidArgumentError(error, field="proof_file")

    @classmethod
    def upload_proof(cls, content: bytes, filename: str, content_type: str) -> str:
        """
        Upload a validated proof of payment.

        Returns:
            Public URL of the stored file
        """
        path = StorageClient.generate_unique_filename(filename or "proof", settings.PAYOUT_PROOF_FOLDER)
        try:
            url = StorageClient.upload(content, path, content_type)
        except Exception as e:
            logger.error(f"Proof upload to {path} failed: {e}")
            raise UpstreamError("Failed to upload proof of payment")

        logger.info(f"Uploaded payout proof to {path}")
        return url
