import uuid
import logging
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from circlebuy.config import settings

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def _default_s3_client():
    if not (settings.aws_access_key_id and settings.aws_secret_access_key):
        raise ValueError("AWS credentials are not configured for media storage")
    return boto3.client(
        "s3",
        aws_access_key_id=settings.aws_access_key_id,
        aws_secret_access_key=settings.aws_secret_access_key,
        region_name=settings.aws_region,
    )


class S3Storage:
    """Public media bucket holding product images and avatars"""

    def __init__(self, s3_client=None, bucket_name: Optional[str] = None):
        self.bucket_name = bucket_name or settings.s3_bucket_name
        if not self.bucket_name:
            raise ValueError("S3_BUCKET_NAME is not configured")
        self.s3_client = s3_client or _default_s3_client()

    def public_url(self, key: str) -> str:
        base = settings.media_public_base_url or f"https://{self.bucket_name}.s3.{settings.aws_region}.amazonaws.com"
        return f"{base.rstrip('/')}/{key}"

    def upload_image(self, file_content: bytes, prefix: str, content_type: str) -> str:
        """Store an image under prefix/<random>.<ext>; ValueError for bad type or size."""
        if content_type not in IMAGE_EXTENSIONS:
            raise ValueError(f"Unsupported image type: {content_type}")
        if len(file_content) > MAX_IMAGE_BYTES:
            raise ValueError("Image exceeds the 5 MB limit")

        key = f"{prefix.strip('/')}/{uuid.uuid4().hex}.{IMAGE_EXTENSIONS[content_type]}"
        try:
            self.s3_client.put_object(Bucket=self.bucket_name, Key=key, Body=file_content, ContentType=content_type)
        except ClientError as e:
            logger.error(f"S3 upload of {key} failed: {e}")
            raise
        return self.public_url(key)


def get_storage() -> S3Storage:
    return S3Storage()
