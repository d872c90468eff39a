"""
Avatar storage for DJ profiles.
Uploads headshots to the public avatars bucket of the S3-compatible store.
"""

import logging
from typing import Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..config import (
    AVATAR_BUCKET,
    STORAGE_ACCESS_KEY_ID,
    STORAGE_ENDPOINT_URL,
    STORAGE_PUBLIC_URL,
    STORAGE_REGION,
    STORAGE_SECRET_ACCESS_KEY,
)

logger = logging.getLogger(__name__)

MAX_AVATAR_SIZE_BYTES = 5 * 1024 * 1024  # 5MB


class AvatarUploadError(Exception):
    """Raised when the avatar could not be stored"""


def get_storage_client():
    """Get configured boto3 client for the object store"""
    return boto3.client(
        "s3",
        endpoint_url=STORAGE_ENDPOINT_URL,
        aws_access_key_id=STORAGE_ACCESS_KEY_ID,
        aws_secret_access_key=STORAGE_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
        region_name=STORAGE_REGION,
    )


def avatar_extension(content_type: Optional[str]) -> str:
    """png and webp keep their extension; everything else is stored as jpg"""
    if content_type == "image/png":
        return "png"
    if content_type == "image/webp":
        return "webp"
    return "jpg"


def avatar_key(user_id: int, content_type: Optional[str]) -> str:
    return f"{user_id}/avatar.{avatar_extension(content_type)}"


def public_avatar_url(key: str) -> str:
    if STORAGE_PUBLIC_URL:
        return f"{STORAGE_PUBLIC_URL}/{key}"
    return f"{(STORAGE_ENDPOINT_URL or '').rstrip('/')}/{AVATAR_BUCKET}/{key}"


def upload_avatar(user_id: int, content: bytes, content_type: Optional[str]) -> str:
    """
    Store a DJ headshot, overwriting any previous one at the same key.

    Returns:
        Public URL of the stored image

    Raises:
        AvatarUploadError: empty/oversized file or storage failure
    """
    if not content:
        raise AvatarUploadError("Uploaded file is empty")
    if len(content) > MAX_AVATAR_SIZE_BYTES:
        raise AvatarUploadError("Image is larger than 5MB")

    key = avatar_key(user_id, content_type)
    try:
        get_storage_client().put_object(
            Bucket=AVATAR_BUCKET,
            Key=key,
            Body=content,
            ContentType=content_type or "image/jpeg",
            CacheControl="3600",
        )
    except (BotoCoreError, ClientError) as e:
        logger.error(f"❌ Avatar upload failed for user {user_id}: {e}")
        raise AvatarUploadError(str(e)) from e

    logger.info(f"✅ Avatar uploaded for user {user_id}: {key}")
    return public_avatar_url(key)
