"""
Best-effort cleanup of product media stored in S3.

Cleanup is a side effect of deleting a product and must never undo or block
that deletion, so every storage failure is logged and dropped here.
"""
import logging
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from django.conf import settings

logger = logging.getLogger("storehub.media")

# S3 DeleteObjects accepts at most 1000 keys per call.
DELETE_BATCH_SIZE = 1000


def object_key_from_url(url: str, bucket: str):
    """
    Extract the object key from a public bucket URL
    (https://<bucket>.s3.<region>.amazonaws.com/<key>). Foreign URLs give None.
    """
    parsed = urlparse(url)
    if not parsed.hostname or not parsed.hostname.startswith(f"{bucket}.s3"):
        return None
    key = unquote(parsed.path.lstrip('/'))
    return key or None


def get_s3_client():
    return boto3.client('s3', region_name=settings.AWS_REGION or None)


def delete_media(urls) -> int:
    """Delete the bucket objects behind ``urls``. Returns how many keys were submitted."""
    bucket = settings.AWS_S3_BUCKET
    if not bucket:
        logger.debug("No media bucket configured, skipping cleanup of %d urls", len(urls))
        return 0

    keys = [k for k in (object_key_from_url(u, bucket) for u in urls) if k]
    if not keys:
        return 0

    try:
        client = get_s3_client()
        for start in range(0, len(keys), DELETE_BATCH_SIZE):
            batch = keys[start:start + DELETE_BATCH_SIZE]
            client.delete_objects(
                Bucket=bucket,
                Delete={'Objects': [{'Key': k} for k in batch], 'Quiet': True},
            )
    except (BotoCoreError, ClientError) as exc:
        logger.warning("Media cleanup failed for %d objects in %s: %s", len(keys), bucket, exc)
        return 0

    logger.info("Removed %d media objects from %s", len(keys), bucket)
    return len(keys)
