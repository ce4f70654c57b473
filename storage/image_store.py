"""S3 storage for event cover images."""
import logging
from typing import Optional, Tuple
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

logger = logging.getLogger(__name__)


class S3ImageStore:
    """Deletes event images stored in an S3 bucket."""

    def __init__(self, bucket_name: str):
        """
        Initialize S3 client.

        Args:
            bucket_name: Bucket holding event images
        """
        self.bucket_name = bucket_name
        self.s3 = boto3.client('s3')
        logger.info(f"Initialized S3ImageStore for bucket: {bucket_name}")

    def delete_image(self, image_url: str) -> bool:
        """
        Delete the image behind image_url.

        Failures are logged and reported through the return value so an
        image problem never blocks deleting the event itself.

        Args:
            image_url: s3:// URL or virtual-hosted / path-style HTTPS URL

        Returns:
            True if a delete request was issued, False otherwise
        """
        location = self._parse_location(image_url)
        if location is None:
            logger.warning(f"Not an image in bucket {self.bucket_name}: {image_url}")
            return False

        bucket, key = location
        try:
            self.s3.delete_object(Bucket=bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Failed to delete image {key}: {e}")
            return False

        logger.info(f"Deleted image {key} from {bucket}")
        return True

    def _parse_location(self, image_url: str) -> Optional[Tuple[str, str]]:
        """
        Extract (bucket, key) from an image URL.

        Args:
            image_url: Image URL

        Returns:
            Tuple of (bucket, key), or None if the URL is not in this bucket
        """
        if not image_url:
            return None

        parsed = urlparse(image_url)
        path = unquote(parsed.path.lstrip('/'))

        if parsed.scheme == 's3':
            bucket, key = parsed.netloc, path
        elif parsed.scheme in ('http', 'https'):
            host = parsed.netloc
            if host.startswith(f"{self.bucket_name}.s3"):
                bucket, key = self.bucket_name, path
            elif host.startswith('s3.') or host.startswith('s3-'):
                bucket, _, key = path.partition('/')
            else:
                return None
        else:
            return None

        if bucket != self.bucket_name or not key:
            return None
        return bucket, key
