"""
AWS S3 blob storage for attachments and generated artifacts.

Provides a clean interface for S3 operations with proper error handling.
"""
import logging
from typing import Optional
import boto3
from botocore.exceptions import ClientError, NoCredentialsError
from config import get_settings

logger = logging.getLogger(__name__)


class StorageService:
    """
    S3 client for attachment uploads, roadmap PDFs and voice notes.

    Credentials are automatically detected from ~/.aws/credentials or environment.
    """

    def __init__(self, bucket_name: Optional[str] = None, region: Optional[str] = None,
                 public_base_url: Optional[str] = None):
        """
        Initialize S3 client with settings from config.

        AWS credentials are auto-detected from:
        1. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY)
        2. ~/.aws/credentials file
        3. IAM role (when running on AWS)
        """
        settings = get_settings()
        self.bucket_name = bucket_name or settings.aws_s3_bucket
        self.region = region or settings.aws_region
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")

        try:
            self.s3_client = boto3.client('s3', region_name=self.region)
            logger.info(f"S3 client initialized for bucket: {self.bucket_name}, region: {self.region}")
        except NoCredentialsError:
            logger.error("AWS credentials not found! Check ~/.aws/credentials or environment variables")
            raise

    def public_url(self, s3_key: str) -> str:
        """Public URL for an object key."""
        if self.public_base_url:
            return f"{self.public_base_url}/{s3_key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{s3_key}"

    def upload(self, s3_key: str, data: bytes, content_type: Optional[str] = None) -> str:
        """
        Upload bytes to S3.

        Args:
            s3_key: S3 object key
            data: Bytes to upload
            content_type: MIME type (e.g., "application/pdf")

        Returns:
            Public URL of the uploaded object

        Raises:
            ClientError: If upload fails
        """
        try:
            extra_args = {'ContentType': content_type} if content_type else {}
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=s3_key,
                Body=data,
                **extra_args
            )
            logger.info(f"Uploaded {len(data)} bytes to s3://{self.bucket_name}/{s3_key}")
            return self.public_url(s3_key)
        except ClientError as e:
            logger.error(f"Failed to upload {s3_key} to S3: {e}")
            raise

    def download(self, s3_key: str) -> bytes:
        """
        Download object contents as bytes.

        Raises:
            ClientError: If download fails
        """
        try:
            response = self.s3_client.get_object(Bucket=self.bucket_name, Key=s3_key)
            data = response['Body'].read()
            logger.info(f"Downloaded bytes from s3://{self.bucket_name}/{s3_key}")
            return data
        except ClientError as e:
            logger.error(f"Failed to download {s3_key} from S3: {e}")
            raise

    def delete(self, s3_key: str) -> None:
        """Delete an object. Raises ClientError on failure."""
        try:
            self.s3_client.delete_object(Bucket=self.bucket_name, Key=s3_key)
            logger.info(f"Deleted s3://{self.bucket_name}/{s3_key}")
        except ClientError as e:
            logger.error(f"Failed to delete {s3_key} from S3: {e}")
            raise

    def exists(self, s3_key: str) -> bool:
        """Check whether an object exists."""
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=s3_key)
            return True
        except ClientError as e:
            if e.response.get('Error', {}).get('Code') in ('404', 'NoSuchKey', 'NotFound'):
                return False
            logger.error(f"Failed to check {s3_key} in S3: {e}")
            raise

    def get_presigned_url(self, s3_key: str, expiration: int = 3600) -> str:
        """
        Generate a presigned URL for temporary access to an S3 object.

        Raises:
            ClientError: If URL generation fails
        """
        try:
            return self.s3_client.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': s3_key},
                ExpiresIn=expiration
            )
        except ClientError as e:
            logger.error(f"Failed to generate presigned URL for {s3_key}: {e}")
            raise


# Global storage instance
_storage: Optional[StorageService] = None


def get_storage() -> StorageService:
    """Get or create the process-wide storage client."""
    global _storage
    if _storage is None:
        _storage = StorageService()
    return _storage


def reset_storage():
    """Reset the global storage client (useful for testing)."""
    global _storage
    _storage = None
