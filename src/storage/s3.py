import logging
import boto3
from typing import BinaryIO, Dict, Optional
from botocore.exceptions import BotoCoreError, ClientError
from .base import StorageStrategy
from .errors import StorageIOError, StorageNotFoundError
from .policy import validate_storage_key
from src.models.domain import MediaCategory

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _error_code(error: ClientError) -> str:
    return error.response.get('Error', {}).get('Code', '')


class S3StorageStrategy(StorageStrategy):
    """S3/MinIO storage strategy using boto3 (sync). Categories map to key prefixes."""

    strategy_name = "s3"

    def __init__(
        self,
        bucket: str,
        namespaces: Dict[MediaCategory, str],
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: str = "us-east-1"
    ):
        super().__init__(namespaces)
        self.bucket = bucket
        self.endpoint_url = endpoint_url
        self.region = region

        session_kwargs = {'region_name': self.region}
        if access_key and secret_key:
            session_kwargs['aws_access_key_id'] = access_key
            session_kwargs['aws_secret_access_key'] = secret_key
        self.session = boto3.Session(**session_kwargs)

        client_kwargs = {}
        if self.endpoint_url:
            client_kwargs['endpoint_url'] = self.endpoint_url

        self.client = self.session.client('s3', **client_kwargs)

    def initialize(self, create_bucket: bool = False) -> None:
        """
        Check the bucket at startup and optionally create it.

        Failures are logged; the strategy then simply reports itself unavailable.
        """
        if not self.bucket:
            logger.warning("S3 storage strategy has no bucket configured")
            return
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"S3 storage strategy initialized with bucket '{self.bucket}'")
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES and create_bucket:
                self._create_bucket()
            else:
                logger.error(f"S3 bucket '{self.bucket}' does not exist or is not accessible: {e}")
        except BotoCoreError as e:
            logger.error(f"Failed to initialize S3 storage strategy: {e}")

    def _create_bucket(self) -> None:
        try:
            if self.region == 'us-east-1':
                self.client.create_bucket(Bucket=self.bucket)
            else:
                self.client.create_bucket(
                    Bucket=self.bucket,
                    CreateBucketConfiguration={'LocationConstraint': self.region}
                )
            logger.info(f"Created S3 bucket '{self.bucket}'")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to create S3 bucket '{self.bucket}': {e}")

    def write(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Upload data to S3 (sync)."""
        validate_storage_key(key)
        put_kwargs = {'Bucket': self.bucket, 'Key': key, 'Body': data}
        if content_type:
            put_kwargs['ContentType'] = content_type
        try:
            self.client.put_object(**put_kwargs)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to store {key} in S3: {e}")
            raise StorageIOError(f"Failed to store file in S3: {key}") from e
        return key

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            if _error_code(e) not in NOT_FOUND_CODES:
                logger.error(f"Error checking if file exists in S3: {key}: {e}")
            return False
        except Exception as e:
            logger.error(f"Error checking if file exists in S3: {key}: {e}")
            return False

    def size(self, key: str) -> int:
        try:
            response = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise StorageNotFoundError(key)
            raise StorageIOError(f"Failed to get file size from S3: {key}") from e
        except BotoCoreError as e:
            raise StorageIOError(f"Failed to get file size from S3: {key}") from e
        return response['ContentLength']

    def delete(self, key: str) -> None:
        # S3 deletes are idempotent: deleting a missing key succeeds
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
            logger.info(f"Deleted file from S3: {key}")
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to delete file from S3: {key}: {e}")

    def read_chunk(self, key: str, start: int, end: int) -> bytes:
        byte_range = self.resolve_range(start, end, self.size(key))
        try:
            response = self.client.get_object(
                Bucket=self.bucket,
                Key=key,
                Range=f"bytes={byte_range.start}-{byte_range.end}"
            )
            return response['Body'].read()
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise StorageNotFoundError(key)
            logger.error(f"Failed to read file chunk from S3: {key}: {e}")
            raise StorageIOError(f"Failed to read file chunk from S3: {key}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to read file chunk from S3: {key}: {e}")
            raise StorageIOError(f"Failed to read file chunk from S3: {key}") from e

    def as_resource(self, key: str) -> BinaryIO:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise StorageNotFoundError(key) from e
            logger.error(f"Failed to get file from S3: {key}: {e}")
            raise StorageIOError(f"Failed to get file from S3: {key}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to get file from S3: {key}: {e}")
            raise StorageIOError(f"Failed to get file from S3: {key}") from e
        return response['Body']

    def is_available(self) -> bool:
        if not self.bucket:
            return False
        try:
            if self.session.get_credentials() is None:
                return False
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except Exception as e:
            logger.warning(f"S3 storage is not available: {e}")
            return False

    def supports_streaming(self, key: str) -> bool:
        # Native partial GETs
        return True

    def optimal_chunk_size(self, key: str) -> int:
        return 512 * 1024
