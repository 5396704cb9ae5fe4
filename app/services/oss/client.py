"""
Aliyun OSS through its S3-compatible API. Clients are built from an injected
StorageConfig; no environment lookups happen here.
"""
import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.core.logging import get_logger
from app.services.oss.config import StorageConfig

logger = get_logger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def build_client(config: StorageConfig):
    kwargs = {}
    if config.security_token:
        kwargs["aws_session_token"] = config.security_token
    return boto3.client(
        service_name="s3",
        endpoint_url=config.endpoint_url,
        aws_access_key_id=config.access_key,
        aws_secret_access_key=config.secret_key,
        region_name=config.region or None,
        config=Config(
            signature_version="s3v4",
            s3={"addressing_style": "virtual"},
            retries={"max_attempts": 1, "mode": "standard"},
        ),
        **kwargs,
    )


def error_code(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def is_not_found(exc: Exception) -> bool:
    if not isinstance(exc, ClientError):
        return False
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404 or error_code(exc) in NOT_FOUND_CODES


def verify_bucket(client, bucket: str) -> bool:
    """
    Light reachability check run at startup. AccessDenied is tolerated
    (restricted keys often cannot read bucket metadata).
    """
    try:
        client.head_bucket(Bucket=bucket)
    except ClientError as e:
        if error_code(e) in ("403", "AccessDenied"):
            logger.warning("Skipping bucket check: access denied", extra={"bucket": bucket})
            return True
        logger.error("Bucket check failed", extra={"bucket": bucket, "error": str(e)})
        return False
    except BotoCoreError as e:
        logger.error("Bucket check failed", extra={"bucket": bucket, "error": str(e)})
        return False
    logger.info("Bucket reachable", extra={"bucket": bucket})
    return True
