"""
S3 / MinIO storage for payment-proof images.

All functions use aioboto3 for async I/O. The same code works against:
  - MinIO in development  (endpoint_url=http://localhost:9000)
  - Real AWS S3           (endpoint_url=None)

The rest of the application treats a stored proof as an opaque URI
(`s3://bucket/key`); only this module knows how to turn it into bytes
or a download link.
"""
import re
import uuid
from typing import Optional

import aioboto3

from bayanihan.core.config import settings
from bayanihan.core.exceptions import ValidationException

ALLOWED_PROOF_TYPES = {"image/jpeg", "image/png", "image/webp", "application/pdf"}


def build_proof_key(job_id: str, filename: str) -> str:
    """
    Canonical key: proofs/{prefix4}/{job_id}/{random}-{safe_filename}

    The 4-hex prefix spreads objects across partitions; the random part
    keeps re-uploads for the same job from overwriting each other.
    """
    prefix4 = job_id.replace("-", "")[:4]
    return f"proofs/{prefix4}/{job_id}/{uuid.uuid4().hex[:12]}-{_sanitize_filename(filename)}"


def _sanitize_filename(name: str) -> str:
    """Keep only safe ASCII chars for S3 keys; collapse runs of underscores."""
    safe = re.sub(r"[^\w\-.]", "_", name, flags=re.ASCII)
    safe = re.sub(r"_+", "_", safe)
    return safe[:200] or "proof"


def _s3_client():
    """Return an async context-manager for an S3 client configured from settings."""
    session = aioboto3.Session()
    kwargs = dict(
        region_name=settings.s3_region,
        aws_access_key_id=settings.s3_aws_access_key_id,
        aws_secret_access_key=settings.s3_aws_secret_access_key,
    )
    if settings.s3_endpoint_url:
        kwargs["endpoint_url"] = settings.s3_endpoint_url
    return session.client("s3", **kwargs)


async def upload_proof(
    job_id: str,
    filename: str,
    content: bytes,
    content_type: Optional[str],
) -> str:
    """
    Store a proof-of-payment upload and return its URI.

    Raises:
        ValidationException: empty file, wrong type, or over the size cap.
    """
    if not content:
        raise ValidationException("Payment proof file is empty")
    if content_type not in ALLOWED_PROOF_TYPES:
        raise ValidationException(
            "Unsupported proof file type",
            details={"allowed": sorted(ALLOWED_PROOF_TYPES)},
        )
    if len(content) > settings.max_proof_size_bytes:
        raise ValidationException(
            f"Payment proof exceeds {settings.max_proof_size_mb} MB",
        )

    key = build_proof_key(job_id, filename or "proof")
    async with _s3_client() as s3:
        await s3.put_object(
            Bucket=settings.s3_bucket_name,
            Key=key,
            Body=content,
            ContentType=content_type,
        )
    return f"s3://{settings.s3_bucket_name}/{key}"


async def presign_proof_download(proof_uri: str, expires: int = 3600) -> Optional[str]:
    """Turn an `s3://` proof URI into a time-limited GET link; other URIs pass through."""
    if not proof_uri.startswith("s3://"):
        return proof_uri
    bucket, _, key = proof_uri[len("s3://"):].partition("/")
    async with _s3_client() as s3:
        return await s3.generate_presigned_url(
            "get_object",
            Params={"Bucket": bucket, "Key": key},
            ExpiresIn=expires,
        )
