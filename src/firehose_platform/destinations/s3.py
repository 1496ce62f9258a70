"""S3 bucket destination."""

from __future__ import annotations

from typing import Any

from firehose_platform.config.models import BufferingHints, S3DestinationConfig
from firehose_platform.destinations.base import (
    DestinationBindContext,
    DestinationBinding,
)
from firehose_platform.encryption import KmsKey
from firehose_platform.iam.grants import grant_on_arns
from firehose_platform.iam.policy import GrantEffect
from firehose_platform.iam.principals import Identity

S3_DELIVERY_ACTIONS: tuple[str, ...] = (
    "s3:AbortMultipartUpload",
    "s3:GetBucketLocation",
    "s3:GetObject",
    "s3:ListBucket",
    "s3:ListBucketMultipartUploads",
    "s3:PutObject",
)


def grant_bucket_delivery(bucket_arn: str, role: Identity) -> GrantEffect:
    """Allow *role* to write delivery objects into *bucket_arn*."""
    return grant_on_arns([bucket_arn, f"{bucket_arn}/*"], role, S3_DELIVERY_ACTIONS)


def buffering_properties(hints: BufferingHints) -> dict[str, Any]:
    return {
        "IntervalInSeconds": hints.interval_seconds,
        "SizeInMBs": hints.size_mib,
    }


class S3BucketDestination:
    """Delivers records to an S3 bucket as objects."""

    def __init__(self, config: S3DestinationConfig) -> None:
        self._config = config

    @property
    def bucket_arn(self) -> str:
        return self._config.bucket_arn

    def bind(self, context: DestinationBindContext) -> DestinationBinding:
        cfg = self._config
        grants = [grant_bucket_delivery(cfg.bucket_arn, context.role)]

        props: dict[str, Any] = {
            "BucketARN": cfg.bucket_arn,
            "RoleARN": context.role_arn,
            "BufferingHints": buffering_properties(cfg.buffering),
            "CompressionFormat": cfg.compression,
        }
        if cfg.prefix is not None:
            props["Prefix"] = cfg.prefix
        if cfg.error_output_prefix is not None:
            props["ErrorOutputPrefix"] = cfg.error_output_prefix
        if cfg.encryption_key_arn is not None:
            key = KmsKey(cfg.encryption_key_arn)
            grants.append(key.grant_encrypt_decrypt(context.role))
            props["EncryptionConfiguration"] = {
                "KMSEncryptionConfig": {"AWSKMSKeyARN": key.key_arn}
            }

        return DestinationBinding(
            config_fragment={"ExtendedS3DestinationConfiguration": props},
            self_grants=grants,
        )
