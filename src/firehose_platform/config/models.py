"""Pydantic configuration models for delivery stream declarations."""

from __future__ import annotations

from enum import StrEnum
from typing import Literal, Self

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from firehose_platform.identifiers import (
    DeploymentScope,
    parse_arn,
    validate_delivery_stream_name,
)


class StreamEncryption(StrEnum):
    """Requested server-side encryption mode."""

    UNENCRYPTED = "unencrypted"
    CUSTOMER_MANAGED = "customer_managed"
    AWS_OWNED = "aws_owned"


class DestinationType(StrEnum):
    """Supported delivery destinations."""

    S3 = "s3"
    HTTP_ENDPOINT = "http_endpoint"


class EngineType(StrEnum):
    """Provisioning backends."""

    TEMPLATE = "template"
    BOTO3 = "boto3"


def _check_arn(value: str, service: str) -> str:
    parts = parse_arn(value)
    if parts.service != service:
        msg = f"'{value}' is not a {service} ARN"
        raise ValueError(msg)
    return value


class BufferingHints(BaseModel):
    """How long / how much Firehose buffers before delivering."""

    interval_seconds: int = Field(default=300, ge=0, le=900)
    size_mib: int = Field(default=5, ge=1, le=128)


class S3DestinationConfig(BaseModel):
    """Deliver records to an S3 bucket."""

    bucket_arn: str
    prefix: str | None = None
    error_output_prefix: str | None = None
    compression: Literal["UNCOMPRESSED", "GZIP", "ZIP", "Snappy", "HADOOP_SNAPPY"] = (
        "UNCOMPRESSED"
    )
    buffering: BufferingHints = BufferingHints()
    encryption_key_arn: str | None = None

    @field_validator("bucket_arn")
    @classmethod
    def validate_bucket_arn(cls, v: str) -> str:
        return _check_arn(v, "s3")

    @field_validator("encryption_key_arn")
    @classmethod
    def validate_key_arn(cls, v: str | None) -> str | None:
        return None if v is None else _check_arn(v, "kms")


class HttpEndpointDestinationConfig(BaseModel):
    """Deliver records to an HTTP endpoint, backing up failures to S3."""

    url: str = Field(pattern=r"^https://")
    name: str | None = None
    access_key: SecretStr | None = None
    backup_bucket_arn: str
    backup_mode: Literal["FailedDataOnly", "AllData"] = "FailedDataOnly"
    retry_duration_seconds: int = Field(default=300, ge=0, le=7200)
    buffering: BufferingHints = BufferingHints(interval_seconds=60, size_mib=1)

    @field_validator("backup_bucket_arn")
    @classmethod
    def validate_backup_bucket_arn(cls, v: str) -> str:
        return _check_arn(v, "s3")


class DestinationConfig(BaseModel):
    """Configuration for the single destination of a delivery stream."""

    destination_type: DestinationType
    s3: S3DestinationConfig | None = None
    http_endpoint: HttpEndpointDestinationConfig | None = None

    @model_validator(mode="after")
    def check_matching_sub_config(self) -> Self:
        """Ensure the sub-config matching destination_type is provided."""
        if self.destination_type == DestinationType.S3 and self.s3 is None:
            msg = "s3 config is required when destination_type is 's3'"
            raise ValueError(msg)
        if (
            self.destination_type == DestinationType.HTTP_ENDPOINT
            and self.http_endpoint is None
        ):
            msg = "http_endpoint config is required when destination_type is 'http_endpoint'"
            raise ValueError(msg)
        return self


class DeliveryStreamConfig(BaseModel, extra="forbid"):
    """A delivery stream this deployment provisions.

    ``destination`` is optional here so that its absence surfaces as
    ``MissingDestination`` from the orchestrator rather than a schema error.
    """

    stream_id: str = Field(pattern=r"^[a-zA-Z][a-zA-Z0-9-]*$")
    delivery_stream_name: str | None = None
    destination: DestinationConfig | None = None
    encryption: StreamEncryption | None = None
    encryption_key_arn: str | None = None
    role_arn: str | None = None
    source_stream_arn: str | None = None
    writers: list[str] = Field(default_factory=list)
    tags: dict[str, str] = Field(default_factory=dict)

    @field_validator("delivery_stream_name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return None if v is None else validate_delivery_stream_name(v)

    @field_validator("encryption_key_arn")
    @classmethod
    def validate_key_arn(cls, v: str | None) -> str | None:
        return None if v is None else _check_arn(v, "kms")

    @field_validator("source_stream_arn")
    @classmethod
    def validate_source_stream_arn(cls, v: str | None) -> str | None:
        return None if v is None else _check_arn(v, "kinesis")

    @field_validator("role_arn")
    @classmethod
    def validate_role_arn(cls, v: str | None) -> str | None:
        return None if v is None else _check_arn(v, "iam")

    @field_validator("writers")
    @classmethod
    def validate_writers(cls, v: list[str]) -> list[str]:
        for arn in v:
            _check_arn(arn, "iam")
        return v


class ImportedStreamConfig(BaseModel, extra="forbid"):
    """An existing delivery stream referenced by name."""

    stream_id: str = Field(pattern=r"^[a-zA-Z][a-zA-Z0-9-]*$")
    delivery_stream_name: str
    writers: list[str] = Field(default_factory=list)

    @field_validator("delivery_stream_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return validate_delivery_stream_name(v)


class Boto3EngineConfig(BaseModel):
    """Settings for live provisioning through boto3."""

    profile_name: str | None = None
    wait_until_active: bool = True
    waiter_delay_seconds: int = Field(default=10, ge=1)
    waiter_max_attempts: int = Field(default=60, ge=1)
    rollback_on_failure: bool = True


class PlatformConfig(BaseModel):
    """Deployment scope and provisioning backend."""

    scope: DeploymentScope
    engine: EngineType = EngineType.TEMPLATE
    boto3: Boto3EngineConfig = Boto3EngineConfig()


class StreamsConfig(BaseModel, extra="forbid"):
    """Delivery streams declared by one deployment."""

    streams: list[DeliveryStreamConfig] = Field(default_factory=list)
    imports: list[ImportedStreamConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_stream_ids(self) -> Self:
        """Stream ids are unique across owned and imported streams."""
        seen: set[str] = set()
        for entry in [*self.streams, *self.imports]:
            if entry.stream_id in seen:
                msg = f"Duplicate stream_id '{entry.stream_id}'"
                raise ValueError(msg)
            seen.add(entry.stream_id)
        return self
