"""Unit tests for configuration Pydantic models."""

import pytest
from pydantic import ValidationError

from firehose_platform.config.models import (
    DeliveryStreamConfig,
    DestinationConfig,
    DestinationType,
    EngineType,
    HttpEndpointDestinationConfig,
    ImportedStreamConfig,
    PlatformConfig,
    S3DestinationConfig,
    StreamEncryption,
    StreamsConfig,
)

BUCKET = "arn:aws:s3:::archive"


def _s3() -> DestinationConfig:
    return DestinationConfig(
        destination_type=DestinationType.S3, s3=S3DestinationConfig(bucket_arn=BUCKET)
    )


class TestDestinationConfig:
    def test_s3_requires_sub_config(self):
        with pytest.raises(ValidationError, match="s3 config is required"):
            DestinationConfig(destination_type=DestinationType.S3)

    def test_http_requires_sub_config(self):
        with pytest.raises(ValidationError, match="http_endpoint config is required"):
            DestinationConfig(destination_type=DestinationType.HTTP_ENDPOINT)

    def test_bucket_arn_must_be_s3(self):
        with pytest.raises(ValidationError, match="not a s3 ARN"):
            S3DestinationConfig(bucket_arn="arn:aws:kms:us-east-1:1:key/k")

    def test_buffering_bounds(self):
        with pytest.raises(ValidationError):
            S3DestinationConfig(bucket_arn=BUCKET, buffering={"interval_seconds": 901})

    def test_http_endpoint_requires_https(self):
        with pytest.raises(ValidationError):
            HttpEndpointDestinationConfig(url="http://x", backup_bucket_arn=BUCKET)

    def test_access_key_is_secret(self):
        cfg = HttpEndpointDestinationConfig(
            url="https://x", access_key="s3cret", backup_bucket_arn=BUCKET
        )
        assert "s3cret" not in repr(cfg)
        assert "s3cret" not in cfg.model_dump_json()


class TestDeliveryStreamConfig:
    def test_minimal(self):
        cfg = DeliveryStreamConfig(stream_id="Orders", destination=_s3())
        assert cfg.encryption is None
        assert cfg.writers == []

    def test_destination_is_optional_at_schema_level(self):
        assert DeliveryStreamConfig(stream_id="Orders").destination is None

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValidationError):
            DeliveryStreamConfig(stream_id="Orders", destinations=[])

    def test_invalid_stream_name(self):
        with pytest.raises(ValidationError, match="Invalid delivery stream name"):
            DeliveryStreamConfig(stream_id="Orders", delivery_stream_name="bad name")

    def test_encryption_from_string(self):
        cfg = DeliveryStreamConfig(stream_id="Orders", encryption="aws_owned")
        assert cfg.encryption == StreamEncryption.AWS_OWNED

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("role_arn", "arn:aws:s3:::bucket"),
            ("encryption_key_arn", "arn:aws:iam::123456789012:role/r"),
            ("source_stream_arn", "arn:aws:sqs:us-east-1:123456789012:q"),
        ],
    )
    def test_arn_service_checked(self, field, value):
        with pytest.raises(ValidationError):
            DeliveryStreamConfig(stream_id="Orders", **{field: value})

    def test_writers_must_be_roles(self):
        with pytest.raises(ValidationError):
            DeliveryStreamConfig(stream_id="Orders", writers=["arn:aws:s3:::b"])


class TestStreamsConfig:
    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate stream_id"):
            StreamsConfig(
                streams=[DeliveryStreamConfig(stream_id="Orders")],
                imports=[
                    ImportedStreamConfig(stream_id="Orders", delivery_stream_name="o")
                ],
            )


class TestPlatformConfig:
    def test_defaults(self):
        cfg = PlatformConfig(scope={"account": "123456789012", "region": "us-east-1"})
        assert cfg.engine == EngineType.TEMPLATE
        assert cfg.scope.partition == "aws"
        assert cfg.boto3.rollback_on_failure is True
