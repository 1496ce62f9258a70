"""HTTP endpoint destination with an S3 backup bucket."""

from __future__ import annotations

from typing import Any

from firehose_platform.config.models import HttpEndpointDestinationConfig
from firehose_platform.destinations.base import (
    DestinationBindContext,
    DestinationBinding,
)
from firehose_platform.destinations.s3 import (
    buffering_properties,
    grant_bucket_delivery,
)


class HttpEndpointDestination:
    """Delivers records to an HTTPS endpoint; failed (or all) records go to S3."""

    def __init__(self, config: HttpEndpointDestinationConfig) -> None:
        self._config = config

    def bind(self, context: DestinationBindContext) -> DestinationBinding:
        cfg = self._config
        grants = [grant_bucket_delivery(cfg.backup_bucket_arn, context.role)]

        endpoint: dict[str, Any] = {"Url": cfg.url}
        if cfg.name is not None:
            endpoint["Name"] = cfg.name
        if cfg.access_key is not None:
            endpoint["AccessKey"] = cfg.access_key.get_secret_value()

        props: dict[str, Any] = {
            "EndpointConfiguration": endpoint,
            "RoleARN": context.role_arn,
            "BufferingHints": buffering_properties(cfg.buffering),
            "RetryOptions": {"DurationInSeconds": cfg.retry_duration_seconds},
            "S3BackupMode": cfg.backup_mode,
            "S3Configuration": {
                "BucketARN": cfg.backup_bucket_arn,
                "RoleARN": context.role_arn,
            },
        }
        return DestinationBinding(
            config_fragment={"HttpEndpointDestinationConfiguration": props},
            self_grants=grants,
        )
