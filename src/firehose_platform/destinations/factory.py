"""Destination factory — maps DestinationType to concrete destination classes."""

from __future__ import annotations

from firehose_platform.config.models import DestinationConfig, DestinationType
from firehose_platform.destinations.base import Destination
from firehose_platform.destinations.http_endpoint import HttpEndpointDestination
from firehose_platform.destinations.s3 import S3BucketDestination

_DESTINATION_REGISTRY: dict[DestinationType, tuple[type, str]] = {
    DestinationType.S3: (S3BucketDestination, "s3"),
    DestinationType.HTTP_ENDPOINT: (HttpEndpointDestination, "http_endpoint"),
}


def create_destination(config: DestinationConfig) -> Destination:
    """Create a destination from configuration.

    Adding a destination = one class + one dict entry in ``_DESTINATION_REGISTRY``.
    """
    entry = _DESTINATION_REGISTRY.get(config.destination_type)
    if entry is None:
        msg = f"Unknown destination type: {config.destination_type}"
        raise ValueError(msg)
    cls, attr = entry
    return cls(getattr(config, attr))  # type: ignore[no-any-return]
