"""Builds every delivery stream declared in a streams config."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from firehose_platform.config.models import (
    DeliveryStreamConfig,
    StreamsConfig,
)
from firehose_platform.delivery_stream import (
    DeliveryStream,
    ImportedDeliveryStream,
    OwnedDeliveryStream,
    from_delivery_stream_name,
)
from firehose_platform.destinations.factory import create_destination
from firehose_platform.encryption import KmsKey
from firehose_platform.engine.base import ProvisioningEngine, logical_id
from firehose_platform.iam.grants import grant_write
from firehose_platform.iam.policy import GrantEffect
from firehose_platform.provisioning import DeliveryStreamProps, create_delivery_stream
from firehose_platform.sources.kinesis import KinesisSourceStream

logger = structlog.get_logger()


@dataclass
class StreamSet:
    """Handles built from one config, keyed by stream id."""

    owned: dict[str, OwnedDeliveryStream] = field(default_factory=dict)
    imported: dict[str, ImportedDeliveryStream] = field(default_factory=dict)
    grants: list[GrantEffect] = field(default_factory=list)

    def __getitem__(self, stream_id: str) -> DeliveryStream:
        if stream_id in self.owned:
            return self.owned[stream_id]
        return self.imported[stream_id]

    def __iter__(self):  # noqa: ANN204
        yield from self.owned.values()
        yield from self.imported.values()

    def __len__(self) -> int:
        return len(self.owned) + len(self.imported)


def props_from_config(
    config: DeliveryStreamConfig, engine: ProvisioningEngine
) -> DeliveryStreamProps:
    """Translate a declarative stream config into orchestrator props."""
    role = None
    if config.role_arn is not None:
        role = engine.import_role(logical_id(config.stream_id, "Role"), config.role_arn)
    return DeliveryStreamProps(
        destination=create_destination(config.destination) if config.destination else None,
        delivery_stream_name=config.delivery_stream_name,
        source_stream=(
            KinesisSourceStream(config.source_stream_arn)
            if config.source_stream_arn
            else None
        ),
        role=role,
        encryption=config.encryption,
        encryption_key=(
            KmsKey(config.encryption_key_arn) if config.encryption_key_arn else None
        ),
        tags=config.tags,
    )


def _grant_writers(
    stream: DeliveryStream,
    writers: list[str],
    engine: ProvisioningEngine,
) -> list[GrantEffect]:
    effects = []
    for index, arn in enumerate(writers):
        writer = engine.import_role(logical_id(stream.stream_id, "Writer", str(index)), arn)
        effects.append(grant_write(stream, writer))
    return effects


def build_delivery_streams(
    config: StreamsConfig, *, engine: ProvisioningEngine
) -> StreamSet:
    """Create owned streams, import referenced ones, and grant their writers."""
    result = StreamSet()
    scope = engine.scope

    for entry in config.imports:
        handle = from_delivery_stream_name(scope, entry.stream_id, entry.delivery_stream_name)
        result.imported[entry.stream_id] = handle
        result.grants.extend(_grant_writers(handle, entry.writers, engine))

    for entry in config.streams:
        props = props_from_config(entry, engine)
        handle = create_delivery_stream(scope, entry.stream_id, props, engine=engine)
        result.owned[entry.stream_id] = handle
        result.grants.extend(_grant_writers(handle, entry.writers, engine))

    engine.sync_policies()
    logger.info(
        "delivery_streams.built",
        owned=len(result.owned),
        imported=len(result.imported),
        grants=len(result.grants),
    )
    return result
