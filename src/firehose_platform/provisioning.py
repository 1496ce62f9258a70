"""Provisioning orchestrator — declares a new delivery stream.

Order within one call: identity, encryption, destination binding,
source-stream grants, engine.  Any failure aborts before a handle exists.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from firehose_platform.config.models import StreamEncryption
from firehose_platform.delivery_stream import OwnedDeliveryStream
from firehose_platform.destinations.base import Destination, DestinationBindContext
from firehose_platform.encryption import (
    CustomerManaged,
    EncryptionKey,
    resolve_encryption,
)
from firehose_platform.engine.base import (
    DIRECT_PUT,
    KINESIS_STREAM_AS_SOURCE,
    DeliveryStreamRequest,
    ProvisioningEngine,
    logical_id,
)
from firehose_platform.errors import MissingDestination, ProvisioningFailed
from firehose_platform.iam.principals import (
    FIREHOSE_SERVICE_PRINCIPAL,
    Identity,
    ServicePrincipal,
    role_arn,
)
from firehose_platform.identifiers import (
    DeploymentScope,
    delivery_stream_arn,
    validate_delivery_stream_name,
)
from firehose_platform.sources.kinesis import SourceStream, source_configuration

logger = structlog.get_logger()

SERVICE_ROLE_ID = "Service Role"
KEY_ID = "Key"


@dataclass(frozen=True)
class DeliveryStreamProps:
    """Properties for a new delivery stream.  Only ``destination`` is required.

    ``encryption_key`` implies customer-managed encryption whatever
    ``encryption`` says; customer-managed without a key allocates one.
    """

    destination: Destination | None = None
    delivery_stream_name: str | None = None
    source_stream: SourceStream | None = None
    role: Identity | None = None
    encryption: StreamEncryption | None = None
    encryption_key: EncryptionKey | None = None
    tags: dict[str, str] = field(default_factory=dict)


def create_delivery_stream(
    scope: DeploymentScope,
    stream_id: str,
    props: DeliveryStreamProps,
    *,
    engine: ProvisioningEngine,
) -> OwnedDeliveryStream:
    """Declare and provision a delivery stream, returning its owned handle."""
    if props.destination is None:
        raise MissingDestination(stream_id)
    if props.delivery_stream_name is not None:
        validate_delivery_stream_name(props.delivery_stream_name)

    log = logger.bind(stream_id=stream_id)

    # 1. Identity
    service_role_created = props.role is None
    if props.role is not None:
        principal = props.role
    else:
        principal = engine.add_role(
            logical_id(stream_id, SERVICE_ROLE_ID),
            ServicePrincipal(FIREHOSE_SERVICE_PRINCIPAL),
        )
        log.debug("delivery_stream.service_role_declared")

    # 2. Encryption
    encryption = resolve_encryption(
        props.encryption,
        props.encryption_key,
        allocate_key=lambda: engine.add_key(
            logical_id(stream_id, KEY_ID),
            f"Encryption key for delivery stream {stream_id}",
        ),
    )
    if isinstance(encryption, CustomerManaged):
        encryption.key.grant_encrypt_decrypt(principal)

    # 3. Destination
    binding = props.destination.bind(
        DestinationBindContext(
            scope=scope, stream_id=stream_id, role=principal, encryption=encryption
        )
    )

    # 4. Source stream
    source = None
    if props.source_stream is not None:
        props.source_stream.grant_read(principal)
        source = source_configuration(props.source_stream, role_arn(principal))

    # 5. Engine
    request = DeliveryStreamRequest(
        logical_id=logical_id(stream_id),
        stream_id=stream_id,
        role=principal,
        destination=binding.config_fragment,
        delivery_stream_name=props.delivery_stream_name,
        delivery_stream_type=KINESIS_STREAM_AS_SOURCE if source else DIRECT_PUT,
        encryption=encryption.to_properties(),
        source=source,
        tags=dict(props.tags),
    )
    provisioned = engine.create_delivery_stream(request)

    expected_arn = delivery_stream_arn(scope, provisioned.logical_name)
    if provisioned.logical_arn != expected_arn:
        msg = (
            f"Engine returned ARN '{provisioned.logical_arn}' for "
            f"'{provisioned.logical_name}', expected '{expected_arn}'"
        )
        raise ProvisioningFailed(msg)

    # 6. Handle
    log.info(
        "delivery_stream.created",
        name=provisioned.logical_name,
        arn=provisioned.logical_arn,
        encryption=type(encryption).__name__,
        destination_grants=len(binding.self_grants),
    )
    return OwnedDeliveryStream(
        stream_id=stream_id,
        name=provisioned.logical_name,
        arn=provisioned.logical_arn,
        grant_principal=principal,
        encryption=encryption,
        service_role_created=service_role_created,
    )
