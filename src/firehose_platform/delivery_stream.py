"""Delivery stream handles.

A handle is either owned (declared by this deployment, returned by
:func:`firehose_platform.provisioning.create_delivery_stream`) or imported
(an existing stream referenced by name or ARN).  Both expose ``name``,
``arn`` and ``grant_principal``; ``grant``, ``grant_write`` and ``metric``
work the same on either.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from firehose_platform.encryption import EncryptionConfig, Unencrypted
from firehose_platform.iam.grants import grant, grant_write
from firehose_platform.iam.principals import Identity, UnresolvablePrincipal
from firehose_platform.identifiers import (
    DeploymentScope,
    delivery_stream_arn,
    delivery_stream_name_from_arn,
    validate_delivery_stream_name,
)
from firehose_platform.metrics import metric

logger = structlog.get_logger()

__all__ = [
    "DeliveryStream",
    "ImportedDeliveryStream",
    "OwnedDeliveryStream",
    "from_delivery_stream_arn",
    "from_delivery_stream_name",
    "grant",
    "grant_write",
    "metric",
]


@dataclass(frozen=True, slots=True)
class ImportedDeliveryStream:
    """An existing delivery stream; its service role is unknown."""

    stream_id: str
    name: str
    arn: str
    grant_principal: UnresolvablePrincipal


@dataclass(frozen=True, slots=True)
class OwnedDeliveryStream:
    """A delivery stream declared and provisioned by this deployment.

    ``name``/``arn`` may be deploy-time tokens when the engine has not
    assigned a physical name yet.
    """

    stream_id: str
    name: str
    arn: str
    grant_principal: Identity
    encryption: EncryptionConfig = field(default_factory=Unencrypted)
    service_role_created: bool = False


DeliveryStream = OwnedDeliveryStream | ImportedDeliveryStream


def from_delivery_stream_name(
    scope: DeploymentScope, stream_id: str, delivery_stream_name: str
) -> ImportedDeliveryStream:
    """Reference an existing delivery stream by name."""
    validate_delivery_stream_name(delivery_stream_name)
    arn = delivery_stream_arn(scope, delivery_stream_name)
    logger.debug("delivery_stream.imported", stream_id=stream_id, arn=arn)
    return ImportedDeliveryStream(
        stream_id=stream_id,
        name=delivery_stream_name,
        arn=arn,
        grant_principal=UnresolvablePrincipal(resource_arn=arn),
    )


def from_delivery_stream_arn(stream_id: str, arn: str) -> ImportedDeliveryStream:
    """Reference an existing delivery stream by ARN.

    The ARN is kept as given, so streams in another account or region can
    be referenced.
    """
    name = delivery_stream_name_from_arn(arn)
    logger.debug("delivery_stream.imported", stream_id=stream_id, arn=arn)
    return ImportedDeliveryStream(
        stream_id=stream_id,
        name=name,
        arn=arn,
        grant_principal=UnresolvablePrincipal(resource_arn=arn),
    )
