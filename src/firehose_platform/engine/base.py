"""Provisioning engine protocol — declared configuration in, identifiers out."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from firehose_platform.encryption import EncryptionKey
from firehose_platform.iam.principals import Identity, RoleIdentity, ServicePrincipal
from firehose_platform.identifiers import DeploymentScope

DIRECT_PUT = "DirectPut"
KINESIS_STREAM_AS_SOURCE = "KinesisStreamAsSource"

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def logical_id(*path: str) -> str:
    """Stable logical id for a resource at *path*, e.g. ``("Orders", "ServiceRole")``.

    Nested paths get a short hash suffix so that sanitizing cannot make two
    distinct paths collide.
    """
    human = "".join(_NON_ALNUM.sub("", p) for p in path)
    if len(path) == 1:
        return human
    digest = hashlib.md5("/".join(path).encode()).hexdigest()[:8].upper()  # noqa: S324
    return f"{human[:240]}{digest}"


@dataclass(frozen=True)
class DeliveryStreamRequest:
    """Assembled configuration handed to the engine."""

    logical_id: str
    stream_id: str
    role: Identity
    destination: dict[str, Any]
    delivery_stream_name: str | None = None
    delivery_stream_type: str = DIRECT_PUT
    encryption: dict[str, Any] | None = None
    source: dict[str, Any] | None = None
    tags: dict[str, str] = field(default_factory=dict)

    def properties(self, name: str | None = None) -> dict[str, Any]:
        """Render resource properties (CloudFormation and the Firehose API agree)."""
        props: dict[str, Any] = {}
        name = name or self.delivery_stream_name
        if name is not None:
            props["DeliveryStreamName"] = name
        props["DeliveryStreamType"] = self.delivery_stream_type
        if self.encryption is not None:
            props["DeliveryStreamEncryptionConfigurationInput"] = self.encryption
        if self.source is not None:
            props["KinesisStreamSourceConfiguration"] = self.source
        props.update(self.destination)
        if self.tags:
            props["Tags"] = [{"Key": k, "Value": v} for k, v in sorted(self.tags.items())]
        return props


@dataclass(frozen=True, slots=True)
class ProvisionedStream:
    logical_name: str
    logical_arn: str


@runtime_checkable
class ProvisioningEngine(Protocol):
    """Creates (or declares) the resources behind a delivery stream."""

    @property
    def scope(self) -> DeploymentScope: ...

    def add_role(
        self,
        logical_id: str,
        assumed_by: ServicePrincipal,
        role_name: str | None = None,
    ) -> RoleIdentity:
        """Declare a new role; grants added to it later are provisioned with it."""
        ...

    def import_role(self, logical_id: str, arn: str) -> RoleIdentity:
        """Reference an existing role whose policy this engine should manage."""
        ...

    def add_key(self, logical_id: str, description: str) -> EncryptionKey:
        """Declare a KMS key owned by the resource at *logical_id*."""
        ...

    def create_delivery_stream(self, request: DeliveryStreamRequest) -> ProvisionedStream:
        """Provision the stream; failures raise ``ProvisioningFailed``."""
        ...

    def sync_policies(self) -> None:
        """Make grants added since the last sync take effect."""
        ...
