"""Destination protocol — where a delivery stream lands its records.

The orchestrator does not interpret destination internals: a destination
binds itself to the stream's role and returns its own configuration
fragment plus the grants it needed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from firehose_platform.encryption import EncryptionConfig
from firehose_platform.iam.policy import GrantEffect
from firehose_platform.iam.principals import Identity, role_arn
from firehose_platform.identifiers import DeploymentScope


@dataclass(frozen=True, slots=True)
class DestinationBindContext:
    """What a destination is told about the stream it is bound to."""

    scope: DeploymentScope
    stream_id: str
    role: Identity
    encryption: EncryptionConfig

    @property
    def role_arn(self) -> str:
        return role_arn(self.role)


@dataclass(frozen=True, slots=True)
class DestinationBinding:
    config_fragment: dict[str, Any]
    self_grants: list[GrantEffect] = field(default_factory=list)


@runtime_checkable
class Destination(Protocol):
    """Protocol every delivery destination must satisfy."""

    def bind(self, context: DestinationBindContext) -> DestinationBinding:
        """Grant *context.role* what it needs and return the config fragment."""
        ...
