"""Identity variants that grants can target.

``Identity`` is a closed set: an attachable role, a service principal
(trust target only), or an unresolvable principal carried by imported
resources whose real identity is not known.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import structlog

from firehose_platform.errors import UngrantableIdentity
from firehose_platform.iam.policy import GrantEffect, InlinePolicy
from firehose_platform.identifiers import parse_arn

logger = structlog.get_logger()

FIREHOSE_SERVICE_PRINCIPAL = "firehose.amazonaws.com"


@dataclass(frozen=True, slots=True)
class ServicePrincipal:
    """An AWS service that may assume a role, e.g. ``firehose.amazonaws.com``."""

    service: str

    def trust_policy(self) -> dict:
        return {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": self.service},
                    "Action": "sts:AssumeRole",
                }
            ],
        }


@dataclass(frozen=True)
class RoleIdentity:
    """An IAM role.  Grants targeting it are collected in ``policy``."""

    role_name: str
    arn: str
    assumed_by: ServicePrincipal | None = None
    policy: InlinePolicy = field(
        default_factory=InlinePolicy, compare=False, hash=False, repr=False
    )

    @classmethod
    def from_role_arn(cls, arn: str) -> RoleIdentity:
        """Reference an existing role by ARN (``arn:aws:iam::123:role/path/name``)."""
        parts = parse_arn(arn)
        if parts.service != "iam" or parts.resource != "role" or not parts.resource_name:
            msg = f"Not an IAM role ARN: '{arn}'"
            raise ValueError(msg)
        return cls(role_name=parts.resource_name.rsplit("/", 1)[-1], arn=arn)


@dataclass(frozen=True, slots=True)
class UnresolvablePrincipal:
    """Principal of an imported resource; its real identity is opaque."""

    resource_arn: str


Identity = RoleIdentity | ServicePrincipal | UnresolvablePrincipal


@runtime_checkable
class HasGrantPrincipal(Protocol):
    @property
    def grant_principal(self) -> Identity: ...


Grantable = Identity | HasGrantPrincipal


def principal_of(grantee: Grantable) -> Identity:
    """Resolve a grantable (identity or resource handle) to its identity."""
    if isinstance(grantee, (RoleIdentity, ServicePrincipal, UnresolvablePrincipal)):
        return grantee
    if isinstance(grantee, HasGrantPrincipal):
        return grantee.grant_principal
    msg = f"{type(grantee).__name__} is not grantable"
    raise TypeError(msg)


def attach_to_principal(principal: Identity, effect: GrantEffect) -> bool:
    """Attach *effect* to *principal*'s policy.

    Returns False when the identical effect was already attached.  Raises
    :class:`UngrantableIdentity` for principals that cannot hold policies.
    """
    match principal:
        case RoleIdentity(policy=policy):
            added = policy.add(effect)
            if added:
                logger.debug(
                    "grant.attached",
                    role=principal.role_name,
                    actions=list(effect.actions),
                    resources=list(effect.resource_arns),
                )
            return added
        case _:
            raise UngrantableIdentity(principal)


def role_arn(principal: Identity) -> str:
    """ARN of *principal* when it is a role; other kinds cannot be assumed."""
    if not isinstance(principal, RoleIdentity):
        raise UngrantableIdentity(principal)
    return principal.arn
