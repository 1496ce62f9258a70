"""Grant engine — turns (resource, grantee, actions) into attached effects."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

import structlog

from firehose_platform.iam.policy import GrantEffect
from firehose_platform.iam.principals import (
    Grantable,
    UnresolvablePrincipal,
    attach_to_principal,
    principal_of,
)

if TYPE_CHECKING:
    from firehose_platform.delivery_stream import DeliveryStream

logger = structlog.get_logger()

PUT_RECORD = "firehose:PutRecord"
PUT_RECORD_BATCH = "firehose:PutRecordBatch"
WRITE_ACTIONS: tuple[str, ...] = (PUT_RECORD, PUT_RECORD_BATCH)

# Advisory only: unrecognized actions are passed through.
FIREHOSE_ACTIONS = frozenset(
    {
        "firehose:*",
        PUT_RECORD,
        PUT_RECORD_BATCH,
        "firehose:DescribeDeliveryStream",
        "firehose:ListDeliveryStreams",
        "firehose:ListTagsForDeliveryStream",
        "firehose:UpdateDestination",
        "firehose:StartDeliveryStreamEncryption",
        "firehose:StopDeliveryStreamEncryption",
        "firehose:TagDeliveryStream",
        "firehose:UntagDeliveryStream",
        "firehose:DeleteDeliveryStream",
    }
)


def grant_on_arns(
    resource_arns: Iterable[str],
    grantee: Grantable,
    actions: Sequence[str],
    *,
    known_actions: frozenset[str] | None = None,
) -> GrantEffect:
    """Grant *actions* on *resource_arns* to *grantee* and return the effect.

    Unresolvable principals get the effect back without attachment (there
    is no policy to attach to).  ``UngrantableIdentity`` from the attachment
    step propagates.
    """
    if not actions:
        msg = "At least one action is required for a grant"
        raise ValueError(msg)

    if known_actions is not None:
        unknown = [a for a in actions if a not in known_actions]
        if unknown:
            logger.debug("grant.unrecognized_actions", actions=unknown)

    principal = principal_of(grantee)
    effect = GrantEffect(
        resource_arns=tuple(resource_arns),
        grantee=principal,
        actions=tuple(actions),
    )

    if isinstance(principal, UnresolvablePrincipal):
        logger.warning(
            "grant.principal_unresolvable",
            principal=principal.resource_arn,
            actions=list(effect.actions),
        )
        return effect

    attach_to_principal(principal, effect)
    return effect


def grant(stream: DeliveryStream, grantee: Grantable, *actions: str) -> GrantEffect:
    """Grant *grantee* the given *actions* on *stream*."""
    return grant_on_arns(
        [stream.arn], grantee, actions, known_actions=FIREHOSE_ACTIONS
    )


def grant_write(stream: DeliveryStream, grantee: Grantable) -> GrantEffect:
    """Grant *grantee* permission to put records into *stream*."""
    return grant(stream, grantee, *WRITE_ACTIONS)
