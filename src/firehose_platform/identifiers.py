"""ARN formatting and delivery stream name validation.

All functions here are pure: the deployment scope is always passed in,
never looked up.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from pydantic import BaseModel, Field

from firehose_platform.errors import InvalidIdentifier

DELIVERY_STREAM_SERVICE = "firehose"
DELIVERY_STREAM_RESOURCE = "deliverystream"

_STREAM_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+$")
_STREAM_NAME_MAX_LENGTH = 64
_TOKEN_PATTERN = re.compile(r"^\$\{Token\[[^\]]+\]\}$")


class DeploymentScope(BaseModel, frozen=True):
    """Partition / account / region that identifiers are resolved against."""

    partition: str = Field(default="aws", pattern=r"^aws(-[a-z]+)*$")
    account: str = Field(pattern=r"^(\d{12}|\$\{Token\[[^\]]+\]\})$")
    region: str = Field(pattern=r"^([a-z]{2}(-[a-z]+)+-\d|\$\{Token\[[^\]]+\]\})$")


class ArnComponents(NamedTuple):
    partition: str
    service: str
    region: str
    account: str
    resource: str
    resource_name: str | None


def is_token(value: str) -> bool:
    """Return True if *value* is a deploy-time reference such as ``${Token[Ref:X]}``."""
    return bool(_TOKEN_PATTERN.match(value))


def format_arn(
    scope: DeploymentScope,
    *,
    service: str,
    resource: str,
    resource_name: str | None = None,
    sep: str = "/",
    region: str | None = None,
    account: str | None = None,
) -> str:
    """Build ``arn:<partition>:<service>:<region>:<account>:<resource>[<sep><name>]``.

    ``region``/``account`` override the scope's values, e.g. ``region=""``
    for global services such as IAM.
    """
    region = scope.region if region is None else region
    account = scope.account if account is None else account
    arn = f"arn:{scope.partition}:{service}:{region}:{account}:{resource}"
    if resource_name is not None:
        arn += f"{sep}{resource_name}"
    return arn


def validate_delivery_stream_name(name: str) -> str:
    """Return *name* unchanged or raise :class:`InvalidIdentifier`."""
    if is_token(name):
        return name
    if not name:
        raise InvalidIdentifier(name, "name must not be empty")
    if len(name) > _STREAM_NAME_MAX_LENGTH:
        raise InvalidIdentifier(
            name, f"name must be at most {_STREAM_NAME_MAX_LENGTH} characters"
        )
    if not _STREAM_NAME_PATTERN.match(name):
        raise InvalidIdentifier(
            name, "only letters, digits, '_', '.' and '-' are allowed"
        )
    return name


def delivery_stream_arn(scope: DeploymentScope, name: str) -> str:
    """Resolve the ARN of the delivery stream called *name* in *scope*."""
    validate_delivery_stream_name(name)
    return format_arn(
        scope,
        service=DELIVERY_STREAM_SERVICE,
        resource=DELIVERY_STREAM_RESOURCE,
        resource_name=name,
    )


def parse_arn(arn: str) -> ArnComponents:
    """Split an ARN into its components.

    Raises ``ValueError`` when *arn* does not have the six ``:``-separated parts.
    """
    parts = arn.split(":", 5)
    if len(parts) != 6 or parts[0] != "arn":
        msg = f"Not a valid ARN: '{arn}'"
        raise ValueError(msg)
    _, partition, service, region, account, rest = parts
    resource, resource_name = rest, None
    for sep in ("/", ":"):
        if sep in rest:
            resource, resource_name = rest.split(sep, 1)
            break
    return ArnComponents(partition, service, region, account, resource, resource_name)


def delivery_stream_name_from_arn(arn: str) -> str:
    """Extract the delivery stream name from a delivery stream ARN."""
    parts = parse_arn(arn)
    if (
        parts.service != DELIVERY_STREAM_SERVICE
        or parts.resource != DELIVERY_STREAM_RESOURCE
        or not parts.resource_name
    ):
        raise InvalidIdentifier(arn, "not a delivery stream ARN")
    return validate_delivery_stream_name(parts.resource_name)
