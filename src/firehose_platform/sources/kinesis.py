"""Kinesis data stream used as a delivery stream source."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from firehose_platform.iam.grants import grant_on_arns
from firehose_platform.iam.policy import GrantEffect
from firehose_platform.iam.principals import Grantable
from firehose_platform.identifiers import parse_arn

KINESIS_READ_ACTIONS: tuple[str, ...] = (
    "kinesis:DescribeStreamSummary",
    "kinesis:GetRecords",
    "kinesis:GetShardIterator",
    "kinesis:ListShards",
    "kinesis:SubscribeToShard",
    "kinesis:DescribeStream",
)


@runtime_checkable
class SourceStream(Protocol):
    """A stream the delivery stream reads from instead of direct puts."""

    @property
    def stream_arn(self) -> str: ...

    def grant_read(self, grantee: Grantable) -> GrantEffect: ...


@dataclass(frozen=True, slots=True)
class KinesisSourceStream:
    """Reference to a Kinesis data stream by ARN."""

    stream_arn: str

    def __post_init__(self) -> None:
        parts = parse_arn(self.stream_arn)
        if parts.service != "kinesis" or parts.resource != "stream":
            msg = f"Not a Kinesis stream ARN: '{self.stream_arn}'"
            raise ValueError(msg)

    def grant_read(self, grantee: Grantable) -> GrantEffect:
        return grant_on_arns([self.stream_arn], grantee, KINESIS_READ_ACTIONS)


def source_configuration(stream: SourceStream, role_arn: str) -> dict[str, Any]:
    """Render ``KinesisStreamSourceConfiguration``."""
    return {"KinesisStreamARN": stream.stream_arn, "RoleARN": role_arn}
