"""Metric descriptors for delivery streams.

Metrics are addressed by stream name, so owned and imported handles
produce identical descriptors.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from firehose_platform.delivery_stream import DeliveryStream

METRIC_NAMESPACE = "Firehose"
STREAM_DIMENSION = "DeliveryStreamName"


class MetricOptions(BaseModel, frozen=True):
    """Query options forwarded to the metrics consumer."""

    period_seconds: int = Field(default=300, ge=1)
    statistic: str = "Average"
    label: str | None = None
    unit: str | None = None
    account: str | None = None
    region: str | None = None


@dataclass(frozen=True)
class MetricDescriptor:
    namespace: str
    metric_name: str
    dimensions: dict[str, str]
    options: dict[str, Any] = field(default_factory=dict)


def metric(
    stream: DeliveryStream,
    metric_name: str,
    options: MetricOptions | None = None,
) -> MetricDescriptor:
    """Return the named metric for *stream*."""
    return MetricDescriptor(
        namespace=METRIC_NAMESPACE,
        metric_name=metric_name,
        dimensions={STREAM_DIMENSION: stream.name},
        options=options.model_dump(exclude_unset=True) if options else {},
    )


def metric_incoming_bytes(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    """Bytes ingested into the stream."""
    return metric(stream, "IncomingBytes", options)


def metric_incoming_records(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    """Records ingested into the stream."""
    return metric(stream, "IncomingRecords", options)


def metric_incoming_put_requests(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    """PutRecord and PutRecordBatch requests."""
    return metric(stream, "IncomingPutRequests", options)


def metric_backup_to_s3_bytes(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    return metric(stream, "BackupToS3.Bytes", options)


def metric_backup_to_s3_data_freshness(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    """Age of the oldest record not yet backed up to S3."""
    return metric(stream, "BackupToS3.DataFreshness", options)


def metric_backup_to_s3_records(
    stream: DeliveryStream, options: MetricOptions | None = None
) -> MetricDescriptor:
    return metric(stream, "BackupToS3.Records", options)


NAMED_METRICS = {
    "IncomingBytes": metric_incoming_bytes,
    "IncomingRecords": metric_incoming_records,
    "IncomingPutRequests": metric_incoming_put_requests,
    "BackupToS3.Bytes": metric_backup_to_s3_bytes,
    "BackupToS3.DataFreshness": metric_backup_to_s3_data_freshness,
    "BackupToS3.Records": metric_backup_to_s3_records,
}
