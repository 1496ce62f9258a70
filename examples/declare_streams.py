#!/usr/bin/env python3
"""Runnable demo: declare an owned and an imported delivery stream.

    uv run python examples/declare_streams.py
"""

from __future__ import annotations

from rich.console import Console

from firehose_platform.config.models import S3DestinationConfig, StreamEncryption
from firehose_platform.delivery_stream import (
    from_delivery_stream_name,
    grant_write,
    metric,
)
from firehose_platform.destinations.s3 import S3BucketDestination
from firehose_platform.engine.template import TemplateEngine
from firehose_platform.identifiers import DeploymentScope
from firehose_platform.provisioning import DeliveryStreamProps, create_delivery_stream

console = Console()


def main() -> None:
    scope = DeploymentScope(account="123456789012", region="us-east-1")
    engine = TemplateEngine(scope)

    # 1. Owned stream: service role and key are created for it
    orders = create_delivery_stream(
        scope,
        "Orders",
        DeliveryStreamProps(
            destination=S3BucketDestination(
                S3DestinationConfig(bucket_arn="arn:aws:s3:::orders-archive")
            ),
            encryption=StreamEncryption.CUSTOMER_MANAGED,
        ),
        engine=engine,
    )
    console.print(f"[bold]Owned:[/bold] {orders.name} → {orders.arn}")

    # 2. Imported stream: ARN resolved from the name alone
    legacy = from_delivery_stream_name(scope, "Legacy", "legacy-events")
    console.print(f"[bold]Imported:[/bold] {legacy.name} → {legacy.arn}")

    # 3. Same grant / metric surface for both
    producer = engine.import_role(
        "Producer", "arn:aws:iam::123456789012:role/orders-api"
    )
    for stream in (orders, legacy):
        grant_write(stream, producer)
        console.print(metric(stream, "IncomingBytes"))

    console.print(engine.render("yaml"))


if __name__ == "__main__":
    main()
