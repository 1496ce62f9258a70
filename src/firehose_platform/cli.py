"""Typer CLI for firehose-platform."""

from __future__ import annotations

from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from firehose_platform.app import StreamSet, build_delivery_streams
from firehose_platform.config.loader import load_platform_config, load_streams_config
from firehose_platform.config.models import EngineType, PlatformConfig, StreamsConfig
from firehose_platform.delivery_stream import from_delivery_stream_name
from firehose_platform.engine.base import ProvisioningEngine
from firehose_platform.engine.factory import create_engine
from firehose_platform.engine.template import TemplateEngine
from firehose_platform.errors import FirehosePlatformError
from firehose_platform.metrics import NAMED_METRICS, MetricOptions, metric

logger = structlog.get_logger()
console = Console()
app = typer.Typer(name="firehose", help="Firehose delivery stream CLI")


def _load_platform(platform_config: str | None) -> PlatformConfig:
    try:
        return load_platform_config(Path(platform_config) if platform_config else None)
    except (ValueError, FileNotFoundError, TypeError) as exc:
        console.print(f"[red]Platform config error:[/red] {exc}")
        raise typer.Exit(1) from exc


def _load(
    config_path: str,
    platform_config: str | None = None,
) -> tuple[StreamsConfig, PlatformConfig]:
    path = Path(config_path)
    if not path.exists():
        console.print(f"[red]Config file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        streams = load_streams_config(path)
    except (ValueError, TypeError) as exc:
        console.print(f"[red]Validation error:[/red] {exc}")
        raise typer.Exit(1) from exc
    return streams, _load_platform(platform_config)


@app.command()
def validate(
    config_path: str = typer.Argument(..., help="Path to streams YAML"),
    platform_config: str | None = typer.Option(
        None, "--platform-config", help="Platform YAML"
    ),
) -> None:
    """Validate a streams configuration file."""
    streams, platform = _load(config_path, platform_config)
    scope = platform.scope
    console.print(
        f"[green]Valid[/green] — {len(streams.streams)} stream(s), "
        f"{len(streams.imports)} import(s)"
    )
    console.print(f"  scope:  {scope.partition}/{scope.account}/{scope.region}")
    console.print(f"  engine: {platform.engine}")
    for s in streams.streams:
        dest = s.destination.destination_type if s.destination else "[red](none)[/red]"
        encryption = s.encryption or ("customer_managed" if s.encryption_key_arn else "unencrypted")
        console.print(f"    - {s.stream_id} → {dest} {escape(f'[{encryption}]')}")
    for i in streams.imports:
        console.print(f"    - {i.stream_id} (imported: {i.delivery_stream_name})")


def _build(engine: ProvisioningEngine, streams: StreamsConfig) -> StreamSet:
    try:
        return build_delivery_streams(streams, engine=engine)
    except FirehosePlatformError as exc:
        console.print(f"[red]{type(exc).__name__}:[/red] {exc}")
        raise typer.Exit(1) from exc


@app.command()
def synth(
    config_path: str = typer.Argument(..., help="Path to streams YAML"),
    fmt: str = typer.Option("yaml", "--format", help="yaml or json"),
    platform_config: str | None = typer.Option(
        None, "--platform-config", help="Platform YAML"
    ),
) -> None:
    """Print the CloudFormation template for the declared streams."""
    streams, platform = _load(config_path, platform_config)
    engine = TemplateEngine(platform.scope)
    _build(engine, streams)
    try:
        typer.echo(engine.render(fmt))
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc


@app.command()
def deploy(
    config_path: str = typer.Argument(..., help="Path to streams YAML"),
    platform_config: str | None = typer.Option(
        None, "--platform-config", help="Platform YAML"
    ),
) -> None:
    """Provision the declared streams live through boto3."""
    streams, platform = _load(config_path, platform_config)
    platform = platform.model_copy(update={"engine": EngineType.BOTO3})
    result = _build(create_engine(platform), streams)

    table = Table(title="Delivery Streams")
    table.add_column("Stream", style="cyan")
    table.add_column("Name")
    table.add_column("ARN")
    for handle in result:
        table.add_row(handle.stream_id, handle.name, handle.arn)
    console.print(table)


@app.command()
def arn(
    name: str = typer.Argument(..., help="Delivery stream name"),
    platform_config: str | None = typer.Option(
        None, "--platform-config", help="Platform YAML"
    ),
) -> None:
    """Print the ARN of an existing delivery stream."""
    platform = _load_platform(platform_config)
    try:
        handle = from_delivery_stream_name(platform.scope, name, name)
    except FirehosePlatformError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc
    typer.echo(handle.arn)


@app.command()
def metrics(
    name: str = typer.Argument(..., help="Delivery stream name"),
    metric_names: list[str] | None = typer.Option(
        None, "--metric", help="Metric name (repeatable); defaults to all named metrics"
    ),
    period: int = typer.Option(300, "--period", help="Period in seconds"),
    statistic: str = typer.Option("Average", "--statistic"),
    platform_config: str | None = typer.Option(
        None, "--platform-config", help="Platform YAML"
    ),
) -> None:
    """Show metric descriptors for a delivery stream."""
    platform = _load_platform(platform_config)
    try:
        handle = from_delivery_stream_name(platform.scope, name, name)
    except FirehosePlatformError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1) from exc

    options = MetricOptions(period_seconds=period, statistic=statistic)
    table = Table(title=f"Metrics — {handle.name}")
    table.add_column("Namespace", style="cyan")
    table.add_column("Metric")
    table.add_column("Dimensions")
    table.add_column("Options")
    for metric_name in metric_names or list(NAMED_METRICS):
        descriptor = metric(handle, metric_name, options)
        table.add_row(
            descriptor.namespace,
            descriptor.metric_name,
            str(descriptor.dimensions),
            str(descriptor.options),
        )
    console.print(table)
