"""Engine factory — maps EngineType to a provisioning engine."""

from __future__ import annotations

from firehose_platform.config.models import EngineType, PlatformConfig
from firehose_platform.engine.base import ProvisioningEngine


def create_engine(platform: PlatformConfig) -> ProvisioningEngine:
    """Create the provisioning engine selected in the platform config."""
    if platform.engine == EngineType.TEMPLATE:
        from firehose_platform.engine.template import TemplateEngine

        return TemplateEngine(platform.scope)

    if platform.engine == EngineType.BOTO3:
        from firehose_platform.engine.aws import Boto3Engine

        return Boto3Engine(platform.scope, platform.boto3)

    msg = f"Unsupported engine: {platform.engine}"
    raise ValueError(msg)
