"""TemplateEngine — synthesizes a CloudFormation template without any I/O.

Names and ARNs the template cannot know yet are returned as deploy-time
tokens (``${Token[Ref:Orders]}``).
"""

from __future__ import annotations

import json
from typing import Any

import structlog
import yaml

from firehose_platform.encryption import KmsKey
from firehose_platform.engine.base import DeliveryStreamRequest, ProvisionedStream
from firehose_platform.errors import ProvisioningFailed
from firehose_platform.iam.principals import RoleIdentity, ServicePrincipal
from firehose_platform.identifiers import DeploymentScope, delivery_stream_arn

logger = structlog.get_logger()

TEMPLATE_FORMAT_VERSION = "2010-09-09"


def ref_token(logical_id: str) -> str:
    return f"${{Token[Ref:{logical_id}]}}"


def get_att_token(logical_id: str, attribute: str) -> str:
    return f"${{Token[GetAtt:{logical_id}.{attribute}]}}"


class TemplateEngine:
    """Collects declared resources into one template."""

    def __init__(self, scope: DeploymentScope) -> None:
        self._scope = scope
        self._resources: dict[str, dict[str, Any]] = {}
        # Roles whose inline policy is rendered: logical id -> (role, owned)
        self._roles: dict[str, tuple[RoleIdentity, bool]] = {}

    @property
    def scope(self) -> DeploymentScope:
        return self._scope

    @property
    def resources(self) -> dict[str, dict[str, Any]]:
        return dict(self._resources)

    def _declare(self, logical_id: str, resource: dict[str, Any]) -> None:
        if logical_id in self._resources:
            msg = f"Duplicate logical id '{logical_id}' in template"
            raise ProvisioningFailed(msg)
        self._resources[logical_id] = resource

    def add_role(
        self,
        logical_id: str,
        assumed_by: ServicePrincipal,
        role_name: str | None = None,
    ) -> RoleIdentity:
        props: dict[str, Any] = {"AssumeRolePolicyDocument": assumed_by.trust_policy()}
        if role_name is not None:
            props["RoleName"] = role_name
        self._declare(logical_id, {"Type": "AWS::IAM::Role", "Properties": props})
        role = RoleIdentity(
            role_name=role_name or ref_token(logical_id),
            arn=get_att_token(logical_id, "Arn"),
            assumed_by=assumed_by,
        )
        self._roles[logical_id] = (role, True)
        logger.debug("template.role_declared", logical_id=logical_id)
        return role

    def import_role(self, logical_id: str, arn: str) -> RoleIdentity:
        for known, _ in self._roles.values():
            if known.arn == arn:
                return known
        role = RoleIdentity.from_role_arn(arn)
        self._roles[logical_id] = (role, False)
        return role

    def sync_policies(self) -> None:
        """Nothing to do: policies are rendered when the template is built."""

    def add_key(self, logical_id: str, description: str) -> KmsKey:
        self._declare(
            logical_id,
            {
                "Type": "AWS::KMS::Key",
                "Properties": {"Description": description, "EnableKeyRotation": True},
                "DeletionPolicy": "Delete",
                "UpdateReplacePolicy": "Delete",
            },
        )
        logger.debug("template.key_declared", logical_id=logical_id)
        return KmsKey(get_att_token(logical_id, "Arn"))

    def create_delivery_stream(self, request: DeliveryStreamRequest) -> ProvisionedStream:
        resource: dict[str, Any] = {
            "Type": "AWS::KinesisFirehose::DeliveryStream",
            "Properties": request.properties(),
        }
        untracked_role_id = None
        if isinstance(request.role, RoleIdentity):
            role_id = self._role_logical_id(request.role)
            if role_id is None:
                role_id = untracked_role_id = f"{request.logical_id}Role"
            # Firehose validates role permissions at creation time.
            resource["DependsOn"] = [f"{role_id}DefaultPolicy"]
        self._declare(request.logical_id, resource)
        if untracked_role_id is not None:
            self._roles[untracked_role_id] = (request.role, False)

        name = request.delivery_stream_name or ref_token(request.logical_id)
        logger.info(
            "template.delivery_stream_declared",
            logical_id=request.logical_id,
            name=name,
        )
        return ProvisionedStream(
            logical_name=name,
            logical_arn=delivery_stream_arn(self._scope, name),
        )

    def _role_logical_id(self, role: RoleIdentity) -> str | None:
        for lid, (known, _) in self._roles.items():
            if known is role:
                return lid
        return None

    def template(self) -> dict[str, Any]:
        """Return the template, including inline policies granted so far."""
        resources = dict(self._resources)
        for lid, (role, owned) in self._roles.items():
            document = role.policy.document()
            if document is None:
                continue
            role_ref: Any = {"Ref": lid} if owned else role.role_name
            resources[f"{lid}DefaultPolicy"] = {
                "Type": "AWS::IAM::Policy",
                "Properties": {
                    "PolicyName": f"{lid}DefaultPolicy",
                    "PolicyDocument": document,
                    "Roles": [role_ref],
                },
            }
        for lid, resource in list(resources.items()):
            depends = [d for d in resource.get("DependsOn", []) if d in resources]
            resource = {k: v for k, v in resource.items() if k != "DependsOn"}
            if depends:
                resource["DependsOn"] = depends
            resources[lid] = resource
        return {
            "AWSTemplateFormatVersion": TEMPLATE_FORMAT_VERSION,
            "Resources": resources,
        }

    def render(self, fmt: str = "yaml") -> str:
        template = self.template()
        if fmt == "json":
            return json.dumps(template, indent=2)
        if fmt == "yaml":
            return yaml.safe_dump(template, sort_keys=False)
        msg = f"Unsupported template format: {fmt}"
        raise ValueError(msg)
