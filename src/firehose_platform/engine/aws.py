"""Boto3Engine — provisions delivery streams live through the AWS APIs."""

from __future__ import annotations

import json
from typing import Any

import structlog
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from firehose_platform.config.models import Boto3EngineConfig
from firehose_platform.encryption import KmsKey
from firehose_platform.engine.base import DeliveryStreamRequest, ProvisionedStream
from firehose_platform.errors import ProvisioningFailed
from firehose_platform.iam.policy import InlinePolicy
from firehose_platform.iam.principals import RoleIdentity, ServicePrincipal
from firehose_platform.identifiers import DeploymentScope

logger = structlog.get_logger()

POLICY_NAME = "firehose-platform"
_MAX_NAME_LENGTH = 64


def physical_name(logical_id: str) -> str:
    return logical_id[:_MAX_NAME_LENGTH]


class Boto3Engine:
    """Creates IAM roles, KMS keys and delivery streams, rolling back on failure."""

    def __init__(
        self, scope: DeploymentScope, config: Boto3EngineConfig | None = None
    ) -> None:
        self._scope = scope
        self._config = config or Boto3EngineConfig()
        self._session: Any = None
        self._clients: dict[str, Any] = {}
        self._roles: list[RoleIdentity] = []
        # (kind, identifier) created for the stream in progress, for rollback.
        # Cleared once a stream is provisioned.
        self._created: list[tuple[str, str]] = []

    @property
    def scope(self) -> DeploymentScope:
        return self._scope

    def _client(self, service: str) -> Any:
        if service not in self._clients:
            if self._session is None:
                import boto3

                self._session = boto3.Session(
                    profile_name=self._config.profile_name,
                    region_name=self._scope.region,
                )
            self._clients[service] = self._session.client(service)
        return self._clients[service]

    def add_role(
        self,
        logical_id: str,
        assumed_by: ServicePrincipal,
        role_name: str | None = None,
    ) -> RoleIdentity:
        name = role_name or physical_name(logical_id)
        iam = self._client("iam")
        resp = self._call(
            "create_role",
            lambda: iam.create_role(
                RoleName=name,
                AssumeRolePolicyDocument=json.dumps(assumed_by.trust_policy()),
            ),
        )
        self._created.append(("role", name))
        role = RoleIdentity(
            role_name=name, arn=resp["Role"]["Arn"], assumed_by=assumed_by
        )
        self._roles.append(role)
        logger.info("engine.role_created", role=name)
        return role

    def import_role(self, logical_id: str, arn: str) -> RoleIdentity:
        for known in self._roles:
            if known.arn == arn:
                return known
        role = RoleIdentity.from_role_arn(arn)
        self._roles.append(role)
        return role

    def add_key(self, logical_id: str, description: str) -> KmsKey:
        kms = self._client("kms")
        resp = self._call(
            "create_key",
            lambda: kms.create_key(
                Description=description,
                Tags=[{"TagKey": "firehose-platform:logical-id", "TagValue": logical_id}],
            ),
        )
        key_arn = resp["KeyMetadata"]["Arn"]
        self._created.append(("key", key_arn))
        logger.info("engine.key_created", key=key_arn)
        return KmsKey(key_arn)

    def _track(self, role: RoleIdentity) -> None:
        if not any(known is role for known in self._roles):
            self._roles.append(role)

    def create_delivery_stream(self, request: DeliveryStreamRequest) -> ProvisionedStream:
        if isinstance(request.role, RoleIdentity):
            self._track(request.role)
        name = request.delivery_stream_name or physical_name(request.logical_id)
        firehose = self._client("firehose")
        self.sync_policies()
        resp = self._call(
            "create_delivery_stream",
            lambda: firehose.create_delivery_stream(**request.properties(name)),
        )
        self._created.append(("delivery_stream", name))
        logger.info("engine.delivery_stream_created", name=name)
        if self._config.wait_until_active:
            try:
                self._wait_until_active(name)
            except ProvisioningFailed:
                if self._config.rollback_on_failure:
                    self.rollback()
                raise
        self._created.clear()
        return ProvisionedStream(logical_name=name, logical_arn=resp["DeliveryStreamARN"])

    def sync_policies(self) -> None:
        """Push the accumulated grants of each role as its inline policy.

        Role objects naming the same IAM role share one policy document.
        """
        iam = self._client("iam")
        policies: dict[str, InlinePolicy] = {}
        for role in self._roles:
            merged = policies.setdefault(role.role_name, InlinePolicy())
            for effect in role.policy.effects:
                merged.add(effect)
        for role_name, policy in policies.items():
            document = policy.document()
            if document is None:
                continue
            self._call(
                "put_role_policy",
                lambda r=role_name, d=document: iam.put_role_policy(
                    RoleName=r,
                    PolicyName=POLICY_NAME,
                    PolicyDocument=json.dumps(d),
                ),
            )
            logger.info("engine.role_policy_put", role=role_name, statements=len(policy))

    def _stream_status(self, name: str) -> str:
        firehose = self._client("firehose")
        desc = self._call(
            "describe_delivery_stream",
            lambda: firehose.describe_delivery_stream(DeliveryStreamName=name),
        )
        status: str = desc["DeliveryStreamDescription"]["DeliveryStreamStatus"]
        if status.endswith("_FAILED"):
            msg = f"Delivery stream '{name}' entered status {status}"
            raise ProvisioningFailed(msg)
        return status

    def _wait_until_active(self, name: str) -> None:
        retrying = Retrying(
            retry=retry_if_result(lambda status: status != "ACTIVE"),
            stop=stop_after_attempt(self._config.waiter_max_attempts),
            wait=wait_fixed(self._config.waiter_delay_seconds),
        )
        try:
            retrying(self._stream_status, name)
        except RetryError as exc:
            msg = f"Delivery stream '{name}' did not become ACTIVE in time"
            raise ProvisioningFailed(msg) from exc

    def _call(self, operation: str, fn: Any) -> Any:
        """Run one API call; on failure roll back (if enabled) and raise ProvisioningFailed."""
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            return fn()
        except (ClientError, BotoCoreError) as exc:
            logger.error("engine.call_failed", operation=operation, error=str(exc))
            if self._config.rollback_on_failure:
                self.rollback()
            msg = f"{operation} failed: {exc}"
            raise ProvisioningFailed(msg, cause=exc) from exc

    def rollback(self) -> None:
        """Best-effort removal of what the stream in progress created, newest first."""
        while self._created:
            kind, ident = self._created.pop()
            try:
                if kind == "delivery_stream":
                    self._client("firehose").delete_delivery_stream(
                        DeliveryStreamName=ident, AllowForceDelete=True
                    )
                elif kind == "key":
                    self._client("kms").schedule_key_deletion(
                        KeyId=ident, PendingWindowInDays=7
                    )
                elif kind == "role":
                    iam = self._client("iam")
                    for policy in iam.list_role_policies(RoleName=ident)["PolicyNames"]:
                        iam.delete_role_policy(RoleName=ident, PolicyName=policy)
                    iam.delete_role(RoleName=ident)
                logger.info("engine.rollback_deleted", kind=kind, resource=ident)
            except Exception as exc:
                logger.warning(
                    "engine.rollback_failed", kind=kind, resource=ident, error=str(exc)
                )
