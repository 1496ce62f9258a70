"""Unit tests for the boto3 provisioning engine."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from firehose_platform.config.models import Boto3EngineConfig, S3DestinationConfig
from firehose_platform.destinations.s3 import S3BucketDestination
from firehose_platform.engine.aws import POLICY_NAME, Boto3Engine, physical_name
from firehose_platform.engine.base import logical_id
from firehose_platform.errors import ProvisioningFailed
from firehose_platform.iam.grants import grant_write
from firehose_platform.iam.principals import RoleIdentity
from firehose_platform.identifiers import DeploymentScope, delivery_stream_arn
from firehose_platform.provisioning import DeliveryStreamProps, create_delivery_stream

SCOPE = DeploymentScope(account="123456789012", region="us-east-1")


def _client_error(operation: str = "CreateDeliveryStream") -> ClientError:
    return ClientError(
        {"Error": {"Code": "InvalidArgumentException", "Message": "nope"}}, operation
    )


def _clients() -> dict[str, MagicMock]:
    iam = MagicMock()
    iam.create_role.side_effect = lambda **kw: {
        "Role": {"Arn": f"arn:aws:iam::123456789012:role/{kw['RoleName']}"}
    }
    iam.list_role_policies.return_value = {"PolicyNames": [POLICY_NAME]}
    kms = MagicMock()
    kms.create_key.return_value = {
        "KeyMetadata": {"Arn": "arn:aws:kms:us-east-1:123456789012:key/k1"}
    }
    firehose = MagicMock()
    firehose.create_delivery_stream.side_effect = lambda **kw: {
        "DeliveryStreamARN": delivery_stream_arn(SCOPE, kw["DeliveryStreamName"])
    }
    firehose.describe_delivery_stream.return_value = {
        "DeliveryStreamDescription": {"DeliveryStreamStatus": "ACTIVE"}
    }
    return {"iam": iam, "kms": kms, "firehose": firehose}


def _mock_boto3(clients: dict[str, MagicMock]):
    """Create a mock boto3 module for sys.modules patching."""
    mock_boto3_mod = MagicMock()
    mock_boto3_mod.Session.return_value.client.side_effect = lambda s: clients[s]
    return {"boto3": mock_boto3_mod}


def _props(**kwargs) -> DeliveryStreamProps:
    return DeliveryStreamProps(
        destination=S3BucketDestination(
            S3DestinationConfig(bucket_arn="arn:aws:s3:::archive")
        ),
        **kwargs,
    )


class TestBoto3EngineCreate:
    def test_creates_role_policy_and_stream(self):
        clients = _clients()
        engine = Boto3Engine(SCOPE)
        with patch.dict("sys.modules", _mock_boto3(clients)):
            handle = create_delivery_stream(
                SCOPE, "Orders", _props(delivery_stream_name="orders"), engine=engine
            )

        assert handle.arn == delivery_stream_arn(SCOPE, "orders")
        clients["iam"].create_role.assert_called_once()
        put = clients["iam"].put_role_policy.call_args.kwargs
        assert put["PolicyName"] == POLICY_NAME
        assert json.loads(put["PolicyDocument"])["Statement"][0]["Resource"] == [
            "arn:aws:s3:::archive",
            "arn:aws:s3:::archive/*",
        ]
        kwargs = clients["firehose"].create_delivery_stream.call_args.kwargs
        assert kwargs["DeliveryStreamName"] == "orders"
        assert kwargs["DeliveryStreamType"] == "DirectPut"
        assert "ExtendedS3DestinationConfiguration" in kwargs

    def test_unnamed_stream_uses_logical_id(self):
        clients = _clients()
        with patch.dict("sys.modules", _mock_boto3(clients)):
            handle = create_delivery_stream(
                SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE)
            )
        assert handle.name == "Orders"

    def test_customer_managed_key_is_created(self):
        from firehose_platform.config.models import StreamEncryption

        clients = _clients()
        with patch.dict("sys.modules", _mock_boto3(clients)):
            handle = create_delivery_stream(
                SCOPE,
                "Orders",
                _props(encryption=StreamEncryption.CUSTOMER_MANAGED),
                engine=Boto3Engine(SCOPE),
            )
        clients["kms"].create_key.assert_called_once()
        kwargs = clients["firehose"].create_delivery_stream.call_args.kwargs
        assert kwargs["DeliveryStreamEncryptionConfigurationInput"] == {
            "KeyType": "CUSTOMER_MANAGED_CMK",
            "KeyARN": "arn:aws:kms:us-east-1:123456789012:key/k1",
        }
        assert handle.encryption.owned is True

    def test_waits_until_active(self):
        clients = _clients()
        clients["firehose"].describe_delivery_stream.side_effect = [
            {"DeliveryStreamDescription": {"DeliveryStreamStatus": "CREATING"}},
            {"DeliveryStreamDescription": {"DeliveryStreamStatus": "ACTIVE"}},
        ]
        with (
            patch.dict("sys.modules", _mock_boto3(clients)),
            patch("time.sleep") as mock_sleep,
        ):
            create_delivery_stream(SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE))
        assert clients["firehose"].describe_delivery_stream.call_count == 2
        mock_sleep.assert_called_once_with(10)

    def test_gives_up_after_max_attempts(self):
        clients = _clients()
        clients["firehose"].describe_delivery_stream.return_value = {
            "DeliveryStreamDescription": {"DeliveryStreamStatus": "CREATING"}
        }
        engine = Boto3Engine(SCOPE, Boto3EngineConfig(waiter_max_attempts=2))
        with (
            patch.dict("sys.modules", _mock_boto3(clients)),
            patch("time.sleep"),
        ):
            with pytest.raises(ProvisioningFailed, match="did not become ACTIVE"):
                create_delivery_stream(SCOPE, "Orders", _props(), engine=engine)
        assert clients["firehose"].describe_delivery_stream.call_count == 2
        clients["firehose"].delete_delivery_stream.assert_called_once()

    def test_skips_wait_when_disabled(self):
        clients = _clients()
        engine = Boto3Engine(SCOPE, Boto3EngineConfig(wait_until_active=False))
        with patch.dict("sys.modules", _mock_boto3(clients)):
            create_delivery_stream(SCOPE, "Orders", _props(), engine=engine)
        clients["firehose"].describe_delivery_stream.assert_not_called()


class TestBoto3EngineFailure:
    def test_client_error_wrapped_and_rolled_back(self):
        clients = _clients()
        error = _client_error()
        clients["firehose"].create_delivery_stream.side_effect = error
        with patch.dict("sys.modules", _mock_boto3(clients)):
            with pytest.raises(ProvisioningFailed, match="create_delivery_stream") as exc_info:
                create_delivery_stream(SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE))

        assert exc_info.value.cause is error
        assert exc_info.value.__cause__ is error
        clients["iam"].delete_role_policy.assert_called_once()
        clients["iam"].delete_role.assert_called_once()

    def test_failed_status_deletes_stream(self):
        clients = _clients()
        clients["firehose"].describe_delivery_stream.return_value = {
            "DeliveryStreamDescription": {"DeliveryStreamStatus": "CREATING_FAILED"}
        }
        with patch.dict("sys.modules", _mock_boto3(clients)):
            with pytest.raises(ProvisioningFailed, match="CREATING_FAILED"):
                create_delivery_stream(SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE))
        clients["firehose"].delete_delivery_stream.assert_called_once_with(
            DeliveryStreamName="Orders", AllowForceDelete=True
        )
        clients["iam"].delete_role.assert_called_once()

    def test_no_rollback_when_disabled(self):
        clients = _clients()
        clients["firehose"].create_delivery_stream.side_effect = _client_error()
        engine = Boto3Engine(SCOPE, Boto3EngineConfig(rollback_on_failure=False))
        with patch.dict("sys.modules", _mock_boto3(clients)):
            with pytest.raises(ProvisioningFailed):
                create_delivery_stream(SCOPE, "Orders", _props(), engine=engine)
        clients["iam"].delete_role.assert_not_called()

    def test_rollback_errors_are_logged_not_raised(self):
        clients = _clients()
        clients["firehose"].create_delivery_stream.side_effect = _client_error()
        clients["iam"].delete_role.side_effect = RuntimeError("still attached")
        with patch.dict("sys.modules", _mock_boto3(clients)):
            with pytest.raises(ProvisioningFailed):
                create_delivery_stream(SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE))

    def test_failure_keeps_streams_already_provisioned(self):
        clients = _clients()

        def create(**kwargs):
            if kwargs["DeliveryStreamName"] == "Clicks":
                raise _client_error()
            return {
                "DeliveryStreamARN": delivery_stream_arn(
                    SCOPE, kwargs["DeliveryStreamName"]
                )
            }

        clients["firehose"].create_delivery_stream.side_effect = create
        engine = Boto3Engine(SCOPE)
        with patch.dict("sys.modules", _mock_boto3(clients)):
            orders = create_delivery_stream(SCOPE, "Orders", _props(), engine=engine)
            with pytest.raises(ProvisioningFailed):
                create_delivery_stream(SCOPE, "Clicks", _props(), engine=engine)

        assert orders.name == "Orders"
        clients["firehose"].delete_delivery_stream.assert_not_called()
        deleted = [c.kwargs["RoleName"] for c in clients["iam"].delete_role.call_args_list]
        assert deleted == [physical_name(logical_id("Clicks", "Service Role"))]

    def test_role_creation_failure(self):
        clients = _clients()
        clients["iam"].create_role.side_effect = _client_error("CreateRole")
        with patch.dict("sys.modules", _mock_boto3(clients)):
            with pytest.raises(ProvisioningFailed, match="create_role"):
                create_delivery_stream(SCOPE, "Orders", _props(), engine=Boto3Engine(SCOPE))
        clients["firehose"].create_delivery_stream.assert_not_called()


class TestBoto3EnginePolicies:
    def test_sync_policies_pushes_imported_roles(self):
        clients = _clients()
        engine = Boto3Engine(SCOPE)
        with patch.dict("sys.modules", _mock_boto3(clients)):
            handle = create_delivery_stream(
                SCOPE, "Orders", _props(delivery_stream_name="orders"), engine=engine
            )
            writer = engine.import_role("Writer", "arn:aws:iam::123456789012:role/api")
            grant_write(handle, writer)
            engine.sync_policies()

        role_names = [
            c.kwargs["RoleName"] for c in clients["iam"].put_role_policy.call_args_list
        ]
        assert "api" in role_names

    def test_roles_naming_same_iam_role_share_one_policy(self):
        clients = _clients()
        engine = Boto3Engine(SCOPE, Boto3EngineConfig(wait_until_active=False))
        arn = "arn:aws:iam::123456789012:role/shared"
        first = RoleIdentity.from_role_arn(arn)
        second = RoleIdentity.from_role_arn(arn)
        with patch.dict("sys.modules", _mock_boto3(clients)):
            create_delivery_stream(SCOPE, "Orders", _props(role=first), engine=engine)
            clicks = create_delivery_stream(
                SCOPE, "Clicks", _props(role=second), engine=engine
            )
            grant_write(clicks, second)
            engine.sync_policies()

        clients["iam"].create_role.assert_not_called()
        put = clients["iam"].put_role_policy.call_args.kwargs
        assert put["RoleName"] == "shared"
        statements = json.loads(put["PolicyDocument"])["Statement"]
        assert [s["Resource"] for s in statements] == [
            ["arn:aws:s3:::archive", "arn:aws:s3:::archive/*"],
            [clicks.arn],
        ]
