"""Server-side encryption settings for delivery streams.

A supplied key always means customer-managed encryption; asking for
customer-managed encryption without a key allocates one owned by the
stream.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from firehose_platform.config.models import StreamEncryption
from firehose_platform.iam.grants import grant_on_arns
from firehose_platform.iam.policy import GrantEffect
from firehose_platform.iam.principals import Grantable

KMS_ENCRYPT_DECRYPT_ACTIONS: tuple[str, ...] = (
    "kms:Decrypt",
    "kms:Encrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
)


@runtime_checkable
class EncryptionKey(Protocol):
    """A KMS key that can grant usage to a principal."""

    @property
    def key_arn(self) -> str: ...

    def grant_encrypt_decrypt(self, grantee: Grantable) -> GrantEffect: ...


@dataclass(frozen=True, slots=True)
class KmsKey:
    """Reference to a KMS key by ARN."""

    key_arn: str

    def grant_encrypt_decrypt(self, grantee: Grantable) -> GrantEffect:
        return grant_on_arns([self.key_arn], grantee, KMS_ENCRYPT_DECRYPT_ACTIONS)


@dataclass(frozen=True, slots=True)
class Unencrypted:
    def to_properties(self) -> dict[str, Any] | None:
        return None


@dataclass(frozen=True, slots=True)
class CustomerManaged:
    """Encrypted with *key*; ``owned`` keys share the stream's lifecycle."""

    key: EncryptionKey
    owned: bool = False

    def to_properties(self) -> dict[str, Any] | None:
        return {"KeyType": "CUSTOMER_MANAGED_CMK", "KeyARN": self.key.key_arn}


@dataclass(frozen=True, slots=True)
class AwsOwned:
    def to_properties(self) -> dict[str, Any] | None:
        return {"KeyType": "AWS_OWNED_CMK"}


EncryptionConfig = Unencrypted | CustomerManaged | AwsOwned


def resolve_encryption(
    requested: StreamEncryption | None,
    supplied_key: EncryptionKey | None,
    *,
    allocate_key: Callable[[], EncryptionKey],
) -> EncryptionConfig:
    """Reconcile a requested mode with an optional supplied key.

    ``allocate_key`` is only called when customer-managed encryption is
    requested without a key.
    """
    if supplied_key is not None:
        return CustomerManaged(supplied_key)
    if requested == StreamEncryption.CUSTOMER_MANAGED:
        return CustomerManaged(allocate_key(), owned=True)
    if requested == StreamEncryption.AWS_OWNED:
        return AwsOwned()
    return Unencrypted()
