"""Exception taxonomy for delivery stream declarations.

Every error aborts the current declaration; none are retried at this layer.
"""

from __future__ import annotations


class FirehosePlatformError(Exception):
    """Base class for all firehose-platform errors."""


class InvalidIdentifier(FirehosePlatformError, ValueError):
    """Raised when a delivery stream name does not match the identifier grammar."""

    def __init__(self, value: str, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid delivery stream name '{value}': {reason}")


class MissingDestination(FirehosePlatformError):
    """Raised when a delivery stream is declared without a destination."""

    def __init__(self, stream_id: str) -> None:
        self.stream_id = stream_id
        super().__init__(f"Delivery stream '{stream_id}' requires a destination")


class UngrantableIdentity(FirehosePlatformError):
    """Raised by the policy-attachment step when a principal cannot hold policies."""

    def __init__(self, principal: object) -> None:
        self.principal = principal
        super().__init__(
            f"Cannot attach policies to {type(principal).__name__}: {principal}"
        )


class ProvisioningFailed(FirehosePlatformError):
    """Raised by a provisioning engine; ``cause`` carries the engine's own error."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)
