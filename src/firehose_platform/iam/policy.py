"""Grant effects and the inline policy that roles accumulate them into."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from firehose_platform.iam.principals import Identity

POLICY_VERSION = "2012-10-17"


@dataclass(frozen=True, slots=True)
class GrantEffect:
    """Instruction to allow *actions* on *resource_arns* for *grantee*.

    Built fresh per grant call; equal inputs always produce equal values.
    """

    resource_arns: tuple[str, ...]
    grantee: Identity
    actions: tuple[str, ...]

    def statement(self) -> dict[str, Any]:
        """Render as an IAM policy statement."""
        return {
            "Effect": "Allow",
            "Action": list(self.actions),
            "Resource": list(self.resource_arns),
        }


@dataclass
class InlinePolicy:
    """Ordered, de-duplicated set of grant effects attached to one role."""

    effects: list[GrantEffect] = field(default_factory=list)

    def add(self, effect: GrantEffect) -> bool:
        """Record *effect*; return False if an identical effect is already held."""
        if effect in self.effects:
            return False
        self.effects.append(effect)
        return True

    def __len__(self) -> int:
        return len(self.effects)

    def document(self) -> dict[str, Any] | None:
        """Render the IAM policy document, or None if nothing was granted."""
        if not self.effects:
            return None
        return {
            "Version": POLICY_VERSION,
            "Statement": [e.statement() for e in self.effects],
        }
