"""
Approval Chain Definition.

The fixed, ordered list of approver roles every trip and claim walks
through.  ``next`` and ``previous`` are clamped at both ends: the last
role's next role is itself, the first role's previous role is itself.
"""

from __future__ import annotations

from collections.abc import Sequence

from tripflow.models.enums import ApprovalRole

__all__ = ["ApprovalChain", "DEFAULT_CHAIN"]


class ApprovalChain:
    """Ordered, read-only sequence of approver roles."""

    def __init__(self, roles: Sequence[ApprovalRole] = tuple(ApprovalRole)) -> None:
        if not roles:
            raise ValueError("An approval chain needs at least one role.")
        if len(set(roles)) != len(roles):
            raise ValueError("An approval chain cannot repeat a role.")
        self._roles: tuple[ApprovalRole, ...] = tuple(roles)
        self._positions: dict[ApprovalRole, int] = {
            role: index for index, role in enumerate(self._roles)
        }

    def roles(self) -> tuple[ApprovalRole, ...]:
        return self._roles

    @property
    def first(self) -> ApprovalRole:
        return self._roles[0]

    @property
    def last(self) -> ApprovalRole:
        return self._roles[-1]

    def position(self, role: ApprovalRole) -> int:
        """Zero-based index of *role*.

        Raises:
            ValueError: If *role* is not part of this chain.
        """
        try:
            return self._positions[role]
        except KeyError:
            raise ValueError(f"Role '{role}' is not part of the approval chain.") from None

    def next(self, role: ApprovalRole) -> ApprovalRole:
        index = min(self.position(role) + 1, len(self._roles) - 1)
        return self._roles[index]

    def previous(self, role: ApprovalRole) -> ApprovalRole:
        index = max(self.position(role) - 1, 0)
        return self._roles[index]

    def is_last(self, role: ApprovalRole) -> bool:
        return role == self.last

    def __iter__(self):
        return iter(self._roles)

    def __len__(self) -> int:
        return len(self._roles)

    def __repr__(self) -> str:
        return f"ApprovalChain({' -> '.join(role.value for role in self._roles)})"


DEFAULT_CHAIN = ApprovalChain()
