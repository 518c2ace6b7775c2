"""
Tests for the approval chain definition.

Tests cover:
- order of the default chain and its first/last roles
- clamped next/previous navigation
- construction guards (empty chain, repeated role, unknown role)
"""

import pytest

from tripflow.models import ApprovalRole
from tripflow.workflow import DEFAULT_CHAIN, ApprovalChain


class TestDefaultChain:
    def test_roles_in_fixed_order(self):
        assert DEFAULT_CHAIN.roles() == (
            ApprovalRole.SUPERVISOR,
            ApprovalRole.STAFF_GA,
            ApprovalRole.SPV_GA,
            ApprovalRole.HR_MANAGER,
            ApprovalRole.BOD,
            ApprovalRole.STAFF_FA,
        )

    def test_first_and_last(self):
        assert DEFAULT_CHAIN.first is ApprovalRole.SUPERVISOR
        assert DEFAULT_CHAIN.last is ApprovalRole.STAFF_FA
        assert DEFAULT_CHAIN.is_last(ApprovalRole.STAFF_FA)
        assert not DEFAULT_CHAIN.is_last(ApprovalRole.BOD)

    def test_roles_are_stored_values(self):
        assert [role.value for role in DEFAULT_CHAIN] == [
            "supervisor", "staff_ga", "spv_ga", "hr_manager", "bod", "staff_fa",
        ]
        assert len(DEFAULT_CHAIN) == 6


class TestNavigation:
    def test_next_advances_one_step(self):
        assert DEFAULT_CHAIN.next(ApprovalRole.SUPERVISOR) is ApprovalRole.STAFF_GA
        assert DEFAULT_CHAIN.next(ApprovalRole.BOD) is ApprovalRole.STAFF_FA

    def test_next_clamps_at_last(self):
        assert DEFAULT_CHAIN.next(ApprovalRole.STAFF_FA) is ApprovalRole.STAFF_FA

    def test_previous_steps_back(self):
        assert DEFAULT_CHAIN.previous(ApprovalRole.SPV_GA) is ApprovalRole.STAFF_GA

    def test_previous_clamps_at_first(self):
        assert DEFAULT_CHAIN.previous(ApprovalRole.SUPERVISOR) is ApprovalRole.SUPERVISOR

    def test_next_of_previous_round_trips_inside_chain(self):
        for role in list(DEFAULT_CHAIN)[1:]:
            assert DEFAULT_CHAIN.next(DEFAULT_CHAIN.previous(role)) is role


class TestConstruction:
    def test_empty_chain_rejected(self):
        with pytest.raises(ValueError):
            ApprovalChain(())

    def test_repeated_role_rejected(self):
        with pytest.raises(ValueError):
            ApprovalChain((ApprovalRole.SUPERVISOR, ApprovalRole.SUPERVISOR))

    def test_position_of_unknown_role(self):
        short = ApprovalChain((ApprovalRole.SUPERVISOR, ApprovalRole.STAFF_GA))
        assert short.position(ApprovalRole.STAFF_GA) == 1
        with pytest.raises(ValueError):
            short.position(ApprovalRole.BOD)

    def test_repr_lists_roles(self):
        assert repr(ApprovalChain((ApprovalRole.BOD,))) == "ApprovalChain(bod)"
