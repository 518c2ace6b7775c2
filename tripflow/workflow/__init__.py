"""
Approval Workflow Engine.

Pure, store-agnostic logic for the six-role approval chain:

- :mod:`~tripflow.workflow.chain`: role order and clamped navigation
- :mod:`~tripflow.workflow.authorization`: who may act at a step
- :mod:`~tripflow.workflow.transitions`: submit / approve / reject
- :mod:`~tripflow.workflow.history`: read-side projections
"""

from tripflow.workflow.authorization import can_act, expected_actor
from tripflow.workflow.chain import DEFAULT_CHAIN, ApprovalChain
from tripflow.workflow.history import (
    ROLE_LABELS,
    approval_timeline,
    is_auto_approved,
    latest_approval,
    status_captions,
    status_label,
)
from tripflow.workflow.transitions import approve, guard_for, reject, submit

__all__ = [
    "DEFAULT_CHAIN",
    "ROLE_LABELS",
    "ApprovalChain",
    "approval_timeline",
    "approve",
    "can_act",
    "expected_actor",
    "guard_for",
    "is_auto_approved",
    "latest_approval",
    "reject",
    "status_captions",
    "status_label",
    "submit",
]
