"""
tripflow: multi-step approval workflow for business trips and trip claims.

Records travel through a fixed chain of approver roles (Supervisor,
Staff GA, SPV GA, HR Manager, BOD, Staff FA).  The pure engine lives in
:mod:`tripflow.workflow`; persistence in :mod:`tripflow.repositories`;
orchestration in :mod:`tripflow.services`.
"""

__version__ = "0.1.0"
