"""Shared utility functions and models for tripflow.

Convenience re-exports so that consumers can import directly from
``tripflow.utils`` while full absolute imports remain supported.
"""

from tripflow.utils.audit import AuditAction, AuditEvent, log_audit_event, read_audit_trail
from tripflow.utils.general import convert_to_json_safe
from tripflow.utils.string_helpers import sanitize_postgrest_value

__all__ = [
    "AuditAction",
    "AuditEvent",
    "convert_to_json_safe",
    "log_audit_event",
    "read_audit_trail",
    "sanitize_postgrest_value",
]
