"""Audit Service: append-only audit trail for pipeline events.

Each session owns one AuditLogger. Entries are hash-chained so the
exported trail can be verified, and the export is an ordered JSON array.
"""

from .audit_logger import AuditLogger, AuditEventType, AuditEntry

__all__ = [
    "AuditLogger",
    "AuditEventType",
    "AuditEntry",
]
