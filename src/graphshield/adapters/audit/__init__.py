"""Audit logging adapters."""

from graphshield.adapters.audit.logger import EMPTY_DOCUMENT, AuditLogger

__all__ = [
    "AuditLogger",
    "EMPTY_DOCUMENT",
]
