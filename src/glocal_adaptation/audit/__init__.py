"""Audit module for the Glocal Adaptation Engine."""

from .audit_logger import AuditLogger

__all__ = [
    "AuditLogger",
]
