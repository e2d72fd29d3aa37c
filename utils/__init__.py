"""
Shared helpers for the Contact Reconciliation Service
"""

from .normalize import build_lock_key, normalize_email, normalize_phone

__all__ = ["build_lock_key", "normalize_email", "normalize_phone"]
