"""
Data access layer for the Contact Reconciliation Service
"""

from .contact_repository import ContactRepository

__all__ = ["ContactRepository"]
