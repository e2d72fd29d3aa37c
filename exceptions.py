"""
Error taxonomy for identity reconciliation
Every error carries the lock key of the request and the stage the
reconciliation had reached, so a failure can be traced from the logs alone.
"""

from typing import Optional


class ReconciliationError(Exception):
    """Base class for failures raised while reconciling a contact"""

    retryable = False

    def __init__(self, message: str, key: Optional[str] = None, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.key = key
        self.stage = stage

    def __str__(self):
        context = []
        if self.key is not None:
            context.append(f"key={self.key!r}")
        if self.stage is not None:
            context.append(f"stage={self.stage}")
        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"


class DataIntegrityError(ReconciliationError):
    """Contact linkage is broken, e.g. a secondary points at a missing primary"""


class StoreUnavailableError(ReconciliationError):
    """The database could not be reached or failed operationally"""

    retryable = True


class ConcurrencyConflictError(ReconciliationError):
    """The database aborted the transaction because of a concurrent write"""

    retryable = True


class ReconciliationTimeoutError(ReconciliationError):
    """The store interaction did not finish within the configured timeout"""

    retryable = True
