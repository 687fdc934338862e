"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Error hierarchy shared by the labsync runtime.
"""

from __future__ import annotations


class LabSyncError(RuntimeError):
    """Base error for labsync."""


class SettingsError(LabSyncError):
    """Raised when environment configuration cannot be parsed."""


class FetchError(LabSyncError):
    """
    Raised when a query fetch fails.

    Network failures, timeouts and server-reported store errors all end up
    here; none of them is a distinct error kind for the query runner.
    """

    def __init__(self, message: str, *, attempts: int = 1) -> None:
        super().__init__(message)
        self.attempts = attempts


class MutationError(LabSyncError):
    """Raised when a create/update/delete request fails."""

    def __init__(
        self,
        message: str,
        *,
        table: str,
        operation: str,
        code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.table = table
        self.operation = operation
        self.code = code


class UnknownTableError(LabSyncError, KeyError):
    """Raised when a table has no derived cache-key mapping."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "unknown table"


class StoreRequestError(LabSyncError):
    """Raised when a data store request reports an error."""

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status = status
