"""
Optimist — Exception Hierarchy

Typed errors so a host store can tell a late or duplicate resolution
apart from a programming mistake.

Delegate reducer failures are never wrapped: whatever the caller's
reducer raises reaches the caller of OptimisticReducer.reduce as-is.
"""

from __future__ import annotations

from typing import Any


class OptimistError(Exception):
    """Base exception for all Optimist errors."""

    def __init__(self, message: str = "", **kwargs):
        self.detail = kwargs
        super().__init__(message)


class InvalidResolution(OptimistError):
    """A SUCCESS or FAILURE message arrived while nothing was pending."""

    def __init__(self, action_id: Any, status: str):
        self.action_id = action_id
        self.status = status
        super().__init__(
            f"Resolution {status} for action {action_id!r} with no pending actions",
            action_id=action_id,
            status=status,
        )


class BaselineUnset(OptimistError):
    """The baseline snapshot was read while the queue is empty."""
    pass
