# SPDX-License-Identifier: Apache-2.0

"""
Discriminated outcome returned by every workflow operation.
"""

from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from .errors import DomainError

T = TypeVar("T")


@dataclass
class WorkflowResult(Generic[T]):
    """Result of a workflow operation: a value on success, one typed error otherwise."""
    success: bool
    value: Optional[T] = None
    error: Optional[DomainError] = None

    @classmethod
    def ok(cls, value: Any = None) -> "WorkflowResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: DomainError) -> "WorkflowResult":
        return cls(success=False, error=error)

    @property
    def error_message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def unwrap(self) -> T:
        """
        Return the value or raise the carried error.

        Routes call this and let the Flask error handler render the problem.
        """
        if not self.success:
            raise self.error
        return self.value
