"""Result types for PayLedger.

``ValidationResult`` is what every validator returns: a validity flag plus the
full list of human-readable violations. ``Result`` reports the outcome of
batch operations (such as staging imported timesheets) where some items may
be skipped without the whole call failing.
"""
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar, Generic, List

T = TypeVar('T')


@dataclass
class ValidationResult:
    """Outcome of a validation pass.

    Attributes:
        errors: Every violated rule, in rule order.
        conflicts: The subset of ``errors`` caused by uniqueness clashes
            with existing records.
    """
    errors: List[str] = field(default_factory=list)
    conflicts: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def only_conflicts(self) -> bool:
        """True when the record is well-formed but clashes with existing ones."""
        return bool(self.conflicts) and len(self.errors) == len(self.conflicts)

    def add(self, message: str):
        self.errors.append(message)

    def add_conflict(self, message: str):
        self.errors.append(message)
        self.conflicts.append(message)

    def __bool__(self) -> bool:
        return self.is_valid


@dataclass
class Result(Generic[T]):
    """Represents the outcome of an operation.

    Attributes:
        success: Whether the operation succeeded.
        value: The return value on success, None on failure.
        error: Error message on failure, None on success.
        error_type: Type/category of error (e.g., "NOT_FOUND", "VALIDATION").
        warnings: Non-fatal problems met along the way.

    Usage:
        result = timesheets.stage(records)
        if result.success:
            print(f"Staged: {result.value}")
        for warning in result.warnings:
            print(warning)
    """
    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, value: T = None, warnings: List[str] = None) -> 'Result[T]':
        """Create a successful result."""
        return cls(success=True, value=value, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: str, error_type: str = None) -> 'Result[T]':
        """Create a failure result."""
        return cls(success=False, error=error, error_type=error_type)

    def __bool__(self) -> bool:
        return self.success


# Common error types for consistency
class ErrorType:
    """Standard error type constants."""
    PARSE = "PARSE"
