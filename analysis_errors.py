"""Domain errors raised by the tract analysis pipeline.

Every error carries a stable ``code``, a readable ``message`` and a
``context`` mapping (column names, row counts, intermediate values) so the
caller can diagnose the failure without re-running the computation.
"""

from typing import Any, Dict, Mapping, Optional


class AnalysisError(ValueError):
    """Base class for recoverable analysis failures."""

    def __init__(
        self,
        code: str,
        message: str,
        context: Optional[Mapping[str, Any]] = None
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.context = dict(context or {})

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Log-safe dictionary representation"""
        return {
            'error_code': self.code,
            'message': self.message,
            'context': self.context
        }


class MissingColumnError(AnalysisError):
    """A required column is not present in the table."""

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__("MISSING_COLUMN", message, context)


class DivisionByZeroError(AnalysisError):
    """A denominator or variance that must be non-zero is zero."""

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__("DIVISION_BY_ZERO", message, context)


class InsufficientSampleError(AnalysisError):
    """Too few rows or groups to compute the requested statistic."""

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__("INSUFFICIENT_SAMPLE", message, context)


class InvalidGroupCountError(AnalysisError):
    """The grouping column does not hold exactly two categories."""

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__("INVALID_GROUP_COUNT", message, context)


class SchemaMismatchError(AnalysisError):
    """A column is not numeric or categorical as expected."""

    def __init__(self, message: str, context: Optional[Mapping[str, Any]] = None):
        super().__init__("SCHEMA_MISMATCH", message, context)
