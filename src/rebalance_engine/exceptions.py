"""
Exception hierarchy for the Rebalance Engine.

This module defines the custom exceptions raised by the decimal layer,
the input adapters and the recommendation pipeline. Using specific
exceptions lets callers tell bad input apart from broken invariants.
"""

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ErrorSeverity(Enum):
    """Categorizes the severity of errors for handling decisions."""

    CRITICAL = "critical"
    """Run should stop; this error prevents meaningful continuation"""

    WARNING = "warning"
    """Log but continue; the offending record is skipped"""

    INFO = "info"
    """Track but don't alarm; this is informational"""


@dataclass
class ProcessingError:
    """
    Structured error record for failures while reading asset input.

    Collected per run so bad rows can be reported without stopping
    the whole recommendation (for WARNING/INFO severity).
    """

    file_name: str
    """Name of the file that caused the error"""

    error_type: str
    """Category of error (e.g., "ASSET_PARSE_ERROR")"""

    message: str
    """Human-readable error message"""

    severity: ErrorSeverity
    """How serious is this error? CRITICAL/WARNING/INFO"""

    traceback_str: Optional[str] = None
    """Full traceback for debugging (only for CRITICAL/WARNING)"""

    context: dict = field(default_factory=dict)
    """Additional context data (symbol, row number, etc.)"""

    @classmethod
    def from_exception(
        cls,
        file_name: str,
        error_type: str,
        exception: Exception,
        severity: ErrorSeverity,
        context: Optional[dict] = None,
    ) -> "ProcessingError":
        """
        Create ProcessingError from a caught exception.

        Args:
            file_name: Name of file being processed
            error_type: Custom error category
            exception: The exception that was caught
            severity: How to categorize this error
            context: Optional additional context data

        Returns:
            ProcessingError with traceback automatically extracted
        """
        tb_str = traceback.format_exc() if severity in (ErrorSeverity.CRITICAL, ErrorSeverity.WARNING) else None
        return cls(
            file_name=file_name,
            error_type=error_type,
            message=str(exception),
            severity=severity,
            traceback_str=tb_str,
            context=context or {},
        )


# ============================================================================
# BASE EXCEPTION CLASSES
# ============================================================================

class RebalanceEngineException(Exception):
    """
    Base exception for all Rebalance Engine errors.

    Inheriting from this allows catching all engine errors:
        try:
            ...
        except RebalanceEngineException as e:
            ...
    """

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__


class DataProcessingError(RebalanceEngineException):
    """Base class for errors during data extraction and calculation."""
    pass


class ValidationError(RebalanceEngineException):
    """Base class for input validation failures."""
    pass


class ConfigurationError(RebalanceEngineException):
    """Base class for configuration/setup issues."""
    pass


class PipelineError(RebalanceEngineException):
    """Base class for recommendation pipeline errors."""
    pass


# ============================================================================
# DECIMAL INPUT EXCEPTIONS
# ============================================================================

class InvalidDecimalError(ValidationError):
    """
    Raised when a value cannot be parsed as a finite decimal.

    Raised at the parse boundary, before any distribution logic runs.

    Example:
        raise InvalidDecimalError("Cannot parse 'abc' as Decimal")
    """
    pass


class NegativeAmountError(InvalidDecimalError):
    """
    Raised when a monetary input that must be non-negative is negative.

    Example:
        raise NegativeAmountError("Contribution cannot be negative: -100")
    """
    pass


# ============================================================================
# CALCULATION EXCEPTIONS
# ============================================================================

class CalculationError(DataProcessingError):
    """
    Raised when a decimal calculation fails unexpectedly.

    Example:
        raise CalculationError("Quantize overflow for 1E+30")
    """
    pass


class DivisionByZeroError(CalculationError):
    """
    Raised when a decimal division has a zero divisor.

    Example:
        raise DivisionByZeroError("Cannot divide 100 by zero")
    """
    pass


# ============================================================================
# INPUT FILE EXCEPTIONS
# ============================================================================

class FileReadError(DataProcessingError):
    """
    Raised when an asset file cannot be read or opened.

    Example:
        raise FileReadError("Unable to open assets.xlsx: Permission denied")
    """
    pass


class AssetParseError(DataProcessingError):
    """
    Raised when an asset row is missing required columns or values.

    Example:
        raise AssetParseError("Row 4: missing required column 'symbol'")
    """
    pass


# ============================================================================
# CONFIGURATION EXCEPTIONS
# ============================================================================

class EnvConfigError(ConfigurationError):
    """
    Raised when an environment override has an unusable value.

    Example:
        raise EnvConfigError("REBALANCE_DECIMAL_PRECISION must be an integer, got 'high'")
    """
    pass


# ============================================================================
# PIPELINE EXCEPTIONS
# ============================================================================

class InvariantViolationError(PipelineError):
    """
    Raised when a recommendation result breaks an engine invariant.

    Example:
        raise InvariantViolationError("Over-allocated VTI received 120.0000")
    """
    pass


class OutputWriteError(PipelineError):
    """
    Raised when the recommendation report cannot be written.

    Example:
        raise OutputWriteError("Cannot write recommendations_2026-02-11.xlsx: Permission denied")
    """
    pass
