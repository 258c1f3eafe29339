"""
Exception types raised by the transpose benchmark.
"""
from typing import Optional, Tuple


class TransposeBenchError(Exception):
    """Base class for all benchmark errors."""


class ConfigurationError(TransposeBenchError):
    """
    Raised when the matrix/tile geometry violates its divisibility invariants.

    Always raised before any device buffer is allocated or any kernel is launched.
    """


class DeviceError(TransposeBenchError):
    """
    Raised when a device operation (allocation, transfer, launch, timing) fails.
    """


class CorrectnessFailure(TransposeBenchError):
    """
    Raised when a downloaded kernel result does not exactly match its reference.

    The harness catches this per kernel variant and keeps going.
    """
    def __init__(
        self,
        variant: str,
        mismatches: int,
        first_mismatch: Optional[Tuple[int, int]] = None
    ):
        self.variant = variant
        self.mismatches = mismatches
        self.first_mismatch = first_mismatch
        message = f"{variant}: {mismatches} element(s) differ from the reference"
        if first_mismatch is not None:
            message += f" (first at row={first_mismatch[0]}, col={first_mismatch[1]})"
        super().__init__(message)
