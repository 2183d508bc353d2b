"""
Exception hierarchy for BillSignal.

Failures are contained at the smallest unit possible (bill, then batch, then
run). Only ConfigurationError is allowed to fail a whole invocation.
"""

from typing import Optional


class BillSignalError(Exception):
    """Base class for all BillSignal errors"""


class ConfigurationError(BillSignalError):
    """Required configuration (usually a credential) is missing"""


class SourceError(BillSignalError):
    """Legislative source call failed"""


class SourceResponseError(SourceError):
    """Legislative source answered 2xx but without an OK payload"""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}")
        self.operation = operation


class ModelError(BillSignalError):
    """Prediction model call failed for a whole batch"""


class ModelUnavailableError(ModelError):
    """Every model in the priority list was exhausted"""

    def __init__(self, message: str, attempts: Optional[dict] = None):
        super().__init__(message)
        self.attempts = attempts or {}


class ModelOutputParseError(ModelError):
    """Model answered, but its text could not be recovered as JSON"""

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text
