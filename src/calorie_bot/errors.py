"""Exceptions raised by the calorie bot."""


class CalorieBotError(Exception):
    """Base class for application errors."""


class RecognitionFailure(CalorieBotError):
    """Raised when a model response cannot be decoded into meal items."""


class LedgerConflictError(CalorieBotError):
    """Raised when a credit update keeps losing to concurrent writers."""


class DuplicateKeyError(CalorieBotError):
    """Raised by repositories when a unique constraint rejects an insert."""


class EstimatorError(CalorieBotError):
    """Raised when the nutrition estimator call fails or returns nothing."""
