"""Exception hierarchy for prsift.

Configuration and transport failures are fatal for a run. Judge failures
never escape the quality filter. Diff parsing never raises at all.
"""

from __future__ import annotations


class PrsiftError(Exception):
    """Base class for every error raised by prsift."""


class ConfigurationError(PrsiftError):
    """Missing or invalid input detected before any stage runs."""


class TransportError(PrsiftError):
    """A collaborator call failed while fetching, generating or submitting."""

    def __init__(self, stage: str, operation: str, target: str, cause: BaseException | None = None):
        self.stage = stage
        self.operation = operation
        self.target = target
        self.cause = cause
        message = f"{operation} {target}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class JudgeError(PrsiftError):
    """A single judgement could not be produced or understood."""


class ReviewCancelled(PrsiftError):
    """The caller cancelled the run or its deadline passed."""

    def __init__(self, stage: str, reason: str = "cancelled"):
        self.stage = stage
        self.reason = reason
        super().__init__(f"review {reason} during {stage}")
