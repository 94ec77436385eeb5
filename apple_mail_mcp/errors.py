"""
Error types raised while talking to Apple Mail.
"""


class MailError(Exception):
    """Base class for all Apple Mail failures surfaced to tool callers."""


class ExecutionFailure(MailError):
    """osascript could not run the script or exited abnormally."""


class ApplicationFailure(MailError):
    """The script ran but Mail reported a failure through the ERROR: sentinel."""


class ValidationFailure(MailError, ValueError):
    """Required tool arguments were missing; raised before any script is built."""
