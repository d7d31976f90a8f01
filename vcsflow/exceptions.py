"""Shared exception types for vcsflow."""


class VcsflowError(Exception):
    """Base exception for all vcsflow errors."""


class ConfigError(VcsflowError):
    """Configuration is invalid or missing."""


class InvocationError(VcsflowError):
    """The git binary could not be spawned or did not run to completion."""


class InvalidRepositoryError(InvocationError):
    """The requested working directory does not exist."""


class CommandCancelledError(InvocationError):
    """The caller's cancellation signal fired before or during a git call."""


class CommandTimeoutError(InvocationError):
    """A git call exceeded the configured timeout and was killed."""


class PreconditionError(VcsflowError):
    """An operation was rejected before any git command was run."""
