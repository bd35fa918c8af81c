# ABOUTME: Declares the exception types raised by the behavioral tracking package.
# ABOUTME: Storage, configuration, and event validation failures share one base class.


class BehaviorTrackingError(Exception):
    """Base class for errors surfaced by the tracking package."""


class StorageError(BehaviorTrackingError):
    """Raised by a key-value backend when a read or write fails."""


class ConfigError(BehaviorTrackingError):
    """Raised when a tracking config file cannot be used."""


class InvalidEventError(BehaviorTrackingError, ValueError):
    """Raised when a caller submits an event the store cannot represent."""
