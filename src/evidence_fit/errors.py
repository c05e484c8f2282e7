"""Project-wide exception types."""


class EvidenceFitError(Exception):
    """Base exception for all evidence_fit errors."""


class DataError(EvidenceFitError, ValueError):
    """Raised when observations are malformed."""


class ConfigurationError(EvidenceFitError, ValueError):
    """Raised when a fit or comparison is configured inconsistently."""


class NestingError(ConfigurationError):
    """Raised when a likelihood-ratio test is requested for a non-nested pair."""
