from __future__ import annotations


class ConfigurationError(ValueError):
    """Malformed or incomplete scenario configuration (e.g. a monthly shift table missing a month)."""


class ValidationError(ConfigurationError):
    """A user parameter or input table violates the engine contract."""


class DataIntegrityWarning(UserWarning):
    """Non-fatal data problem; processing continued with the documented fallback."""


class ConvergenceWarning(UserWarning):
    """Stretch calibration did not reach the requested tolerance."""
