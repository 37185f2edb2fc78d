"""BreakShield exceptions."""


class BreakShieldError(Exception):
    """Base class for BreakShield errors."""


class SelectionDecodeError(BreakShieldError):
    """Stored selection blob could not be decoded."""


class ConfigurationError(BreakShieldError):
    """Protection cannot be configured with the given values."""
