"""Exception types raised by the Ideogram image tool."""


class IdeogramToolError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(IdeogramToolError, ValueError):
    """Raised when required configuration (e.g. the API key) is missing."""


class InputValidationError(IdeogramToolError, ValueError):
    """Raised when caller input is missing or malformed."""


class UpstreamError(IdeogramToolError, RuntimeError):
    """Raised when the Ideogram API call or an image download fails.

    The message is always the most specific human-readable text available
    (API error body, HTTP status, or the transport error).
    """
