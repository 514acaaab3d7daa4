"""Application exceptions."""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


class LLMError(Exception):
    """Base class for failures of the completion provider."""
    pass


class LLMConfigurationError(LLMError):
    """Raised when no completion endpoint is configured."""
    pass


class LLMRequestError(LLMError):
    """Raised when the completion endpoint fails or returns a non-OK status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AccountError(Exception):
    """Raised when an account operation is rejected; the message is shown to the user."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
