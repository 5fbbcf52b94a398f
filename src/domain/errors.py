"""
Domain exceptions.

Only StoreUnavailableError is allowed to reach the end caller. Missing data is a
value (NotFound), never an exception, and GenerativeBackendError is always
recovered inside the answer synthesizer.
"""


class PriceAssistantError(Exception):
    """Base class for errors raised by the price assistant."""


class StoreUnavailableError(PriceAssistantError):
    """The price store could not be read. Carries no internal diagnostics."""

    def __init__(self, message: str = "Price data is temporarily unavailable.") -> None:
        super().__init__(message)


class GenerativeBackendError(PriceAssistantError):
    """The generative backend failed, timed out or returned a malformed payload."""
