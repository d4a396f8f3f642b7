"""Exception types raised across the research pipeline."""


class InsightFlowError(Exception):
    """Base class for all InsightFlow errors."""


class ConfigurationError(InsightFlowError, ValueError):
    """A required credential or configuration field is missing."""


class TransportError(InsightFlowError, RuntimeError):
    """A backend or search endpoint answered with a non-success response.

    The remote body is kept verbatim so callers can surface it.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RunRejectedError(InsightFlowError):
    """A research run could not be started (or reset) from the current state."""
