"""
Exception taxonomy for the analysis engine.

Fetch failures are all recoverable by retrying from the caller; none of them
leaves a partial OrganizationAnalysis behind.
"""


class CompassError(Exception):
    """Root of every error raised by the engine."""


class FetchError(CompassError):
    """A fetch against the analysis service did not produce a record."""

    default_message = "The analysis could not be retrieved."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class TransportError(FetchError):
    default_message = "No response was received from the analysis service."


class HTTPStatusError(FetchError):
    def __init__(self, status_code: int, message: str | None = None):
        self.status_code = status_code
        super().__init__(message or f"HTTP Error: {status_code}")


class NoDataError(FetchError):
    default_message = "No data received"


class DecodeError(FetchError):
    default_message = "Failed to decode response"


class TypeMismatch(DecodeError, ValueError):
    """A numeric field was neither an integer nor an integer string."""

    default_message = "Expected Int or String that can be converted to Int"


class UnsupportedCategory(CompassError, ValueError):
    """The category has no endpoint (only Undefined, today)."""


class StoreError(CompassError):
    """Failure in the saved-analysis store."""


class StoreIOError(StoreError):
    pass


class AnalysisNotFound(StoreError):
    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"No saved analysis for topic {topic!r}")
