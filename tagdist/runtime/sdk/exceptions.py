"""Custom exception types raised by the tagdist fetch and stats layers."""

__all__ = [
    "TagDistError",
    "InvalidWindowError",
    "MalformedResponseError",
    "FetchInProgressError",
    "IdentityNotFoundError",
    "NoDataAvailableError",
    "InsufficientDataError",
]


class TagDistError(Exception):
    """Base class for all tagdist errors."""
    pass


class InvalidWindowError(TagDistError, ValueError):
    """Raised when a time window is empty or inverted."""
    pass


class MalformedResponseError(TagDistError):
    """Raised when a DataList response does not have the expected shape."""

    def __init__(self, what: str, payload: object = None) -> None:
        super().__init__(f"malformed DataList response: {what}")
        self.payload = payload


class FetchInProgressError(TagDistError, RuntimeError):
    """Raised when a pagination engine is asked to run two fetches at once."""
    pass


class IdentityNotFoundError(TagDistError, LookupError):
    """Raised when a selector does not resolve to a data source and tag."""
    pass


class NoDataAvailableError(TagDistError):
    """Raised when there are no points to summarize."""

    def __init__(self, message: str = "No data available") -> None:
        super().__init__(message)


class InsufficientDataError(TagDistError):
    """Raised when the points do not spread enough to fit a normal curve."""

    def __init__(self, mean: float) -> None:
        super().__init__(f"Not enough data available, mean = {mean}")
        self.mean = mean
