"""Shared runtime plumbing: configuration access, errors, metrics, progress."""

from .exceptions import (
    FetchInProgressError,
    IdentityNotFoundError,
    InsufficientDataError,
    InvalidWindowError,
    MalformedResponseError,
    NoDataAvailableError,
    TagDistError,
)
from .progress import ProgressEvent, ProgressObserver, ProgressRecorder, noop_progress

__all__ = [
    "FetchInProgressError",
    "IdentityNotFoundError",
    "InsufficientDataError",
    "InvalidWindowError",
    "MalformedResponseError",
    "NoDataAvailableError",
    "ProgressEvent",
    "ProgressObserver",
    "ProgressRecorder",
    "TagDistError",
    "noop_progress",
]
