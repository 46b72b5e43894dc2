from __future__ import annotations

"""Progress notifications emitted while a fetch is running."""

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    stage: str
    current: int | None = None
    total: int | None = None


class ProgressObserver(Protocol):
    """Fire-and-forget progress callback.

    Implementations must not raise; the engine does not guard against it.
    """

    def __call__(
        self, stage: str, current: int | None = None, total: int | None = None
    ) -> None:
        ...


def noop_progress(
    stage: str, current: int | None = None, total: int | None = None
) -> None:
    return None


class ProgressRecorder:
    """Observer that keeps every event; handy for CLIs and tests."""

    def __init__(self) -> None:
        self.events: list[ProgressEvent] = []

    def __call__(
        self, stage: str, current: int | None = None, total: int | None = None
    ) -> None:
        self.events.append(ProgressEvent(stage, current, total))

    @property
    def stages(self) -> list[str]:
        return [event.stage for event in self.events]


STAGE_CONNECTING = "Connecting..."
STAGE_COUNTING = "Counting data points..."
STAGE_FETCHING = "Fetching data..."
STAGE_PROCESSING = "Processing..."


__all__ = [
    "ProgressEvent",
    "ProgressObserver",
    "ProgressRecorder",
    "noop_progress",
    "STAGE_CONNECTING",
    "STAGE_COUNTING",
    "STAGE_FETCHING",
    "STAGE_PROCESSING",
]
