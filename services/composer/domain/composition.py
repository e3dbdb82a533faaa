from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

LOGGER = logging.getLogger(__name__)


class CompositionState(str, Enum):
    VALIDATING = "validating"
    RESOLVING = "resolving"
    BUILDING = "building"
    TRANSCODING = "transcoding"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS = {
    CompositionState.VALIDATING: {CompositionState.RESOLVING, CompositionState.FAILED},
    CompositionState.RESOLVING: {CompositionState.BUILDING, CompositionState.FAILED},
    CompositionState.BUILDING: {CompositionState.TRANSCODING, CompositionState.FAILED},
    CompositionState.TRANSCODING: {CompositionState.DONE, CompositionState.FAILED},
    CompositionState.DONE: set(),
    CompositionState.FAILED: set(),
}


@dataclass(frozen=True)
class ClipRange:
    start: float
    end: float

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class OverlaySpec:
    x: int
    y: int
    width: int
    height: int
    opacity: float = 100.0


@dataclass(frozen=True)
class CompositionResult:
    output_path: Path
    video_url: str
    duration: float
    file_size: int
    processing_time_ms: int


@dataclass
class CompositionRun:
    """State trail of a single compose request."""

    session_id: str
    state: CompositionState = CompositionState.VALIDATING
    history: list[CompositionState] = field(
        default_factory=lambda: [CompositionState.VALIDATING]
    )

    def advance(self, state: CompositionState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"Illegal composition transition {self.state.value} -> {state.value}"
            )
        LOGGER.info(
            "Composition %s: %s -> %s", self.session_id, self.state.value, state.value
        )
        self.state = state
        self.history.append(state)

    def fail(self) -> None:
        if self.state not in (CompositionState.DONE, CompositionState.FAILED):
            self.advance(CompositionState.FAILED)

    @property
    def finished(self) -> bool:
        return self.state in (CompositionState.DONE, CompositionState.FAILED)
