"""Structured ffmpeg filter graph for the vertical composite.

Input indexes are fixed: 0 is the background image, 1 is the source video
and 2.. are the overlay images in z-order. The graph is kept as a tuple of
stages so callers can inspect labels and filters without parsing the
``-filter_complex`` string.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Sequence

from verticlip.compositor.layout import Canvas, LayoutError, Placement

BACKGROUND_INPUT = 0
VIDEO_INPUT = 1
FIRST_OVERLAY_INPUT = 2

BASE_LABEL = "v1"
TERMINAL_LABEL = "final"
AUDIO_LABEL = "aout"
FULL_OPACITY = 100.0


@dataclass(frozen=True)
class ClipWindow:
    start: float
    end: float

    def __post_init__(self) -> None:
        if self.start < 0 or self.start >= self.end:
            raise LayoutError(
                f"Clip window must satisfy 0 <= start < end, got {self.start}-{self.end}"
            )

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class OverlayLayer:
    x: int
    y: int
    width: int
    height: int
    opacity: float = FULL_OPACITY

    def __post_init__(self) -> None:
        if self.width < 1 or self.height < 1:
            raise LayoutError(
                f"Overlay size must be at least 1x1, got {self.width}x{self.height}"
            )
        if not 0 <= self.opacity <= FULL_OPACITY:
            raise LayoutError(f"Overlay opacity must be 0-100, got {self.opacity}")

    @property
    def is_translucent(self) -> bool:
        return self.opacity < FULL_OPACITY


@dataclass(frozen=True)
class FilterStage:
    inputs: tuple[str, ...]
    filters: tuple[str, ...]
    output: str

    def render(self) -> str:
        pads = "".join(f"[{label}]" for label in self.inputs)
        return f"{pads}{','.join(self.filters)}[{self.output}]"


@dataclass(frozen=True)
class FilterGraph:
    stages: tuple[FilterStage, ...]
    terminal: str = TERMINAL_LABEL
    audio: str | None = None

    def render(self) -> str:
        return ";".join(stage.render() for stage in self.stages)

    @property
    def labels(self) -> list[str]:
        return [stage.output for stage in self.stages]

    def stage_for(self, label: str) -> FilterStage:
        for stage in self.stages:
            if stage.output == label:
                return stage
        raise KeyError(label)


def format_number(value: float) -> str:
    """Render a number the way ffmpeg option parsers expect it (no trailing zeros)."""
    text = f"{float(value):.6f}".rstrip("0").rstrip(".")
    return text or "0"


def _base_stages(
    canvas: Canvas, placement: Placement, clip: ClipWindow, output: str
) -> list[FilterStage]:
    start = format_number(clip.start)
    end = format_number(clip.end)
    return [
        FilterStage(
            inputs=(f"{BACKGROUND_INPUT}:v",),
            filters=(f"scale={canvas.width}:{canvas.height}",),
            output="bg",
        ),
        FilterStage(
            inputs=(f"{VIDEO_INPUT}:v",),
            filters=(
                f"trim=start={start}:end={end}",
                "setpts=PTS-STARTPTS",
                f"scale={placement.width}:{placement.height}",
            ),
            output="video",
        ),
        # The background is a looped still, so the clip decides when to stop.
        FilterStage(
            inputs=("bg", "video"),
            filters=(f"overlay={placement.x}:{placement.y}:shortest=1",),
            output=output,
        ),
    ]


def _overlay_stages(
    index: int, layer: OverlayLayer, current: str, output: str
) -> list[FilterStage]:
    scaled = f"overlay{index}"
    stages = [
        FilterStage(
            inputs=(f"{FIRST_OVERLAY_INPUT + index}:v",),
            filters=(f"scale={layer.width}:{layer.height}",),
            output=scaled,
        )
    ]
    source = scaled
    if layer.is_translucent:
        source = f"{scaled}_alpha"
        stages.append(
            FilterStage(
                inputs=(scaled,),
                filters=(
                    "format=rgba",
                    f"colorchannelmixer=aa={format_number(layer.opacity / FULL_OPACITY)}",
                ),
                output=source,
            )
        )
    stages.append(
        FilterStage(
            inputs=(current, source),
            filters=(f"overlay={layer.x}:{layer.y}",),
            output=output,
        )
    )
    return stages


def build_filter_graph(
    *,
    canvas: Canvas,
    placement: Placement,
    clip: ClipWindow,
    overlays: Sequence[OverlayLayer] = (),
    include_audio: bool = False,
) -> FilterGraph:
    """Build the ordered stages that trim, scale and composite every layer.

    Overlays are chained in list order: each one is composited onto the
    label produced by the previous step, and the last step writes the
    terminal label.
    """
    base_output = TERMINAL_LABEL if not overlays else BASE_LABEL
    stages = _base_stages(canvas, placement, clip, base_output)

    def _chain(
        acc: tuple[list[FilterStage], str], item: tuple[int, OverlayLayer]
    ) -> tuple[list[FilterStage], str]:
        built, current = acc
        index, layer = item
        is_last = index == len(overlays) - 1
        output = TERMINAL_LABEL if is_last else f"v{index + 2}"
        return built + _overlay_stages(index, layer, current, output), output

    stages, terminal = reduce(_chain, enumerate(overlays), (stages, base_output))

    audio_label = None
    if include_audio:
        audio_label = AUDIO_LABEL
        stages.append(
            FilterStage(
                inputs=(f"{VIDEO_INPUT}:a",),
                filters=(
                    f"atrim=start={format_number(clip.start)}:end={format_number(clip.end)}",
                    "asetpts=PTS-STARTPTS",
                ),
                output=AUDIO_LABEL,
            )
        )

    return FilterGraph(stages=tuple(stages), terminal=terminal, audio=audio_label)
