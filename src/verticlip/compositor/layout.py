"""Placement geometry for composing a landscape clip onto a portrait canvas.

The source video keeps its aspect ratio. It is first fitted to the full
canvas width; when that makes it taller than ``max_height_fraction`` of the
canvas it is shrunk to that height instead. The result is centered.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

DEFAULT_CANVAS_WIDTH = 1080
DEFAULT_CANVAS_HEIGHT = 1920
MAX_VIDEO_HEIGHT_FRACTION = 0.7


class LayoutError(ValueError):
    """Raised when placement cannot be computed from the given dimensions."""


@dataclass(frozen=True)
class Canvas:
    width: int = DEFAULT_CANVAS_WIDTH
    height: int = DEFAULT_CANVAS_HEIGHT

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise LayoutError(
                f"Canvas dimensions must be positive, got {self.width}x{self.height}"
            )


@dataclass(frozen=True)
class Placement:
    x: int
    y: int
    width: int
    height: int


def round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; pixel math wants 0.5 -> 1.
    return int(math.floor(value + 0.5))


def fit_video(
    source_width: int,
    source_height: int,
    canvas: Canvas,
    *,
    max_height_fraction: float = MAX_VIDEO_HEIGHT_FRACTION,
) -> Placement:
    """Scale and center a video of the given size inside ``canvas``.

    Args:
        source_width: Probed width of the source video in pixels.
        source_height: Probed height of the source video in pixels.
        canvas: Output frame.
        max_height_fraction: Upper bound of the video region as a fraction
            of the canvas height.

    Returns:
        Placement with the scaled size and the top-left corner.
    """
    if source_width <= 0 or source_height <= 0:
        raise LayoutError(
            f"Source dimensions must be positive, got {source_width}x{source_height}"
        )
    if not 0 < max_height_fraction <= 1:
        raise LayoutError(
            f"max_height_fraction must be in (0, 1], got {max_height_fraction}"
        )

    aspect = source_width / source_height
    width = canvas.width
    height = round_half_up(width / aspect)

    max_height = canvas.height * max_height_fraction
    if height > max_height:
        height = round_half_up(max_height)
        width = round_half_up(height * aspect)

    x = round_half_up((canvas.width - width) / 2)
    y = round_half_up((canvas.height - height) / 2)
    return Placement(x=x, y=y, width=width, height=height)
