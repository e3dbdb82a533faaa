"""Turn probed sources and overlay specs into a complete ffmpeg invocation.

Nothing here spawns a process: the plan is plain data, and the transcoder
adapter decides how the argument list is executed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from verticlip.compositor.encoding import EncodingProfile
from verticlip.compositor.graph import (
    ClipWindow,
    FilterGraph,
    OverlayLayer,
    build_filter_graph,
    format_number,
)
from verticlip.compositor.layout import Canvas, Placement, fit_video


@dataclass(frozen=True)
class PlannedOverlay:
    path: Path
    layer: OverlayLayer


@dataclass(frozen=True)
class CompositionPlan:
    background: Path
    video: Path
    overlays: tuple[Path, ...]
    canvas: Canvas
    placement: Placement
    clip: ClipWindow
    graph: FilterGraph
    frame_rate: float
    profile: EncodingProfile = field(default_factory=EncodingProfile)

    @property
    def inputs(self) -> tuple[Path, ...]:
        return (self.background, self.video, *self.overlays)

    def ffmpeg_arguments(self, output: Path) -> list[str]:
        """Arguments after the ffmpeg binary, ending with ``output``."""
        args: list[str] = []
        # Stills are looped so they last as long as the trimmed clip.
        args.extend(["-loop", "1", "-i", self.background.as_posix()])
        args.extend(["-i", self.video.as_posix()])
        for overlay in self.overlays:
            args.extend(["-loop", "1", "-i", overlay.as_posix()])

        args.extend(["-filter_complex", self.graph.render()])
        args.extend(["-map", f"[{self.graph.terminal}]"])
        if self.graph.audio is not None:
            args.extend(["-map", f"[{self.graph.audio}]"])

        args.extend(self.profile.video_arguments())
        if self.graph.audio is not None:
            args.extend(self.profile.audio_arguments())
        args.extend(self.profile.container_arguments())
        args.extend(["-r", format_number(self.frame_rate)])
        args.extend(["-t", format_number(self.clip.duration)])
        args.append(output.as_posix())
        return args


def build_composition_plan(
    *,
    background: Path,
    video: Path,
    video_width: int,
    video_height: int,
    video_fps: float,
    has_audio: bool,
    clip: ClipWindow,
    overlays: Sequence[PlannedOverlay] = (),
    canvas: Canvas | None = None,
    profile: EncodingProfile | None = None,
) -> CompositionPlan:
    canvas = canvas or Canvas()
    profile = profile or EncodingProfile()
    placement = fit_video(video_width, video_height, canvas)
    graph = build_filter_graph(
        canvas=canvas,
        placement=placement,
        clip=clip,
        overlays=[overlay.layer for overlay in overlays],
        include_audio=has_audio,
    )
    return CompositionPlan(
        background=background,
        video=video,
        overlays=tuple(overlay.path for overlay in overlays),
        canvas=canvas,
        placement=placement,
        clip=clip,
        graph=graph,
        frame_rate=profile.output_frame_rate(video_fps),
        profile=profile,
    )
