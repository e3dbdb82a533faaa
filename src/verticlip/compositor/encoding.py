from __future__ import annotations

from dataclasses import dataclass

MAX_OUTPUT_FRAME_RATE = 30.0


@dataclass(frozen=True)
class EncodingProfile:
    """H.264/AAC settings that play back on phones and in browsers."""

    video_codec: str = "libx264"
    audio_codec: str = "aac"
    preset: str = "fast"
    crf: int = 23
    profile: str = "high"
    level: str = "4.0"
    pixel_format: str = "yuv420p"
    movflags: str = "+faststart"
    max_frame_rate: float = MAX_OUTPUT_FRAME_RATE

    def output_frame_rate(self, source_fps: float) -> float:
        if source_fps <= 0:
            return self.max_frame_rate
        return min(source_fps, self.max_frame_rate)

    def video_arguments(self) -> list[str]:
        return [
            "-c:v",
            self.video_codec,
            "-preset",
            self.preset,
            "-crf",
            str(self.crf),
            "-profile:v",
            self.profile,
            "-level",
            self.level,
            "-pix_fmt",
            self.pixel_format,
        ]

    def audio_arguments(self) -> list[str]:
        return ["-c:a", self.audio_codec]

    def container_arguments(self) -> list[str]:
        return ["-movflags", self.movflags]
