import threading
from pathlib import Path

import pytest

from verticlip.compositor.graph import ClipWindow
from verticlip.compositor.plan import build_composition_plan

from services.composer.domain.errors import CompositionError, ProcessingError
from services.composer.infrastructure import ffmpeg


class _Result:
    def __init__(self, returncode=0, stderr=b""):
        self.returncode = returncode
        self.stderr = stderr


def _plan(tmp_path: Path):
    return build_composition_plan(
        background=tmp_path / "bg-back.png",
        video=tmp_path / "video-clip.mp4",
        video_width=1920,
        video_height=1080,
        video_fps=30,
        has_audio=False,
        clip=ClipWindow(start=0, end=5),
    )


def test_transcoder_renames_partial_on_success(tmp_path, monkeypatch):
    recorded = {}

    def fake_run(cmd, capture_output):
        recorded["cmd"] = cmd
        # simulate ffmpeg writing the file
        Path(cmd[-1]).write_bytes(b"rendered")
        return _Result()

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)
    output = tmp_path / "outputs" / "final-s1.mp4"

    result = ffmpeg.FFmpegTranscoder(ffmpeg_path="/opt/ffmpeg").transcode(
        _plan(tmp_path), output
    )

    assert result == output
    assert output.read_bytes() == b"rendered"
    assert recorded["cmd"][:2] == ["/opt/ffmpeg", "-y"]
    assert recorded["cmd"][-1] != output.as_posix()
    assert not Path(recorded["cmd"][-1]).exists()


def test_transcoder_failure_removes_partial(tmp_path, monkeypatch):
    written = {}

    def fake_run(cmd, capture_output):
        written["path"] = Path(cmd[-1])
        written["path"].write_bytes(b"half")
        return _Result(returncode=1, stderr=b"Invalid filter graph")

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)
    output = tmp_path / "final-s1.mp4"

    with pytest.raises(CompositionError) as excinfo:
        ffmpeg.FFmpegTranscoder().transcode(_plan(tmp_path), output)

    assert "Invalid filter graph" in excinfo.value.diagnostics
    assert not written["path"].exists()
    assert not output.exists()


def test_failed_rerun_keeps_previous_output(tmp_path, monkeypatch):
    output = tmp_path / "final-s1.mp4"
    output.write_bytes(b"previous")
    monkeypatch.setattr(
        ffmpeg.subprocess, "run", lambda *args, **kwargs: _Result(returncode=1)
    )

    with pytest.raises(CompositionError):
        ffmpeg.FFmpegTranscoder().transcode(_plan(tmp_path), output)

    assert output.read_bytes() == b"previous"


def test_missing_ffmpeg_binary(tmp_path, monkeypatch):
    def fake_run(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)

    with pytest.raises(CompositionError):
        ffmpeg.FFmpegTranscoder().transcode(_plan(tmp_path), tmp_path / "out.mp4")


def test_clean_exit_without_file_is_an_error(tmp_path, monkeypatch):
    monkeypatch.setattr(ffmpeg.subprocess, "run", lambda *args, **kwargs: _Result())

    with pytest.raises(CompositionError):
        ffmpeg.FFmpegTranscoder().transcode(_plan(tmp_path), tmp_path / "out.mp4")


def test_bounded_transcoder_limits_concurrency(tmp_path):
    state = {"active": 0, "peak": 0}
    lock = threading.Lock()
    release = threading.Event()

    class SlowTranscoder:
        def transcode(self, plan, output):
            with lock:
                state["active"] += 1
                state["peak"] = max(state["peak"], state["active"])
            release.wait(1)
            with lock:
                state["active"] -= 1
            return output

    bounded = ffmpeg.BoundedTranscoder(SlowTranscoder(), max_concurrent=1)
    threads = [
        threading.Thread(
            target=bounded.transcode, args=(_plan(tmp_path), tmp_path / f"{i}.mp4")
        )
        for i in range(3)
    ]
    for thread in threads:
        thread.start()
    release.set()
    for thread in threads:
        thread.join(5)

    assert state["peak"] == 1


def test_bounded_transcoder_requires_a_slot():
    with pytest.raises(ValueError):
        ffmpeg.BoundedTranscoder(object(), max_concurrent=0)


def test_downscaler_builds_preview(tmp_path, monkeypatch):
    recorded = {}

    def fake_run(cmd, capture_output):
        recorded["cmd"] = cmd
        Path(cmd[-1]).write_bytes(b"small")
        return _Result()

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)
    source = tmp_path / "video-clip.mp4"

    preview = ffmpeg.FFmpegPreviewDownscaler().downscale(source, tmp_path)

    assert preview == tmp_path / "downres-video-clip.mp4"
    assert preview.read_bytes() == b"small"
    assert "scale=-2:320" in recorded["cmd"]


def test_downscaler_failure_is_a_processing_error(tmp_path, monkeypatch):
    monkeypatch.setattr(
        ffmpeg.subprocess,
        "run",
        lambda *args, **kwargs: _Result(returncode=1, stderr=b"bad input"),
    )

    with pytest.raises(ProcessingError) as excinfo:
        ffmpeg.FFmpegPreviewDownscaler().downscale(tmp_path / "v.mp4", tmp_path)

    assert excinfo.value.diagnostics == "bad input"


def test_each_render_writes_its_own_partial(tmp_path, monkeypatch):
    partials = []

    def fake_run(cmd, capture_output):
        partials.append(Path(cmd[-1]))
        Path(cmd[-1]).write_bytes(b"rendered")
        return _Result()

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)
    transcoder = ffmpeg.FFmpegTranscoder()
    output = tmp_path / "final-s1.mp4"

    transcoder.transcode(_plan(tmp_path), output)
    transcoder.transcode(_plan(tmp_path), output)

    assert len(set(partials)) == 2
    for partial in partials:
        assert partial.parent == output.parent
        assert partial.name.startswith(".final-s1.")
        assert partial.suffix == ".mp4"
    assert output.read_bytes() == b"rendered"
