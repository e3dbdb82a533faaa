from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from tempfile import TemporaryDirectory
from typing import BinaryIO, Iterator, Sequence

from services.composer.domain.assets import IncomingFile
from services.composer.domain.errors import UploadTooLarge
from services.composer.infrastructure.sessions import sanitize_filename

_CHUNK_SIZE = 1024 * 1024
# Room for part headers and boundaries on top of the file payloads.
_MULTIPART_OVERHEAD_BYTES = 64 * 1024


class StagedPart:
    """Plain view of one multipart file part, independent of the web framework."""

    def __init__(
        self, *, field: str, filename: str, content_type: str, stream: BinaryIO
    ) -> None:
        self.field = field
        self.filename = filename
        self.content_type = content_type
        self.stream = stream


class UploadStagingArea:
    """Spools multipart parts into a scratch directory next to the sessions.

    Whatever the use case does not move into a session is removed when the
    ``stage`` block exits, so a rejected upload leaves nothing behind.
    """

    def __init__(self, root: Path, *, max_file_bytes: int, max_parts: int) -> None:
        self._root = Path(root)
        self._max_file_bytes = max_file_bytes
        self._max_parts = max_parts

    @property
    def max_parts(self) -> int:
        return self._max_parts

    @property
    def max_request_bytes(self) -> int:
        return self._max_file_bytes * self._max_parts + _MULTIPART_OVERHEAD_BYTES

    @contextmanager
    def stage(self, parts: Sequence[StagedPart]) -> Iterator[list[IncomingFile]]:
        self._root.mkdir(parents=True, exist_ok=True)
        with TemporaryDirectory(dir=self._root) as tmpdir:
            tmpdir_path = Path(tmpdir)
            staged = [
                self._write_part(
                    part, tmpdir_path / f"{index}-{sanitize_filename(part.filename)}"
                )
                for index, part in enumerate(parts)
            ]
            yield staged

    def _write_part(self, part: StagedPart, destination: Path) -> IncomingFile:
        written = 0
        with destination.open("wb") as dest:
            while True:
                chunk = part.stream.read(_CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self._max_file_bytes:
                    raise UploadTooLarge(
                        f"File {part.filename} exceeds the "
                        f"{self._max_file_bytes // (1024 * 1024)}MB upload limit."
                    )
                dest.write(chunk)
        return IncomingFile(
            field=part.field,
            filename=part.filename,
            content_type=part.content_type,
            path=destination,
            size=written,
        )

