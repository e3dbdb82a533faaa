from __future__ import annotations

from pathlib import Path

from services.composer.application.interfaces import OutputStore


class FilesystemOutputStore(OutputStore):
    """Final renders live apart from uploads, one file per session."""

    def __init__(
        self, root: Path, *, url_prefix: str = "/outputs", extension: str = ".mp4"
    ) -> None:
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")
        self._extension = extension if extension.startswith(".") else f".{extension}"

    @property
    def root(self) -> Path:
        return self._root

    def output_path(self, session_id: str) -> Path:
        self._root.mkdir(parents=True, exist_ok=True)
        return self._root / f"final-{session_id}{self._extension}"

    def public_url(self, path: Path) -> str:
        return f"{self._url_prefix}/{Path(path).name}"
