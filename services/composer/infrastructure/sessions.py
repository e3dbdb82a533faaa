from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path

from services.composer.application.interfaces import IdProvider, SessionStore
from services.composer.domain.assets import AssetRole
from services.composer.domain.errors import SessionAssetMissing, SessionNotFound
from services.composer.infrastructure.ids import HexIdProvider

LOGGER = logging.getLogger(__name__)

_SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_UNSAFE_FILENAME_CHARS = re.compile(r"[^\w\s.-]")
_WHITESPACE = re.compile(r"\s+")
MAX_FILENAME_LENGTH = 100


def sanitize_filename(filename: str) -> str:
    name = Path(filename or "").name
    name = _UNSAFE_FILENAME_CHARS.sub("", name)
    name = _WHITESPACE.sub("_", name.strip())
    if len(name) > MAX_FILENAME_LENGTH:
        # Only the stem is shortened; the extension stays.
        suffix = Path(name).suffix
        if len(suffix) >= MAX_FILENAME_LENGTH:
            suffix = ""
        name = name[: MAX_FILENAME_LENGTH - len(suffix)].rstrip(".") + suffix
    return name or "upload"


class FilesystemSessionStore(SessionStore):
    """One directory per session; the role prefix of a filename is the index.

    Layout::

        <root>/<session_id>/video-<name>
        <root>/<session_id>/bg-<name>
        <root>/<session_id>/overlay1-<name>
        <root>/<session_id>/overlay2-<name>
    """

    def __init__(self, root: Path, id_provider: IdProvider | None = None) -> None:
        self._root = Path(root)
        self._id_provider = id_provider or HexIdProvider()

    @property
    def root(self) -> Path:
        return self._root

    def create_session(self) -> str:
        session_id = self._id_provider.generate()
        directory = self._root / session_id
        directory.mkdir(parents=True, exist_ok=False)
        LOGGER.debug("Created session directory %s", directory)
        return session_id

    def exists(self, session_id: str) -> bool:
        if not _SESSION_ID_PATTERN.match(session_id or ""):
            return False
        return (self._root / session_id).is_dir()

    def session_dir(self, session_id: str) -> Path:
        if not _SESSION_ID_PATTERN.match(session_id or ""):
            raise SessionNotFound(f"Invalid session id: {session_id!r}")
        return self._root / session_id

    def commit_asset(
        self,
        session_id: str,
        role: AssetRole,
        source: Path,
        original_filename: str,
    ) -> Path:
        directory = self._existing_dir(session_id)
        destination = directory / f"{role.prefix}{sanitize_filename(original_filename)}"
        # Staged files live under the same root, so this is an atomic rename.
        os.replace(source, destination)
        return destination

    def resolve_by_role(self, session_id: str, role: AssetRole) -> Path:
        directory = self._existing_dir(session_id)
        for entry in sorted(directory.iterdir()):
            if entry.is_file() and entry.name.startswith(role.prefix):
                return entry
        raise SessionAssetMissing(
            f"No '{role.prefix}' file found in session {session_id}."
        )

    def list_overlays(self, session_id: str) -> list[Path]:
        overlays = []
        for role in (AssetRole.OVERLAY_1, AssetRole.OVERLAY_2):
            try:
                overlays.append(self.resolve_by_role(session_id, role))
            except SessionAssetMissing:
                continue
        return overlays

    def discard(self, session_id: str) -> None:
        directory = self.session_dir(session_id)
        shutil.rmtree(directory, ignore_errors=True)

    def _existing_dir(self, session_id: str) -> Path:
        directory = self.session_dir(session_id)
        if not directory.is_dir():
            raise SessionNotFound(f"Session {session_id} not found.")
        return directory
