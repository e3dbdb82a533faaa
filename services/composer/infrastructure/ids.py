from __future__ import annotations

import uuid


class HexIdProvider:
    """Opaque, path-safe identifiers (uuid4 hex, optionally prefixed)."""

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    def generate(self) -> str:
        token = uuid.uuid4().hex
        return f"{self._prefix}_{token}" if self._prefix else token
