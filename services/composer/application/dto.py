from dataclasses import dataclass, field
from typing import List

from services.composer.domain.assets import IncomingFile
from services.composer.domain.composition import ClipRange, OverlaySpec


@dataclass(frozen=True)
class UploadAssetsCommand:
    files: List[IncomingFile]


@dataclass(frozen=True)
class ComposeVideoCommand:
    session_id: str
    clip: ClipRange
    overlays: List[OverlaySpec] = field(default_factory=list)
