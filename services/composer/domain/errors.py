"""Error taxonomy shared by the use cases and the HTTP layer.

Every error maps to one HTTP status and one human-readable message.
Processing errors additionally carry the captured ffmpeg/ffprobe output.
"""

from __future__ import annotations


class ComposerError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ComposerError):
    status_code = 400


class InvalidFormat(ValidationError):
    pass


class UnknownField(ValidationError):
    pass


class RejectOrientation(ValidationError):
    pass


class MissingAsset(ValidationError):
    pass


class TooManyOverlays(ValidationError):
    pass


class TooManyParts(ValidationError):
    pass


class UploadTooLarge(ValidationError):
    status_code = 413


class InvalidClipRange(ValidationError):
    pass


class NotFoundError(ComposerError):
    status_code = 404


class SessionNotFound(NotFoundError):
    pass


class SessionAssetMissing(NotFoundError):
    pass


class OverlayCountMismatch(SessionAssetMissing):
    """More overlay specs were submitted than overlay assets were uploaded."""


class ProcessingError(ComposerError):
    status_code = 422

    def __init__(self, message: str, diagnostics: str = "") -> None:
        super().__init__(message)
        self.diagnostics = diagnostics


class ProbeError(ProcessingError):
    pass


class CompositionError(ProcessingError):
    status_code = 500


class InternalError(ComposerError):
    status_code = 500
