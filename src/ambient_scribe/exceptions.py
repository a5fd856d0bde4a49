"""Exception hierarchy for the ambient scribe.

    ScribeError
    ├── CaptureError          fatal to the session, surfaced to the user
    ├── TranscriptionError    one clip lost, never retried
    ├── SynthesisError        one cadence tick skipped
    ├── PersistenceError      save not confirmed, session keeps running
    └── ConfigurationError

Only ``CaptureError`` reaches the session state machine; the others are
contained by the component that made the failing call.
"""

from __future__ import annotations

from enum import Enum


class ScribeError(Exception):
    """Base class for every error raised by this package.

    Attributes:
        message: Human-readable description.
        details: Extra context, safe to log (never transcript or note text).
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class CaptureFailureKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    NO_DEVICE = "no_device"
    OTHER = "other"


_CAPTURE_MESSAGES = {
    CaptureFailureKind.PERMISSION_DENIED: "Microphone access denied. Allow microphone access in system settings.",
    CaptureFailureKind.NO_DEVICE: "No microphone found.",
}


class CaptureError(ScribeError):
    """Raised when the microphone cannot be acquired or recording fails."""

    def __init__(self, kind: CaptureFailureKind, reason: str = "") -> None:
        self.kind = kind
        message = _CAPTURE_MESSAGES.get(kind) or reason or "Microphone error"
        super().__init__(message=message, details={"kind": kind.value, "reason": reason})


class TranscriptionError(ScribeError):
    """Raised when the speech-to-text call for one clip fails."""

    def __init__(self, reason: str, clip_bytes: int = 0) -> None:
        super().__init__(
            message=f"Transcription failed: {reason}",
            details={"reason": reason, "clip_bytes": clip_bytes},
        )


class SynthesisError(ScribeError):
    """Raised when the document-synthesis call fails or returns garbage."""

    def __init__(self, reason: str, status_code: int | None = None) -> None:
        super().__init__(
            message=f"Document synthesis failed: {reason}",
            details={"reason": reason, "status_code": status_code},
        )


class PersistenceError(ScribeError):
    """Raised when a record store read or upsert fails."""

    def __init__(self, table: str, reason: str) -> None:
        super().__init__(
            message=f"Record store error on '{table}': {reason}",
            details={"table": table, "reason": reason},
        )


class ConfigurationError(ScribeError):
    """Raised when a required setting is missing or invalid."""

    def __init__(self, setting_name: str, issue: str) -> None:
        super().__init__(
            message=f"Configuration error for '{setting_name}': {issue}",
            details={"setting_name": setting_name, "issue": issue},
        )
