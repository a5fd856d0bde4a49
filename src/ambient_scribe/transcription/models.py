"""Pydantic models for transcript entries and clip transcription results."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Speaker(str, Enum):
    CLINICIAN = "clinician"
    PATIENT = "patient"

    def flipped(self) -> "Speaker":
        return Speaker.PATIENT if self is Speaker.CLINICIAN else Speaker.CLINICIAN


def entry_id_for(sequence: int) -> str:
    """Return the entry id for a clip-submission sequence number."""
    return f"t-{sequence:06d}"


class TranscriptEntry(BaseModel):
    """One attributed utterance in the session transcript.

    Entries are frozen; a speaker correction produces a replacement entry
    with the same id and sequence.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Order-stable id, encodes the sequence number")
    sequence: int = Field(..., ge=1, description="Clip-submission order")
    speaker: Speaker
    text: str
    captured_at_ms: int = Field(..., description="Epoch milliseconds when the clip was cut")

    def with_speaker(self, speaker: Speaker) -> "TranscriptEntry":
        return self.model_copy(update={"speaker": speaker})


class ClipTranscription(BaseModel):
    """Result of transcribing one short audio clip."""

    text: str = Field(default="", description="Transcript of the clip; empty for silence")
    confidence: float = Field(default=0.0)
    request_id: str = Field(default="")
    model: str = Field(default="nova-3-medical")

    @classmethod
    def from_deepgram_response(cls, response: object, model: str = "nova-3-medical") -> "ClipTranscription":
        """Parse a Deepgram PreRecordedResponse for a single short clip."""
        results = getattr(response, "results", None)
        if results is None:
            return cls(model=model)

        text = ""
        confidence = 0.0
        channels = getattr(results, "channels", None) or []
        if channels:
            alternatives = getattr(channels[0], "alternatives", None) or []
            if alternatives:
                text = getattr(alternatives[0], "transcript", "") or ""
                confidence = getattr(alternatives[0], "confidence", 0.0) or 0.0

        metadata = getattr(response, "metadata", None)
        request_id = getattr(metadata, "request_id", "") if metadata else ""

        return cls(
            text=text,
            confidence=float(confidence) if isinstance(confidence, (int, float)) else 0.0,
            request_id=request_id if isinstance(request_id, str) else "",
            model=model,
        )
