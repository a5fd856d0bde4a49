"""Session state: status, encounter identity, transcript and the two document slots."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from ..exceptions import CaptureError, CaptureFailureKind
from ..synthesis.models import ClinicalDocument
from ..transcription.formatting import chronological, render_raw_transcript
from ..transcription.models import TranscriptEntry
from ..transcription.speaker import flip_speaker


class SessionStatus(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PAUSED = "paused"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


class EncounterRef(BaseModel):
    """Identifies the appointment being documented and how to label speakers."""

    appointment_id: str | None = None
    patient_id: str | None = None
    doctor_id: str | None = None
    patient_label: str = "Patient"
    clinician_label: str = "Doctor"

    def identifiers(self) -> dict[str, str | None]:
        return {
            "appointmentId": self.appointment_id,
            "patientId": self.patient_id,
            "doctorId": self.doctor_id,
        }


class CaptureFailure(BaseModel):
    kind: CaptureFailureKind
    message: str

    @classmethod
    def from_error(cls, error: CaptureError) -> "CaptureFailure":
        return cls(kind=error.kind, message=error.message)


def _new_session_id() -> str:
    return f"scribe-{uuid.uuid4().hex[:16]}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScribeSession(BaseModel):
    """Everything known about one documented encounter.

    ``synthesized`` is the last synthesizer output and is never edited.
    ``working`` is the user's copy; it follows ``synthesized`` except while
    ``editing`` is set. ``autosaved`` is claimed by the first autosave
    attempt, successful or not.
    """

    session_id: str = Field(default_factory=_new_session_id)
    encounter: EncounterRef = Field(default_factory=EncounterRef)
    transcript: list[TranscriptEntry] = Field(default_factory=list)
    synthesized: ClinicalDocument | None = None
    working: ClinicalDocument | None = None
    editing: bool = False
    autosaved: bool = False
    duration_seconds: int = 0
    status: SessionStatus = SessionStatus.IDLE
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def append_entry(self, entry: TranscriptEntry) -> None:
        self.transcript.append(entry)
        self.touch()

    def flip_speaker(self, entry_id: str) -> None:
        self.transcript = flip_speaker(self.transcript, entry_id)

    def apply_synthesized(self, document: ClinicalDocument) -> None:
        self.synthesized = document
        if not self.editing:
            self.working = document.model_copy(deep=True)
        self.touch()

    def begin_edit(self) -> None:
        if self.working is None:
            if self.synthesized is None:
                return
            self.working = self.synthesized.model_copy(deep=True)
        self.editing = True

    def edit_section(self, name: str, text: str) -> None:
        if not self.editing:
            self.begin_edit()
        if self.working is None:
            raise ValueError("No document to edit yet")
        self.working = self.working.with_section(name, text)

    def end_edit(self, discard: bool = False) -> None:
        """Leave edit mode; ``discard`` resets the working copy to the latest synthesis."""
        self.editing = False
        if discard and self.synthesized is not None:
            self.working = self.synthesized.model_copy(deep=True)

    def to_record(self, document: ClinicalDocument | None) -> dict:
        """Render the persisted session artifact around ``document``."""
        document = document or ClinicalDocument()
        return {
            "session_id": self.session_id,
            "appointment_id": self.encounter.appointment_id,
            "doctor_id": self.encounter.doctor_id,
            "patient_id": self.encounter.patient_id,
            "raw_transcript": render_raw_transcript(self.transcript),
            "transcript": [e.model_dump(mode="json") for e in chronological(self.transcript)],
            "soap_subjective": document.subjective,
            "soap_objective": document.objective,
            "soap_assessment": document.assessment,
            "soap_plan": document.plan,
            "icd10_codes": list(document.diagnosis_codes),
            "patient_instructions": document.patient_instructions,
            "duration_seconds": self.duration_seconds,
            "status": self.status.value,
            "updated_at": self.updated_at.isoformat(),
        }
