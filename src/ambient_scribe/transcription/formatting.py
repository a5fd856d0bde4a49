"""Stateless text projections of a transcript."""

from __future__ import annotations

from collections.abc import Sequence

from .models import Speaker, TranscriptEntry


def chronological(entries: Sequence[TranscriptEntry]) -> list[TranscriptEntry]:
    """Entries in clip-submission order, regardless of arrival order."""
    return sorted(entries, key=lambda e: e.sequence)


def render_transcript(
    entries: Sequence[TranscriptEntry],
    clinician_label: str = "Doctor",
    patient_label: str = "Patient",
) -> str:
    """Render entries as newline-delimited ``[Label]: text`` lines."""
    labels = {Speaker.CLINICIAN: clinician_label, Speaker.PATIENT: patient_label}
    return "\n".join(f"[{labels[e.speaker]}]: {e.text}" for e in chronological(entries))


def render_raw_transcript(entries: Sequence[TranscriptEntry]) -> str:
    """Render entries tagged with the role value, as stored with a session."""
    return "\n".join(f"[{e.speaker.value}]: {e.text}" for e in chronological(entries))


def format_duration(seconds: int) -> str:
    """Format elapsed seconds as ``MM:SS``."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"
