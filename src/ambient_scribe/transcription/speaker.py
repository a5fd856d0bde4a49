"""Lexical speaker attribution for two-party encounters.

This is a best-effort heuristic, not diarization: an utterance that uses
clinician vocabulary is attributed to the clinician, everything else to the
patient. Users correct mistakes with ``flip_speaker``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from .models import Speaker, TranscriptEntry


_PRESCRIBING = re.compile(
    r"\b(prescri\w*|diagnos\w*|recommend\w*|dosage|medications?|refer(ral|ring)?|"
    r"labs?|blood\s*work|milligrams?)\b",
    re.IGNORECASE,
)

_DOSAGE = re.compile(
    r"(\b\d+(\.\d+)?\s*(mg|mcg|ml|milligrams?)\b|"
    r"\b(BID|TID|QID|QD|QHS|PRN)\b|"
    r"\b(once|twice|three\s+times|four\s+times)\s+(a\s+)?(daily|day)\b|"
    r"\bevery\s+\d+\s+hours\b)",
    re.IGNORECASE,
)

_EXAM = re.compile(
    r"\b(exam(ine|ination)?|assess(ment)?|differential|history\s+of|present\s+illness|"
    r"chief\s+complaint|follow[\s-]*up|vitals?|auscultation|palpation)\b",
    re.IGNORECASE,
)

_CLINICAL_DECISION = re.compile(
    r"\b(let\s+me|I'?ll\s+order|I\s+will\s+order|we'?ll\s+start|we\s+will\s+start|"
    r"I'?m\s+going\s+to|let'?s\s+start\s+you)\b",
    re.IGNORECASE,
)

CLINICIAN_PATTERNS: tuple[re.Pattern[str], ...] = (
    _PRESCRIBING,
    _DOSAGE,
    _EXAM,
    _CLINICAL_DECISION,
)


def guess_speaker(text: str) -> Speaker:
    """Classify one utterance as clinician or patient."""
    if any(pattern.search(text or "") for pattern in CLINICIAN_PATTERNS):
        return Speaker.CLINICIAN
    return Speaker.PATIENT


def flip_speaker(entries: Sequence[TranscriptEntry], entry_id: str) -> list[TranscriptEntry]:
    """Return a copy of ``entries`` with only ``entry_id``'s speaker toggled.

    Unknown ids leave the sequence unchanged.
    """
    return [
        entry.with_speaker(entry.speaker.flipped()) if entry.id == entry_id else entry
        for entry in entries
    ]
