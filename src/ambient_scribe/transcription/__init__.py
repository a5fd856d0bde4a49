from .models import ClipTranscription, Speaker, TranscriptEntry
from .speaker import flip_speaker, guess_speaker
from .formatting import format_duration, render_transcript
from .batch import ClipTranscriber
from .ingestion import TranscriptionIngestionWorker

__all__ = [
    "ClipTranscription",
    "Speaker",
    "TranscriptEntry",
    "flip_speaker",
    "guess_speaker",
    "format_duration",
    "render_transcript",
    "ClipTranscriber",
    "TranscriptionIngestionWorker",
]
