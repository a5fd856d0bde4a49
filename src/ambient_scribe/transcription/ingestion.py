"""Periodic hand-off of buffered audio to speech-to-text.

Each tick drains the capture buffer into one clip and transcribes it in its
own task, so a slow request never holds up the next tick. Sequence numbers
are taken at submission time; responses may still land out of order.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import TYPE_CHECKING, Protocol

from ..capture.recorder import AudioCaptureController
from ..config import ScribeSettings, get_settings
from ..exceptions import TranscriptionError
from .models import ClipTranscription, TranscriptEntry, entry_id_for
from .speaker import guess_speaker

if TYPE_CHECKING:
    from ..session.models import ScribeSession


logger = logging.getLogger(__name__)


class ClipTranscriberProtocol(Protocol):
    def transcribe_clip(self, data: bytes, mimetype: str = "audio/wav") -> ClipTranscription: ...


class TranscriptionIngestionWorker:
    """Turn buffered audio into transcript entries for one session."""

    def __init__(
        self,
        session: ScribeSession,
        capture: AudioCaptureController,
        transcriber: ClipTranscriberProtocol,
        settings: ScribeSettings | None = None,
    ) -> None:
        self._session = session
        self._capture = capture
        self._transcriber = transcriber
        self._settings = settings or get_settings()
        self._sequence = itertools.count(1)
        self._in_flight: set[asyncio.Task] = set()
        self.dropped_clips = 0

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def tick(self) -> asyncio.Task | None:
        """Drain the buffer and submit the clip unless it is silence."""
        clip = self._capture.drain()
        if clip.size < self._settings.min_clip_bytes:
            if clip.size:
                logger.debug("Discarding %d-byte clip as silence", clip.size)
            return None

        sequence = next(self._sequence)
        captured_at_ms = int(time.time() * 1000)
        task = asyncio.get_running_loop().create_task(
            self._ingest(clip.data, clip.mimetype, sequence, captured_at_ms),
            name=f"transcribe-{self._session.session_id}-{sequence}",
        )
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        return task

    async def flush(self) -> None:
        """Submit the last buffered clip and wait for every pending transcription."""
        self.tick()
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight))

    async def _ingest(self, data: bytes, mimetype: str, sequence: int, captured_at_ms: int) -> TranscriptEntry | None:
        try:
            result = await asyncio.to_thread(self._transcriber.transcribe_clip, data, mimetype)
        except TranscriptionError as exc:
            self.dropped_clips += 1
            logger.warning("Dropping clip %d: %s", sequence, exc.message)
            return None

        text = (result.text or "").strip()
        if len(text) <= self._settings.min_text_chars:
            return None

        entry = TranscriptEntry(
            id=entry_id_for(sequence),
            sequence=sequence,
            speaker=guess_speaker(text),
            text=text,
            captured_at_ms=captured_at_ms,
        )
        self._session.append_entry(entry)
        logger.debug("Appended entry %s (%d chars)", entry.id, len(text))
        return entry
