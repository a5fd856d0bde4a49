"""Session state machine driving capture, transcription and synthesis.

    idle ──activity on──▶ listening ◀──resume── paused
      ▲                      │ └──pause──────────▲
      │                      ▼ activity off / stop
      │                  processing ──▶ done
      └──── restart ─────────────────────┘
    any state ──capture failure──▶ error ──dismiss──▶ idle

The controller is the only owner of cadences. Components it drives never
start or cancel timers themselves.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..capture.recorder import AudioCaptureController
from ..config import ScribeSettings, get_settings
from ..exceptions import CaptureError
from ..storage.persistence import SessionPersistence
from ..synthesis.synthesizer import (
    CodesCallback,
    DocumentCallback,
    ProgressiveDocumentSynthesizer,
    SynthesisClientProtocol,
)
from ..transcription.ingestion import ClipTranscriberProtocol, TranscriptionIngestionWorker
from .models import CaptureFailure, EncounterRef, ScribeSession, SessionStatus
from .timers import Cadence


logger = logging.getLogger(__name__)


class ScribeController:
    """Top-level controller for one encounter's documentation."""

    def __init__(
        self,
        encounter: EncounterRef,
        capture: AudioCaptureController,
        transcriber: ClipTranscriberProtocol,
        synthesis_client: SynthesisClientProtocol,
        persistence: SessionPersistence,
        settings: ScribeSettings | None = None,
        on_document_updated: DocumentCallback | None = None,
        on_codes_updated: CodesCallback | None = None,
        on_status_changed: Callable[[SessionStatus], None] | None = None,
        on_saved: Callable[[ScribeSession], None] | None = None,
    ) -> None:
        self.encounter = encounter
        self._capture = capture
        self._transcriber = transcriber
        self._synthesis_client = synthesis_client
        self._persistence = persistence
        self._settings = settings or get_settings()
        self._on_document_updated = on_document_updated
        self._on_codes_updated = on_codes_updated
        self._on_status_changed = on_status_changed
        self._on_saved = on_saved

        self.status = SessionStatus.IDLE
        self.session: ScribeSession | None = None
        self.failure: CaptureFailure | None = None
        self._activity = False
        self._manual_stop = False
        self._ingestion: TranscriptionIngestionWorker | None = None
        self._synthesizer: ProgressiveDocumentSynthesizer | None = None
        self._cadences: list[Cadence] = []

    @property
    def activity(self) -> bool:
        return self._activity

    @property
    def manual_stop(self) -> bool:
        return self._manual_stop

    @property
    def synthesizer(self) -> ProgressiveDocumentSynthesizer | None:
        return self._synthesizer

    @property
    def ingestion(self) -> TranscriptionIngestionWorker | None:
        return self._ingestion

    # ------------------------------------------------------------------
    # External signal
    # ------------------------------------------------------------------

    async def set_activity(self, active: bool) -> None:
        """React to the encounter connecting or disconnecting (edge-triggered)."""
        if active == self._activity:
            return
        self._activity = active
        logger.info("Encounter activity is now %s", "on" if active else "off")
        if active:
            if self.status is SessionStatus.IDLE and not self._manual_stop:
                await self.start()
        elif self.status in (SessionStatus.LISTENING, SessionStatus.PAUSED):
            await self._finish()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin a fresh session and start listening."""
        if self.status is not SessionStatus.IDLE:
            return
        session = ScribeSession(encounter=self.encounter)
        self.session = session
        self.failure = None
        self._manual_stop = False
        self._ingestion = TranscriptionIngestionWorker(
            session, self._capture, self._transcriber, self._settings
        )
        self._synthesizer = ProgressiveDocumentSynthesizer(
            session,
            self._synthesis_client,
            self._persistence,
            self._settings,
            on_document_updated=self._on_document_updated,
            on_codes_updated=self._on_codes_updated,
        )
        if self._acquire_microphone():
            self._start_cadences()
            self._set_status(SessionStatus.LISTENING)
            logger.info("Session %s listening", session.session_id)

    async def stop(self, manual: bool = True) -> None:
        """Stop the session; a manual stop also suppresses auto-restart."""
        if manual:
            self._manual_stop = True
        if self.status in (SessionStatus.LISTENING, SessionStatus.PAUSED):
            await self._finish()

    async def pause(self) -> None:
        if self.status is not SessionStatus.LISTENING:
            return
        self._cancel_cadences()
        self._capture.stop()
        await self._ingestion.flush()
        self._set_status(SessionStatus.PAUSED)

    async def resume(self) -> None:
        if self.status is not SessionStatus.PAUSED:
            return
        if self._acquire_microphone():
            self._start_cadences()
            self._set_status(SessionStatus.LISTENING)

    async def restart(self) -> None:
        """Discard the session and counters, then follow the activity signal.

        Only a finished, failed or idle controller restarts; a live or
        finishing session is left alone.
        """
        if self.status not in (SessionStatus.DONE, SessionStatus.ERROR, SessionStatus.IDLE):
            logger.warning("Restart ignored while %s", self.status.value)
            return
        self._cancel_cadences()
        self._capture.stop()
        self._capture.drain()
        self.session = None
        self.failure = None
        self._ingestion = None
        self._synthesizer = None
        self._manual_stop = False
        self._set_status(SessionStatus.IDLE)
        if self._activity:
            await self.start()

    def dismiss_error(self) -> None:
        if self.status is not SessionStatus.ERROR:
            return
        self.failure = None
        self._set_status(SessionStatus.IDLE)

    async def _finish(self) -> None:
        session, ingestion, synthesizer = self.session, self._ingestion, self._synthesizer
        self._set_status(SessionStatus.PROCESSING)
        self._cancel_cadences()
        self._capture.stop()
        await ingestion.flush()
        await synthesizer.run_final()
        self._set_status(SessionStatus.DONE)
        if synthesizer.autosaved and self._on_saved:
            self._on_saved(session)
        logger.info(
            "Session %s done: %d entries, %ds",
            session.session_id,
            len(session.transcript),
            session.duration_seconds,
        )

    # ------------------------------------------------------------------
    # User actions on the transcript and document
    # ------------------------------------------------------------------

    def toggle_speaker(self, entry_id: str) -> None:
        if self.session is not None:
            self.session.flip_speaker(entry_id)

    def begin_edit(self) -> None:
        if self.session is not None:
            self.session.begin_edit()

    def edit_section(self, name: str, text: str) -> None:
        if self.session is None:
            raise ValueError("No active session")
        self.session.edit_section(name, text)

    def cancel_edit(self) -> None:
        if self.session is not None:
            self.session.end_edit(discard=True)

    async def save(self) -> bool:
        """Save the working document and learn from the user's edits."""
        session = self.session
        if session is None:
            return False
        saved = await self._persistence.manual_save(session)
        if saved:
            if self._on_document_updated and session.working is not None:
                self._on_document_updated(session.working)
            if self._on_saved:
                self._on_saved(session)
        return saved

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _acquire_microphone(self) -> bool:
        try:
            self._capture.start()
        except CaptureError as exc:
            self.failure = CaptureFailure.from_error(exc)
            self._set_status(SessionStatus.ERROR)
            return False
        return True

    def _start_cadences(self) -> None:
        self._cancel_cadences()
        settings = self._settings
        self._cadences = [
            Cadence("transcription", settings.transcription_interval_seconds, self._ingestion.tick),
            Cadence("synthesis", settings.synthesis_interval_seconds, self._synthesizer.tick),
            Cadence("duration", 1.0, self._count_second),
        ]
        for cadence in self._cadences:
            cadence.start()

    def _cancel_cadences(self) -> None:
        for cadence in self._cadences:
            cadence.cancel()
        self._cadences = []

    def _count_second(self) -> None:
        if self.session is not None:
            self.session.duration_seconds += 1

    def _set_status(self, status: SessionStatus) -> None:
        if status is self.status:
            return
        self.status = status
        if self.session is not None:
            self.session.status = status
        if self._on_status_changed:
            self._on_status_changed(status)
