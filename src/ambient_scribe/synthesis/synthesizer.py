"""Progressive clinical-note synthesis over a growing transcript.

The synthesizer re-drafts the whole note from the full transcript on a slow
cadence and once more when the session ends. At most one request is in
flight at any time; ticks that arrive while a request is pending are skipped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Protocol

from ..config import ScribeSettings, get_settings
from ..exceptions import SynthesisError
from ..transcription.formatting import render_transcript
from .models import ClinicalDocument, SynthesisRequest

if TYPE_CHECKING:
    from ..session.models import ScribeSession
    from ..storage.persistence import SessionPersistence


logger = logging.getLogger(__name__)

DocumentCallback = Callable[[ClinicalDocument], None]
CodesCallback = Callable[[list[str]], None]


class SynthesisClientProtocol(Protocol):
    def generate(self, request: SynthesisRequest) -> ClinicalDocument: ...


class ProgressiveDocumentSynthesizer:
    """Keep a session's synthesized note current with its transcript."""

    def __init__(
        self,
        session: ScribeSession,
        client: SynthesisClientProtocol,
        persistence: SessionPersistence,
        settings: ScribeSettings | None = None,
        on_document_updated: DocumentCallback | None = None,
        on_codes_updated: CodesCallback | None = None,
    ) -> None:
        self._session = session
        self._client = client
        self._persistence = persistence
        self._settings = settings or get_settings()
        self._on_document_updated = on_document_updated
        self._on_codes_updated = on_codes_updated
        self._busy = False
        self._in_flight: asyncio.Task | None = None
        self.run_count = 0
        self.autosaved = False

    @property
    def busy(self) -> bool:
        return self._busy

    def ready(self) -> bool:
        return len(self._session.transcript) >= self._settings.min_entries_for_synthesis

    def tick(self) -> asyncio.Task | None:
        """Start a cadence run unless one is pending or the transcript is too short."""
        if self._busy or not self.ready():
            return None
        return self._launch()

    async def run_final(self) -> ClinicalDocument | None:
        """Run once more after any pending request, then autosave the session."""
        if self._in_flight is not None:
            await self._in_flight
        document = None
        if self.ready():
            document = await self._launch()
        if await self._persistence.autosave(self._session):
            self.autosaved = True
        return document

    def _launch(self) -> asyncio.Task:
        # Busy is set before the task is scheduled so a second tick in the
        # same loop iteration sees it.
        self._busy = True
        task = asyncio.get_running_loop().create_task(
            self._generate(), name=f"synthesize-{self._session.session_id}"
        )
        self._in_flight = task
        return task

    async def _generate(self) -> ClinicalDocument | None:
        try:
            request = await self._build_request()
            try:
                document = await asyncio.to_thread(self._client.generate, request)
            except SynthesisError as exc:
                logger.warning("Synthesis skipped for %s: %s", self._session.session_id, exc.message)
                return None
            self._apply(document)
            return document
        finally:
            self._busy = False
            self._in_flight = None

    async def _build_request(self) -> SynthesisRequest:
        session = self._session
        encounter = session.encounter
        profile = await self._persistence.load_profile(encounter.doctor_id)
        return SynthesisRequest(
            transcript=render_transcript(
                session.transcript,
                clinician_label=encounter.clinician_label,
                patient_label=encounter.patient_label,
            ),
            patient_label=encounter.patient_label,
            clinician_label=encounter.clinician_label,
            encounter_ref=encounter.identifiers(),
            style_preferences=profile.model_dump_json(by_alias=True) if profile else None,
        )

    def _apply(self, document: ClinicalDocument) -> None:
        self._session.apply_synthesized(document)
        self.run_count += 1
        logger.info(
            "Synthesis %d applied for %s (%d entries, %d codes)",
            self.run_count,
            self._session.session_id,
            len(self._session.transcript),
            len(document.diagnosis_codes),
        )
        if self._on_document_updated:
            self._on_document_updated(document)
        if self._on_codes_updated and document.diagnosis_codes:
            self._on_codes_updated(list(document.diagnosis_codes))
