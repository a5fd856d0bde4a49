"""Example: run one documented encounter end to end (or in demo mode with mocks).

Usage:
    # Demo mode, no microphone, API key or synthesis service needed:
    python examples/live_session_demo.py

    # Real microphone for N seconds:
    DEEPGRAM_API_KEY=<key> SCRIBE_SYNTHESIS_URL=<url> python examples/live_session_demo.py 60
"""

from __future__ import annotations

import asyncio
import itertools
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np

# Make sure the package is importable when running from the project root
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ambient_scribe.capture.recorder import AudioCaptureController
from ambient_scribe.config import configure_logging, get_settings, get_settings_for_testing
from ambient_scribe.session.controller import ScribeController
from ambient_scribe.session.models import EncounterRef, SessionStatus
from ambient_scribe.storage.persistence import SessionPersistence
from ambient_scribe.storage.store import InMemoryRecordStore, create_record_store
from ambient_scribe.synthesis.client import DocumentSynthesisClient
from ambient_scribe.synthesis.models import ClinicalDocument, SynthesisRequest
from ambient_scribe.transcription.batch import ClipTranscriber
from ambient_scribe.transcription.formatting import format_duration, render_transcript


DEMO_LINES = [
    "I've had a sore throat and a fever since Saturday.",
    "Let me take a look at your throat.",
    "It hurts the most when I swallow.",
    "I'll order a rapid strep test and we'll start you on fluids and rest.",
]

DEMO_NOTE = ClinicalDocument(
    subjective="Sore throat and fever for three days; odynophagia.",
    objective="Pharyngeal erythema.",
    assessment="Acute pharyngitis, rule out streptococcal infection.",
    plan="Rapid strep test. Supportive care with fluids and rest.",
    diagnosis_codes=["J02.9"],
    patient_instructions="Drink plenty of fluids and rest.",
)


class DemoStream:
    """Input stream stand-in; the demo pushes tone frames into it."""

    def __init__(self, constraints, callback) -> None:
        self.callback = callback

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def close(self) -> None:
        pass

    def speak(self, seconds: float = 0.5) -> None:
        t = np.arange(int(seconds * 16000)) / 16000
        frames = (0.3 * 32767 * np.sin(2 * np.pi * 220 * t)).astype(np.int16).reshape(-1, 1)
        self.callback(frames, len(frames), None, None)


class DemoSynthesisClient:
    def generate(self, request: SynthesisRequest) -> ClinicalDocument:
        return DEMO_NOTE


def print_result(controller: ScribeController) -> None:
    session = controller.session
    encounter = session.encounter
    print()
    print(f"Status: {controller.status.value}   Duration: {format_duration(session.duration_seconds)}")
    print("Transcript:")
    print("-" * 50)
    print(render_transcript(session.transcript, encounter.clinician_label, encounter.patient_label))
    print()
    print("Note:")
    print("-" * 50)
    print((session.working or ClinicalDocument()).as_text())


def run_demo() -> None:
    """Drive a full session with a tone generator and mocked Deepgram."""
    print("=== Ambient Scribe Demo (mock mode) ===\n")
    settings = get_settings_for_testing(
        deepgram_api_key="demo-key",
        transcription_interval_seconds=0.2,
        synthesis_interval_seconds=0.5,
    )
    lines = itertools.cycle(DEMO_LINES)

    def fake_transcribe(source, options):
        response = MagicMock()
        response.metadata.request_id = "demo-request"
        response.results.channels = [MagicMock(alternatives=[MagicMock(transcript=next(lines), confidence=0.97)])]
        return response

    streams: list[DemoStream] = []

    def stream_factory(constraints, callback):
        streams.append(DemoStream(constraints, callback))
        return streams[-1]

    async def scenario() -> ScribeController:
        with patch("ambient_scribe.transcription.batch.DeepgramClient") as mock_client:
            mock_client.return_value.listen.rest.v.return_value.transcribe_file.side_effect = fake_transcribe
            controller = ScribeController(
                EncounterRef(appointment_id="demo-appt", doctor_id="demo-doc", patient_label="Alex"),
                AudioCaptureController(settings=settings, stream_factory=stream_factory),
                ClipTranscriber(settings=settings),
                DemoSynthesisClient(),
                SessionPersistence(InMemoryRecordStore(), settings),
                settings,
                on_status_changed=lambda status: print(f"-> {status.value}"),
                on_codes_updated=lambda codes: print(f"   codes: {', '.join(codes)}"),
            )
            await controller.set_activity(True)
            for _ in range(len(DEMO_LINES)):
                streams[-1].speak()
                await asyncio.sleep(0.25)
            await controller.set_activity(False)
        return controller

    print_result(asyncio.run(scenario()))


def run_real(seconds: float) -> None:
    """Record from the default microphone for ``seconds`` (requires credentials)."""
    settings = get_settings()
    configure_logging(settings)
    print(f"=== Recording for {seconds:.0f}s ===\n")

    async def scenario() -> ScribeController:
        controller = ScribeController(
            EncounterRef(),
            AudioCaptureController(settings=settings),
            ClipTranscriber(settings=settings),
            DocumentSynthesisClient(settings=settings),
            SessionPersistence(create_record_store(settings), settings),
            settings,
        )
        await controller.set_activity(True)
        if controller.status is SessionStatus.ERROR:
            print(f"[ERROR] {controller.failure.message}", file=sys.stderr)
            return controller
        await asyncio.sleep(seconds)
        await controller.stop()
        return controller

    controller = asyncio.run(scenario())
    if controller.session is not None and controller.status is SessionStatus.DONE:
        print_result(controller)


if __name__ == "__main__":
    if len(sys.argv) > 1:
        run_real(float(sys.argv[1]))
    else:
        run_demo()
