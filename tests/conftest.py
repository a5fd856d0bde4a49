"""Shared pytest fixtures, fakes, mock factories, and test markers.

Test tiers
----------
  unit        Fast, fully offline, zero external dependencies.
              Always run.

  integration Fake microphone, fake speech-to-text and a stub synthesizer
              driving the full session state machine. Always run.

  quality     Property-based (Hypothesis) checks of the pure functions.
              Always run offline.

  live        Real API calls. Skipped unless the required environment
              variables are set. See tests/live/conftest.py for guards.

Run specific tiers:
  pytest tests/unit tests/integration tests/quality   # offline only
  pytest tests/live -m live                           # live only
  pytest tests/ -v                                    # everything

Async code is driven with ``asyncio.run`` inside ordinary test functions.
Cadence intervals in the shared settings are an hour long, so tests decide
exactly when a transcription or synthesis tick happens.
"""

from __future__ import annotations

import threading
from unittest.mock import MagicMock

import numpy as np
import pytest

from ambient_scribe.capture.recorder import AudioCaptureController, CaptureConstraints
from ambient_scribe.config import ScribeSettings, get_settings_for_testing
from ambient_scribe.exceptions import SynthesisError, TranscriptionError
from ambient_scribe.session.models import EncounterRef, ScribeSession
from ambient_scribe.storage.persistence import SessionPersistence
from ambient_scribe.storage.store import InMemoryRecordStore
from ambient_scribe.synthesis.models import ClinicalDocument, SynthesisRequest
from ambient_scribe.transcription.models import ClipTranscription, Speaker, TranscriptEntry, entry_id_for


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast offline unit tests")
    config.addinivalue_line("markers", "integration: fake-device end-to-end session tests")
    config.addinivalue_line("markers", "quality: property-based checks")
    config.addinivalue_line("markers", "live: requires real credentials (skipped by default)")


# ---------------------------------------------------------------------------
# Fakes for the external capabilities
# ---------------------------------------------------------------------------

class FakeInputStream:
    """Stands in for ``sounddevice.InputStream``."""

    def __init__(self, constraints: CaptureConstraints, callback) -> None:
        self.constraints = constraints
        self.callback = callback
        self.started = False
        self.closed = False

    def start(self) -> None:
        self.started = True

    def stop(self) -> None:
        self.started = False

    def close(self) -> None:
        self.closed = True

    def push(self, frames: np.ndarray) -> None:
        """Deliver frames the way the PortAudio thread would."""
        self.callback(frames, len(frames), None, None)


class FakeStreamFactory:
    """Records every stream it opens; raises ``error`` instead when set."""

    def __init__(self, error: BaseException | None = None) -> None:
        self.error = error
        self.streams: list[FakeInputStream] = []

    def __call__(self, constraints: CaptureConstraints, callback) -> FakeInputStream:
        if self.error is not None:
            raise self.error
        stream = FakeInputStream(constraints, callback)
        self.streams.append(stream)
        return stream

    @property
    def last(self) -> FakeInputStream:
        return self.streams[-1]


class FakeTranscriber:
    """Returns scripted transcripts in call order.

    ``None`` in the script raises ``TranscriptionError`` for that call. Once
    the script runs out, ``default`` is returned. With ``gate`` set, each call
    blocks until the gate opens.
    """

    def __init__(
        self,
        script: list[str | None] | None = None,
        default: str = "",
        gate: threading.Event | None = None,
    ) -> None:
        self._script = list(script or [])
        self._default = default
        self.gate = gate
        self._lock = threading.Lock()
        self.calls: list[tuple[int, str]] = []

    def transcribe_clip(self, data: bytes, mimetype: str = "audio/wav") -> ClipTranscription:
        with self._lock:
            self.calls.append((len(data), mimetype))
            text = self._script.pop(0) if self._script else self._default
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if text is None:
            raise TranscriptionError("scripted failure", clip_bytes=len(data))
        return ClipTranscription(text=text, request_id=f"fake-{len(self.calls)}")


class FakeSynthesisClient:
    """Returns ``document`` for every request.

    With ``gate`` set, each call blocks until the gate opens, which keeps a
    request in flight for as long as a test needs.
    """

    def __init__(
        self,
        document: ClinicalDocument | None = None,
        fail: bool = False,
        gate: threading.Event | None = None,
    ) -> None:
        self.document = document or ClinicalDocument()
        self.fail = fail
        self.gate = gate
        self.requests: list[SynthesisRequest] = []

    def generate(self, request: SynthesisRequest) -> ClinicalDocument:
        self.requests.append(request)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.fail:
            raise SynthesisError("HTTP 500", status_code=500)
        return self.document.model_copy(deep=True)


def make_entry(sequence: int, text: str, speaker: Speaker = Speaker.PATIENT) -> TranscriptEntry:
    return TranscriptEntry(
        id=entry_id_for(sequence),
        sequence=sequence,
        speaker=speaker,
        text=text,
        captured_at_ms=1_700_000_000_000 + sequence * 5000,
    )


# ---------------------------------------------------------------------------
# Deepgram mock response factory
# ---------------------------------------------------------------------------

def make_deepgram_mock_response(transcript: str = "", confidence: float = 0.98) -> MagicMock:
    """Build a MagicMock that mimics a Deepgram PreRecordedResponse for one clip."""
    mock_response = MagicMock()
    mock_response.metadata.request_id = "mock-request-001"
    mock_response.results.channels = [
        MagicMock(alternatives=[MagicMock(transcript=transcript, confidence=confidence)])
    ]
    return mock_response


# ---------------------------------------------------------------------------
# Settings, session and document fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> ScribeSettings:
    return get_settings_for_testing(
        deepgram_api_key="test-key",
        transcription_interval_seconds=3600,
        synthesis_interval_seconds=3600,
        store_url=None,
    )


@pytest.fixture
def encounter() -> EncounterRef:
    return EncounterRef(
        appointment_id="appt-001",
        patient_id="pat-001",
        doctor_id="doc-001",
        patient_label="Jane Doe",
        clinician_label="Dr. Smith",
    )


@pytest.fixture
def sample_entries() -> list[TranscriptEntry]:
    return [
        make_entry(1, "I've had a headache for three days.", Speaker.PATIENT),
        make_entry(2, "Let me examine you. Any nausea?", Speaker.CLINICIAN),
        make_entry(3, "A little in the mornings.", Speaker.PATIENT),
        make_entry(4, "Let's start you on ibuprofen 400mg TID.", Speaker.CLINICIAN),
    ]


@pytest.fixture
def session(encounter: EncounterRef) -> ScribeSession:
    return ScribeSession(encounter=encounter)


@pytest.fixture
def sample_document() -> ClinicalDocument:
    return ClinicalDocument(
        subjective="Three days of frontal headache with morning nausea.",
        objective="Alert, no focal deficits.",
        assessment="Tension-type headache.",
        plan="Ibuprofen 400mg TID for five days. Return if worse.",
        diagnosis_codes=["G44.209"],
        patient_instructions="Take ibuprofen with food.",
    )


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def stream_factory() -> FakeStreamFactory:
    return FakeStreamFactory()


@pytest.fixture
def capture(settings: ScribeSettings, stream_factory: FakeStreamFactory) -> AudioCaptureController:
    return AudioCaptureController(settings=settings, stream_factory=stream_factory)


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def persistence(store: InMemoryRecordStore, settings: ScribeSettings) -> SessionPersistence:
    return SessionPersistence(store, settings)
