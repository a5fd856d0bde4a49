"""Microphone capture with a rolling buffer of short segments.

The recorder runs continuously while the session is listening. Incoming
frames are cut into fixed-length segments so that whatever has been heard so
far can be drained into a clip at any moment. Draining hands back a single
WAV clip and empties the buffer.

The PortAudio callback runs on its own thread; it only forwards frames to the
event loop, and all buffer mutation happens there.
"""

from __future__ import annotations

import asyncio
import io
import logging
import wave
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import numpy as np

from ..config import ScribeSettings, get_settings
from ..exceptions import CaptureError, CaptureFailureKind


logger = logging.getLogger(__name__)

_SAMPLE_WIDTH = 2  # 16-bit PCM
_CHANNELS = 1

_PERMISSION_HINTS = ("permission", "not permitted", "access denied", "unauthorized")
_NO_DEVICE_HINTS = ("no default input device", "invalid device", "device unavailable", "no such device", "invalid number of channels", "error querying device")


@dataclass(frozen=True)
class CaptureConstraints:
    """Input constraints requested from the audio host API."""

    sample_rate: int = 16000
    channels: int = _CHANNELS
    echo_cancellation: bool = True
    noise_suppression: bool = True


@dataclass(frozen=True)
class AudioClip:
    """One drained clip ready for upload."""

    data: bytes
    container: str = "wav"
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mimetype(self) -> str:
        return mimetype_for(self.container)


StreamFactory = Callable[[CaptureConstraints, Callable[..., None]], Any]


def classify_capture_error(exc: BaseException) -> CaptureError:
    """Map a low-level audio error onto a user-facing capture failure."""
    if isinstance(exc, CaptureError):
        return exc
    reason = str(exc) or exc.__class__.__name__
    lowered = reason.lower()
    if isinstance(exc, PermissionError) or any(hint in lowered for hint in _PERMISSION_HINTS):
        return CaptureError(CaptureFailureKind.PERMISSION_DENIED, reason)
    if any(hint in lowered for hint in _NO_DEVICE_HINTS):
        return CaptureError(CaptureFailureKind.NO_DEVICE, reason)
    return CaptureError(CaptureFailureKind.OTHER, reason)


def sounddevice_stream(constraints: CaptureConstraints, callback: Callable[..., None]) -> Any:
    """Open a PortAudio input stream on the default microphone.

    PortAudio exposes no echo-cancellation or noise-suppression switches;
    those constraints are honored only by host APIs that apply them to the
    default input device themselves.
    """
    import sounddevice as sd

    sd.query_devices(kind="input")
    return sd.InputStream(
        samplerate=constraints.sample_rate,
        channels=constraints.channels,
        dtype="int16",
        callback=callback,
    )


class AudioCaptureController:
    """Own the microphone stream and the segment buffer."""

    def __init__(
        self,
        settings: ScribeSettings | None = None,
        stream_factory: StreamFactory | None = None,
        constraints: CaptureConstraints | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._stream_factory = stream_factory or sounddevice_stream
        self.constraints = constraints or CaptureConstraints(sample_rate=self._settings.sample_rate)
        self._segment_frames = max(1, int(self._settings.segment_seconds * self.constraints.sample_rate))
        self._stream: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: list[np.ndarray] = []
        self._pending_frames = 0
        self._segments: list[bytes] = []

    @property
    def is_recording(self) -> bool:
        return self._stream is not None

    @property
    def buffered_bytes(self) -> int:
        return sum(len(s) for s in self._segments) + self._pending_frames * _SAMPLE_WIDTH * self.constraints.channels

    def start(self) -> None:
        """Acquire the microphone and begin recording.

        Raises:
            CaptureError: classified as permission denied, no device, or other.
        """
        if self._stream is not None:
            return
        self._loop = asyncio.get_running_loop()
        try:
            stream = self._stream_factory(self.constraints, self._on_audio)
            stream.start()
        except Exception as exc:
            error = classify_capture_error(exc)
            logger.error("Microphone acquisition failed (%s)", error.kind.value)
            raise error from exc
        self._stream = stream
        logger.info("Recording started at %d Hz", self.constraints.sample_rate)

    def stop(self) -> None:
        """Halt recording, release the device, and keep whatever was heard."""
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as exc:
                logger.warning("Error while closing input stream: %s", exc)
            logger.info("Recording stopped")
        self._cut_segment()

    def drain(self) -> AudioClip:
        """Remove every buffered segment and return them as one WAV clip."""
        self._cut_segment()
        segments, self._segments = self._segments, []
        pcm = b"".join(segments)
        frames = len(pcm) // (_SAMPLE_WIDTH * self.constraints.channels)
        if not pcm:
            return AudioClip(data=b"", duration_seconds=0.0)
        return AudioClip(
            data=_encode_wav(pcm, self.constraints.sample_rate, self.constraints.channels),
            duration_seconds=frames / self.constraints.sample_rate,
        )

    def feed(self, frames: np.ndarray) -> None:
        """Append captured frames; cuts a segment whenever one is full."""
        samples = np.asarray(frames)
        if samples.dtype != np.int16:
            samples = (np.clip(samples, -1.0, 1.0) * 32767).astype(np.int16)
        self._pending.append(samples.reshape(-1).copy())
        self._pending_frames += samples.shape[0]
        if self._pending_frames >= self._segment_frames:
            self._cut_segment()

    def _cut_segment(self) -> None:
        if not self._pending:
            return
        self._segments.append(np.concatenate(self._pending).tobytes())
        self._pending = []
        self._pending_frames = 0

    def _on_audio(self, indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.debug("Input stream status: %s", status)
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._accept, indata.copy())

    def _accept(self, frames: np.ndarray) -> None:
        # Frames delivered after stop() are discarded.
        if self._stream is not None:
            self.feed(frames)


def _encode_wav(pcm: bytes, sample_rate: int, channels: int) -> bytes:
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(_SAMPLE_WIDTH)
        wav.setframerate(sample_rate)
        wav.writeframes(pcm)
    return buffer.getvalue()


def mimetype_for(container: str) -> str:
    """Return the MIME type for a recorder container name or file suffix."""
    suffix = container.lower().lstrip(".")
    mapping = {
        "wav": "audio/wav",
        "mp3": "audio/mpeg",
        "mp4": "audio/mp4",
        "m4a": "audio/mp4",
        "flac": "audio/flac",
        "ogg": "audio/ogg",
        "webm": "audio/webm",
    }
    return mapping.get(suffix, "audio/wav")
