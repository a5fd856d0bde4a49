"""Short-clip transcription using Deepgram Nova-3 Medical pre-recorded API.

Each clip is a few seconds of buffered microphone audio uploaded in one
request. Silent clips come back with an empty transcript, which callers
must tolerate.
"""

from __future__ import annotations

import logging

from deepgram import DeepgramClient, PrerecordedOptions

from ..config import ScribeSettings, get_settings
from ..exceptions import ConfigurationError, TranscriptionError
from .models import ClipTranscription


logger = logging.getLogger(__name__)


class ClipTranscriber:
    """Transcribe in-memory audio clips with Deepgram."""

    def __init__(
        self,
        api_key: str | None = None,
        settings: ScribeSettings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        key = api_key or self._settings.resolved_deepgram_key()
        if not key:
            raise ConfigurationError("deepgram_api_key", "set SCRIBE_DEEPGRAM_API_KEY or DEEPGRAM_API_KEY")
        self._client = DeepgramClient(key)

    def transcribe_clip(self, data: bytes, mimetype: str = "audio/wav") -> ClipTranscription:
        """Upload one clip and return its transcript.

        Raises:
            TranscriptionError: on any SDK or transport failure.
        """
        options = PrerecordedOptions(
            model=self._settings.transcription_model,
            smart_format=True,
            punctuate=True,
            keyterm=self._settings.transcription_keyterms,
        )
        source = {"buffer": data, "mimetype": mimetype}
        try:
            response = self._client.listen.rest.v("1").transcribe_file(source, options)
        except Exception as exc:
            raise TranscriptionError(str(exc) or exc.__class__.__name__, clip_bytes=len(data)) from exc

        result = ClipTranscription.from_deepgram_response(response, model=self._settings.transcription_model)
        logger.debug("Clip of %d bytes transcribed (request %s)", len(data), result.request_id or "-")
        return result
